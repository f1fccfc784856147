"""Vehicle records: pagination, lookup and admin writes."""
import logging
import math

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .cache import cache, clear_namespace
from .errors import Conflict, NotFound
from .models import Vehicle, VehicleTrip
from .schemas import (
    Pagination,
    TripOut,
    VehicleCreate,
    VehicleDetail,
    VehicleList,
    VehicleOut,
    VehicleUpdate,
)

logger = logging.getLogger(__name__)

RECENT_TRIPS = 10


@cache(soft_ttl=15, hard_ttl=120, namespace="vehicles")
async def list_vehicles(db: AsyncSession, page: int = 1, limit: int = 10) -> dict:
    """
    One page of vehicles, newest first.

    Returns:
        JSON-ready dict with "vehicles" and "pagination"
        (page, limit, total, totalPages)
    """
    total = await db.scalar(select(func.count()).select_from(Vehicle))
    result = await db.execute(
        select(Vehicle)
        .order_by(Vehicle.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    vehicles = result.scalars().all()

    listing = VehicleList(
        vehicles=[VehicleOut.model_validate(v) for v in vehicles],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )
    return listing.model_dump(mode="json", by_alias=True)


async def _get_or_404(db: AsyncSession, vehicle_id: str) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFound("Vehicle not found")
    return vehicle


async def get_vehicle(db: AsyncSession, vehicle_id: str) -> VehicleDetail:
    """Vehicle with its most recent trips."""
    vehicle = await _get_or_404(db, vehicle_id)

    result = await db.execute(
        select(VehicleTrip)
        .where(VehicleTrip.vehicle_id == vehicle_id)
        .order_by(VehicleTrip.start_time.desc())
        .limit(RECENT_TRIPS)
    )
    trips = result.scalars().all()

    return VehicleDetail(
        **VehicleOut.model_validate(vehicle).model_dump(),
        trips=[TripOut.model_validate(t) for t in trips],
    )


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict("Resource already exists") from e


async def create_vehicle(db: AsyncSession, data: VehicleCreate) -> VehicleOut:
    vehicle = Vehicle(**data.model_dump())
    db.add(vehicle)
    await _commit(db)
    await clear_namespace("vehicles")

    logger.info(f"Created vehicle {vehicle.id} ({vehicle.plate_number})")
    return VehicleOut.model_validate(vehicle)


async def update_vehicle(db: AsyncSession, vehicle_id: str, data: VehicleUpdate) -> VehicleOut:
    vehicle = await _get_or_404(db, vehicle_id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(vehicle, key, value)
    await _commit(db)
    await db.refresh(vehicle)
    await clear_namespace("vehicles")

    logger.info(f"Updated vehicle {vehicle.id}")
    return VehicleOut.model_validate(vehicle)


async def delete_vehicle(db: AsyncSession, vehicle_id: str) -> None:
    vehicle = await _get_or_404(db, vehicle_id)
    await db.execute(delete(VehicleTrip).where(VehicleTrip.vehicle_id == vehicle_id))
    await db.delete(vehicle)
    await db.commit()
    await clear_namespace("vehicles")

    logger.info(f"Deleted vehicle {vehicle_id}")
