"""FastAPI routes for the fleet API."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet import auth, reports, vehicles
from fleet.database import get_db
from fleet.errors import NotFound
from fleet.models import User
from fleet.schemas import (
    AccessTokenResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    StatusMinutes,
    TokenPayload,
    TripOut,
    UserOut,
    UserPublic,
    VehicleCreate,
    VehicleDetail,
    VehicleList,
    VehicleOut,
    VehicleStatus,
    VehicleUpdate,
)
from fleet.status import SqlTripStore, StatusAggregator
from .deps import get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="OK", message="Server is running")


# Auth


@router.post("/api/auth/login", response_model=LoginResponse, tags=["auth"])
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for an access/refresh token pair."""
    return await auth.login(db, body.email, body.password)


@router.post("/api/auth/register", response_model=UserPublic, status_code=201, tags=["auth"])
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    return await auth.register(db, body)


@router.post("/api/auth/refresh", response_model=AccessTokenResponse, tags=["auth"])
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    return await auth.refresh(db, body.refresh_token)


# Users


@router.get("/api/users", response_model=List[UserOut], tags=["users"])
async def list_users(
    _: TokenPayload = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).order_by(User.created_at.asc()))
    return [UserOut.model_validate(u) for u in result.scalars().all()]


@router.get("/api/users/me", response_model=UserOut, tags=["users"])
async def current_user(
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await db.get(User, user.id)
    if record is None:
        raise NotFound("User not found")
    return UserOut.model_validate(record)


# Vehicles


@router.get("/api/vehicles", response_model=VehicleList, tags=["vehicles"])
async def list_vehicles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await vehicles.list_vehicles(db, page, limit)


@router.get("/api/vehicles/{vehicle_id}", response_model=VehicleDetail, tags=["vehicles"])
async def get_vehicle(
    vehicle_id: str,
    _: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await vehicles.get_vehicle(db, vehicle_id)


@router.get("/api/vehicles/{vehicle_id}/status", response_model=VehicleStatus, tags=["vehicles"])
async def get_vehicle_status(
    vehicle_id: str,
    date: str = Query(..., description="Day in YYYY-MM-DD format"),
    _: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Minutes the vehicle spent driving, idling and stopped on the given day,
    along with the trips that started that day.
    """
    aggregator = StatusAggregator(SqlTripStore(db))
    status = await aggregator.compute_status(vehicle_id, date)
    return VehicleStatus(
        date=status.date,
        trips=[TripOut.model_validate(t) for t in status.trips],
        summary=StatusMinutes(**status.summary),
    )


@router.post("/api/vehicles", response_model=VehicleOut, status_code=201, tags=["vehicles"])
async def create_vehicle(
    body: VehicleCreate,
    _: TokenPayload = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await vehicles.create_vehicle(db, body)


@router.put("/api/vehicles/{vehicle_id}", response_model=VehicleOut, tags=["vehicles"])
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    _: TokenPayload = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await vehicles.update_vehicle(db, vehicle_id, body)


@router.delete("/api/vehicles/{vehicle_id}", status_code=204, tags=["vehicles"])
async def delete_vehicle(
    vehicle_id: str,
    _: TokenPayload = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await vehicles.delete_vehicle(db, vehicle_id)
    return Response(status_code=204)


# Reports


@router.get("/api/reports/vehicles", tags=["reports"])
async def download_vehicle_report(
    vehicleId: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    _: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Download trips as an .xlsx spreadsheet."""
    content = await reports.build_vehicle_report(db, vehicleId, startDate, endDate)
    filename = reports.report_filename()
    return Response(
        content=content,
        media_type=reports.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
