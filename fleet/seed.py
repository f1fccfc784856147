"""Load demo users, vehicles and trips.

Run with `python -m fleet.seed`. Existing users and vehicles (matched by
email and plate number) are left untouched, so the script can be re-run.
"""
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet.auth import hash_password
from fleet.config import settings
from fleet.database import create_async_db_engine, create_session_factory, create_tables
from fleet.models import Role, TripStatus, User, Vehicle, VehicleTrip

numeric_level = logging._nameToLevel.get(settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(
    level=numeric_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

USERS = [
    {"email": "admin@example.com", "name": "Admin User", "role": Role.ADMIN},
    {"email": "user@example.com", "name": "Regular User", "role": Role.USER},
]

VEHICLES = [
    {"plate_number": "B1234ABC", "brand": "Toyota", "model": "Avanza", "year": 2020, "color": "White"},
    {"plate_number": "B5678DEF", "brand": "Honda", "model": "Civic", "year": 2021, "color": "Black"},
    {"plate_number": "B9012GHI", "brand": "Suzuki", "model": "Ertiga", "year": 2019, "color": "Silver"},
]

ADDRESS = "Jakarta, Indonesia"


def _jakarta_point() -> dict:
    return {
        "latitude": -6.2 + random.random() * 0.1,
        "longitude": 106.8 + random.random() * 0.1,
        "address": ADDRESS,
    }


def demo_trips(vehicle_id: str, now: datetime) -> list[VehicleTrip]:
    """A drive and an idle period yesterday, a long stop two days ago."""
    yesterday = now - timedelta(days=1)
    two_days_ago = now - timedelta(days=2)
    trip_start = yesterday + timedelta(hours=random.random() * 8)
    stop_start = two_days_ago + timedelta(hours=random.random() * 8)

    return [
        VehicleTrip(
            vehicle_id=vehicle_id,
            status=TripStatus.TRIP,
            start_time=trip_start,
            end_time=trip_start + timedelta(hours=2),
            **_jakarta_point(),
        ),
        VehicleTrip(
            vehicle_id=vehicle_id,
            status=TripStatus.IDLE,
            start_time=yesterday + timedelta(hours=10),
            end_time=yesterday + timedelta(hours=11),
            **_jakarta_point(),
        ),
        VehicleTrip(
            vehicle_id=vehicle_id,
            status=TripStatus.STOPPED,
            start_time=stop_start,
            end_time=stop_start + timedelta(hours=4),
            **_jakarta_point(),
        ),
    ]


async def seed(session: AsyncSession) -> None:
    password_hash = hash_password(DEMO_PASSWORD)

    for data in USERS:
        existing = await session.execute(select(User).where(User.email == data["email"]))
        if existing.scalar_one_or_none() is None:
            session.add(User(password=password_hash, **data))
            logger.info(f"Created user {data['email']}")

    now = datetime.now(timezone.utc)
    for data in VEHICLES:
        existing = await session.execute(
            select(Vehicle).where(Vehicle.plate_number == data["plate_number"])
        )
        if existing.scalar_one_or_none() is not None:
            continue
        vehicle = Vehicle(**data)
        session.add(vehicle)
        await session.flush()
        session.add_all(demo_trips(vehicle.id, now))
        logger.info(f"Created vehicle {data['plate_number']} with demo trips")

    await session.commit()


async def run_seed() -> None:
    engine = create_async_db_engine(settings.DATABASE_URL)
    try:
        await create_tables(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            await seed(session)
    finally:
        await engine.dispose()

    logger.info("Database seeded successfully")
    logger.info(f"Demo password for {', '.join(u['email'] for u in USERS)}: {DEMO_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(run_seed())
