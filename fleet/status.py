"""Per-day time accounting for vehicle states.

Sums how long a vehicle spent in each TripStatus during one calendar day.
Trips are attributed to the day their start_time falls in and are counted at
full length, even when they end after midnight. Open trips are measured up to
the current instant, so repeated calls on the same day can return growing
totals.

Usage:
    aggregator = StatusAggregator(SqlTripStore(session))
    summary = await aggregator.compute_status(vehicle_id, "2024-05-01")
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import NotFound, StoreUnavailable
from .models import TripStatus, Vehicle, VehicleTrip
from .time_utils import as_utc, day_window, parse_date

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000


class TripInterval(Protocol):
    """Read-only view of a trip the aggregator needs."""

    status: TripStatus
    start_time: datetime
    end_time: Optional[datetime]


class TripStore(Protocol):
    async def vehicle_exists(self, vehicle_id: str) -> bool:
        ...

    async def find_trips_in_window(
        self, vehicle_id: str, start_inclusive: datetime, end_exclusive: datetime
    ) -> Sequence[TripInterval]:
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class SqlTripStore:
    """TripStore backed by the vehicle_trips table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def vehicle_exists(self, vehicle_id: str) -> bool:
        try:
            result = await self.session.execute(
                select(Vehicle.id).where(Vehicle.id == vehicle_id)
            )
        except (SQLAlchemyError, OSError) as e:
            logger.exception(f"Vehicle lookup failed for {vehicle_id}")
            raise StoreUnavailable(str(e)) from e
        return result.scalar_one_or_none() is not None

    async def find_trips_in_window(
        self, vehicle_id: str, start_inclusive: datetime, end_exclusive: datetime
    ) -> Sequence[VehicleTrip]:
        query = (
            select(VehicleTrip)
            .where(
                VehicleTrip.vehicle_id == vehicle_id,
                VehicleTrip.start_time >= start_inclusive,
                VehicleTrip.start_time < end_exclusive,
            )
            .order_by(VehicleTrip.start_time.asc())
        )
        try:
            result = await self.session.execute(query)
        except (SQLAlchemyError, OSError) as e:
            logger.exception(f"Trip query failed for {vehicle_id}")
            raise StoreUnavailable(str(e)) from e
        return result.scalars().all()


def round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass
class StatusTotals:
    """Accumulated milliseconds per state."""

    trip: float = 0.0
    idle: float = 0.0
    stopped: float = 0.0

    def add(self, status: TripStatus, ms: float) -> None:
        if status == TripStatus.TRIP:
            self.trip += ms
        elif status == TripStatus.IDLE:
            self.idle += ms
        elif status == TripStatus.STOPPED:
            self.stopped += ms
        else:
            raise ValueError(f"Unknown trip status: {status!r}")

    def minutes(self) -> dict[str, int]:
        return {
            TripStatus.TRIP.value: round_half_away_from_zero(self.trip / MS_PER_MINUTE),
            TripStatus.IDLE.value: round_half_away_from_zero(self.idle / MS_PER_MINUTE),
            TripStatus.STOPPED.value: round_half_away_from_zero(self.stopped / MS_PER_MINUTE),
        }


@dataclass
class StatusSummary:
    date: str
    trips: Sequence[Any]
    totals: StatusTotals = field(default_factory=StatusTotals)

    @property
    def summary(self) -> dict[str, int]:
        return self.totals.minutes()

    def to_dict(self) -> dict:
        return {"date": self.date, "trips": list(self.trips), "summary": self.summary}


def trip_duration_ms(trip: TripInterval, now: datetime) -> float:
    """Length of a trip in milliseconds, open trips measured up to now."""
    end = as_utc(trip.end_time) if trip.end_time is not None else now
    return (end - as_utc(trip.start_time)) / timedelta(milliseconds=1)


class StatusAggregator:
    def __init__(self, store: TripStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or SystemClock()

    async def compute_status(self, vehicle_id: str, date: str) -> StatusSummary:
        """
        Compute minutes spent in each state by a vehicle on a calendar day.

        Args:
            vehicle_id: Vehicle to summarize
            date: Day in YYYY-MM-DD format, interpreted in the fleet timezone

        Returns:
            StatusSummary with the day's trips (ascending start_time, unmodified)
            and whole minutes per state

        Raises:
            InvalidArgument: malformed date, raised before the store is touched
            NotFound: unknown vehicle
            StoreUnavailable: the trip store failed
        """
        day = parse_date(date)

        if not await self.store.vehicle_exists(vehicle_id):
            raise NotFound("Vehicle not found")

        start, end = day_window(day)
        trips = await self.store.find_trips_in_window(vehicle_id, start, end)

        now = as_utc(self.clock.now())
        totals = StatusTotals()
        for trip in trips:
            totals.add(trip.status, trip_duration_ms(trip, now))

        logger.debug(f"Status for {vehicle_id} on {date}: {len(trips)} trips")
        return StatusSummary(date=date, trips=trips, totals=totals)
