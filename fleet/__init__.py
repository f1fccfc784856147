"""Fleet tracking backend - re-exports for convenient imports."""
from fleet.config import settings
from fleet.database import Base, create_async_db_engine, create_session_factory, get_db
from fleet.errors import FleetError, InvalidArgument, NotFound, StoreUnavailable
from fleet.models import User, Vehicle, VehicleTrip, Role, TripStatus
from fleet.status import StatusAggregator, StatusSummary, SqlTripStore

__all__ = [
    "settings",
    "Base",
    "create_async_db_engine",
    "create_session_factory",
    "get_db",
    "FleetError",
    "InvalidArgument",
    "NotFound",
    "StoreUnavailable",
    "User",
    "Vehicle",
    "VehicleTrip",
    "Role",
    "TripStatus",
    "StatusAggregator",
    "StatusSummary",
    "SqlTripStore",
]
