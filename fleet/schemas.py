"""Pydantic models for API request/response schemas."""
from datetime import date, datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Role, TripStatus
from .time_utils import as_utc

# Timestamps always leave the API as UTC ISO-8601
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Auth


class LoginRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class RegisterRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class UserPublic(CamelModel):
    id: str
    email: str
    name: str
    role: Role


class UserOut(UserPublic):
    created_at: UtcDatetime


class LoginResponse(CamelModel):
    user: UserPublic
    access_token: str
    refresh_token: str


class AccessTokenResponse(CamelModel):
    access_token: str


class TokenPayload(BaseModel):
    """Claims carried by an access token."""

    id: str
    email: str
    role: str


# Vehicles


def _check_year(v: int) -> int:
    if not 1900 <= v <= date.today().year + 1:
        raise ValueError(f"Year must be between 1900 and {date.today().year + 1}")
    return v


Year = Annotated[int, AfterValidator(_check_year)]


class VehicleCreate(CamelModel):
    plate_number: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: Year
    color: str = Field(..., min_length=1)


class VehicleUpdate(CamelModel):
    """Partial update; only supplied fields are written."""

    plate_number: Optional[str] = Field(None, min_length=1)
    brand: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = Field(None, min_length=1)
    year: Optional[Year] = None
    color: Optional[str] = Field(None, min_length=1)


class TripOut(CamelModel):
    id: str
    vehicle_id: str
    status: TripStatus
    start_time: UtcDatetime
    end_time: Optional[UtcDatetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


class VehicleOut(CamelModel):
    id: str
    plate_number: str
    brand: str
    model: str
    year: int
    color: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


class VehicleDetail(VehicleOut):
    trips: List[TripOut]


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class VehicleList(CamelModel):
    vehicles: List[VehicleOut]
    pagination: Pagination


class StatusMinutes(BaseModel):
    """Whole minutes spent in each state."""

    TRIP: int
    IDLE: int
    STOPPED: int


class VehicleStatus(BaseModel):
    date: str
    trips: List[TripOut]
    summary: StatusMinutes


# Misc


class HealthResponse(BaseModel):
    status: str
    message: str


class ErrorDetail(BaseModel):
    field: str
    message: str
