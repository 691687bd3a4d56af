"""
API request and response models for the dealership REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in inventory/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Vehicle payloads are camelCase on the wire (vehicleType, kmDriven, ...).
Request models also accept snake_case names so form posts from older clients
keep working.
"""

from enum import Enum
from typing import Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.errors import BadRequest
from inventory.models import FuelType, Ownership, Vehicle, VehicleStatus, VehicleType
from media.urls import get_optimized_image_url

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_M = TypeVar("_M", bound=BaseModel)


def parse_body(model: type[_M], data: dict) -> _M:
    """Validate a raw payload dict, turning pydantic errors into a BadRequest."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        messages = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err["loc"])
            messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        raise BadRequest("; ".join(messages)) from exc


# ---------------------------------------------------------------------------
# Common envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    code: str
    message: str
    detail: Optional[str] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    # 128 chars keeps ASCII passwords under bcrypt's 72-byte truncation
    # threshold in practice; min 6 matches the account rules.
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class AuthResponse(BaseModel):
    """Returned by register and login. The same token is also set as the "token" cookie."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    token: str


class UserOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: UserOut


# ---------------------------------------------------------------------------
# Vehicles -- requests
# ---------------------------------------------------------------------------

_REQUIRED_VEHICLE_FIELDS = ("title", "brand", "model", "vehicle_type", "fuel_type", "year", "price", "status")
_OPTIONAL_VEHICLE_FIELDS = ("km_driven", "mileage", "ownership")


class _VehicleRequest(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @field_validator(*_OPTIONAL_VEHICLE_FIELDS, mode="before", check_fields=False)
    @classmethod
    def blank_to_none(cls, value):
        """Form posts send "" for untouched optional inputs; treat that as absent."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class VehicleCreate(_VehicleRequest):
    """Body of POST /api/vehicles (multipart form fields or JSON)."""

    title: str = Field(min_length=1, max_length=255)
    brand: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    vehicle_type: VehicleType
    fuel_type: FuelType
    year: int = Field(ge=1886, le=2100)
    price: float = Field(ge=0)
    status: VehicleStatus = VehicleStatus.available
    km_driven: Optional[float] = Field(default=None, ge=0)
    mileage: Optional[float] = Field(default=None, ge=0)
    ownership: Optional[Ownership] = None

    def to_vehicle(self) -> Vehicle:
        return Vehicle(
            title=self.title,
            brand=self.brand,
            model=self.model,
            vehicle_type=self.vehicle_type.value,
            fuel_type=self.fuel_type.value,
            year=self.year,
            price=self.price,
            status=self.status.value,
            km_driven=self.km_driven,
            mileage=self.mileage,
            ownership=self.ownership.value if self.ownership else None,
        )


class VehiclePatch(_VehicleRequest):
    """Body of PUT /api/vehicles/{id}. Every field optional; images are ignored here."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    brand: Optional[str] = Field(default=None, min_length=1, max_length=100)
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    vehicle_type: Optional[VehicleType] = None
    fuel_type: Optional[FuelType] = None
    year: Optional[int] = Field(default=None, ge=1886, le=2100)
    price: Optional[float] = Field(default=None, ge=0)
    status: Optional[VehicleStatus] = None
    km_driven: Optional[float] = Field(default=None, ge=0)
    mileage: Optional[float] = Field(default=None, ge=0)
    ownership: Optional[Ownership] = None

    @model_validator(mode="after")
    def required_fields_stay_set(self) -> "VehiclePatch":
        cleared = [
            name for name in _REQUIRED_VEHICLE_FIELDS if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"Required fields cannot be cleared: {', '.join(cleared)}")
        return self

    def to_fields(self) -> dict:
        """Return only the fields the client sent, as store column values."""
        fields = self.model_dump(exclude_unset=True)
        return {k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items()}


# ---------------------------------------------------------------------------
# Vehicles -- responses
# ---------------------------------------------------------------------------


class VehicleOut(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    brand: str
    model: str
    vehicle_type: str
    fuel_type: str
    year: int
    price: float
    status: str
    km_driven: Optional[float] = None
    mileage: Optional[float] = None
    ownership: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @classmethod
    def from_vehicle(cls, vehicle: Vehicle, optimized: bool = False) -> "VehicleOut":
        """Build the wire representation; optimized=True rewrites image URLs for delivery."""
        urls = vehicle.image_urls
        if optimized:
            urls = [get_optimized_image_url(u) for u in urls]
        return cls(
            id=vehicle.id,
            title=vehicle.title,
            brand=vehicle.brand,
            model=vehicle.model,
            vehicle_type=vehicle.vehicle_type,
            fuel_type=vehicle.fuel_type,
            year=vehicle.year,
            price=vehicle.price,
            status=vehicle.status,
            km_driven=vehicle.km_driven,
            mileage=vehicle.mileage,
            ownership=vehicle.ownership,
            images=urls,
            created_at=vehicle.created_at,
            updated_at=vehicle.updated_at,
        )


class VehicleEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: VehicleOut
    message: Optional[str] = None


class VehicleListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[VehicleOut]
