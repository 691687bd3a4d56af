"""
inventory/models.py -- Domain dataclasses and enums for vehicle listings.

These are plain data containers. Persistence lives in
inventory/store.py; validation of client input lives in api/models.py.

The enums are the single source of truth for allowed values. The API layer
validates against them and the store persists their string values.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class VehicleType(str, Enum):
    car = "Car"
    truck = "Truck"
    bike = "Bike"
    suv = "SUV"
    van = "Van"


class FuelType(str, Enum):
    petrol = "Petrol"
    diesel = "Diesel"
    electric = "Electric"
    hybrid = "Hybrid"
    cng = "CNG"


class VehicleStatus(str, Enum):
    available = "Available"
    sold = "Sold"


class Ownership(str, Enum):
    first = "First"
    second = "Second"
    third = "Third"


@dataclass
class VehicleImage:
    """One stored image.

    public_id is the image host's identifier returned at upload time. It is
    None for entries that only ever had a URL; deletion then falls back to
    reconstructing the id from the URL (media.urls.get_full_public_id).
    """

    url: str
    public_id: Optional[str] = None


@dataclass
class Vehicle:
    """A vehicle listing.

    images keeps append order. id is None before the record is written to the
    database; created_at / updated_at are set by the store.
    """

    title: str
    brand: str
    model: str
    vehicle_type: str  # VehicleType value
    fuel_type: str  # FuelType value
    year: int
    price: float
    status: str = VehicleStatus.available.value
    km_driven: Optional[float] = None
    mileage: Optional[float] = None
    ownership: Optional[str] = None  # Ownership value
    images: list[VehicleImage] = field(default_factory=list)
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def image_urls(self) -> list[str]:
        return [image.url for image in self.images]
