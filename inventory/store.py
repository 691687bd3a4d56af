"""
inventory/store.py -- SQLAlchemy-backed persistence layer for vehicle listings.

Uses SQLAlchemy Core (not ORM) so the dataclasses in inventory/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change.

Pattern: Repository + Data Mapper. VehicleStore is the repository; the
_row_to_vehicle function is the mapper. Route handlers never touch SQL.

Images are stored as a JSON array of {"url", "public_id"} objects in a single
Text column, so their order is the array order. Rows written before public ids
were tracked hold plain URL strings; the mapper accepts both shapes.

Title uniqueness: the column is UNIQUE. Handlers still pre-check with
get_by_title() to return a friendly error, but the constraint is what stops
two concurrent creates with the same title -- the loser gets IntegrityError.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = VehicleStore()                               # SQLite default
    store = VehicleStore("postgresql://user:pw@host/db") # PostgreSQL
    vehicle_id = store.create_vehicle(vehicle)
    store.update_vehicle(vehicle_id, price=450000.0)
    store.close()
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from inventory.models import Vehicle, VehicleImage, VehicleStatus

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'dealership_inventory.db'}"

# Dataclass field -> column for values that need no conversion on write.
_SCALAR_FIELDS = {
    "title",
    "brand",
    "model",
    "vehicle_type",
    "fuel_type",
    "year",
    "price",
    "status",
    "km_driven",
    "mileage",
    "ownership",
}

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_vehicles = Table(
    "vehicles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False, unique=True),
    Column("brand", String(100), nullable=False),
    Column("model", String(100), nullable=False),
    Column("vehicle_type", String(20), nullable=False),
    Column("fuel_type", String(20), nullable=False),
    Column("year", Integer, nullable=False),
    Column("price", Float, nullable=False),
    Column("status", String(20), nullable=False, server_default=VehicleStatus.available.value),
    Column("km_driven", Float),
    Column("mileage", Float),
    Column("ownership", String(20)),
    Column("images", Text, nullable=False, server_default="[]"),  # JSON array
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump_images(images: list[VehicleImage]) -> str:
    return json.dumps([{"url": i.url, "public_id": i.public_id} for i in images])


def _load_images(raw: Optional[str]) -> list[VehicleImage]:
    if not raw:
        return []
    images = []
    for entry in json.loads(raw):
        if isinstance(entry, str):
            images.append(VehicleImage(url=entry))
        else:
            images.append(VehicleImage(url=entry["url"], public_id=entry.get("public_id")))
    return images


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode; set per-connection because PRAGMAs are not pooled."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class VehicleStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Route handlers run in FastAPI's threadpool, so one connection
            # may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_vehicle(self, vehicle: Vehicle) -> int:
        """Insert a new vehicle and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the title already exists.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _vehicles.insert().values(
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
                    images=_dump_images(vehicle.images),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        """Fetch a single vehicle by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_vehicles.select().where(_vehicles.c.id == vehicle_id)).fetchone()
        return _row_to_vehicle(row) if row is not None else None

    def get_by_title(self, title: str) -> Optional[Vehicle]:
        """Look up a vehicle by exact title match. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_vehicles.select().where(_vehicles.c.title == title)).fetchone()
        return _row_to_vehicle(row) if row is not None else None

    def list_vehicles(self) -> list[Vehicle]:
        """Return every vehicle in insertion order. No paging."""
        with self.engine.connect() as conn:
            rows = conn.execute(_vehicles.select().order_by(_vehicles.c.id)).fetchall()
        return [_row_to_vehicle(r) for r in rows]

    def update_vehicle(self, vehicle_id: int, **fields) -> bool:
        """Update fields on an existing vehicle and stamp updated_at.

        Accepts any subset of the scalar Vehicle fields plus images
        (list[VehicleImage], which replaces the stored list -- callers append
        before passing it). Unknown field names raise ValueError.

        Returns True if a row was updated, False if vehicle_id was not found.
        Raises sqlalchemy.exc.IntegrityError if a new title collides.
        """
        unknown = set(fields) - _SCALAR_FIELDS - {"images"}
        if unknown:
            raise ValueError(f"Unknown vehicle fields: {sorted(unknown)!r}")
        values = {k: v for k, v in fields.items() if k in _SCALAR_FIELDS}
        if "images" in fields:
            values["images"] = _dump_images(fields["images"])
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_vehicles.update().where(_vehicles.c.id == vehicle_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete_vehicle(self, vehicle_id: int) -> bool:
        """Delete a vehicle record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_vehicles.delete().where(_vehicles.c.id == vehicle_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_vehicle(row) -> Vehicle:
    return Vehicle(
        id=row.id,
        title=row.title,
        brand=row.brand,
        model=row.model,
        vehicle_type=row.vehicle_type,
        fuel_type=row.fuel_type,
        year=row.year,
        price=row.price,
        status=row.status,
        km_driven=row.km_driven,
        mileage=row.mileage,
        ownership=row.ownership,
        images=_load_images(row.images),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
