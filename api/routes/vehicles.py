"""
api/routes/vehicles.py -- Vehicle listing routes for the dealership REST API.

Routes:
  GET    /vehicles                              -- list all (public)
  GET    /vehicles/{vehicle_id}                 -- detail (public)
  POST   /vehicles                              -- create with >= 1 image
  PUT    /vehicles/{vehicle_id}                 -- patch fields, append images
  DELETE /vehicles/{vehicle_id}                 -- delete record + remote images
  DELETE /vehicles/{vehicle_id}/images/{index}  -- delete one image

Write routes run the chain: auth gate (Depends) -> read multipart/JSON body ->
file filter + validation (media.uploads) -> field validation (api.models) ->
store checks -> image host upload -> store write. Nothing is uploaded until
every cheap check has passed, so a rejected request leaves no orphaned images.

Image host and store calls block (HTTP and SQLite), so the async handlers run
them in the threadpool via run_in_threadpool() to keep the event loop free.

Remote image deletion is best-effort everywhere: failures are logged through
the DeletionReport and never stop the record change.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from api.limiter import limiter
from api.models import (
    MessageResponse,
    VehicleCreate,
    VehicleEnvelope,
    VehicleListResponse,
    VehicleOut,
    VehiclePatch,
    parse_body,
)
from auth.dependencies import get_current_user
from auth.models import AuthContext
from core.config import get_settings
from core.errors import BadRequest, Conflict, NotFound
from inventory.models import VehicleImage
from inventory.store import VehicleStore
from media.client import MediaClient
from media.uploads import collect_image_files, delete_images, upload_images, validate_image_files

logger = logging.getLogger("dealership.api.vehicles")

router = APIRouter()

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_payload(request: Request) -> tuple[dict, list[tuple[str, UploadFile]]]:
    """Split the request body into (fields, file parts).

    Multipart and urlencoded bodies come from the admin form; JSON bodies come
    from scripts. JSON never carries files.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        fields: dict = {}
        parts: list[tuple[str, UploadFile]] = []
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                parts.append((key, value))
            else:
                fields[key] = value
        return fields, parts

    raw = await request.body()
    if not raw.strip():
        return {}, []
    try:
        data = await request.json()
    except ValueError as exc:
        raise BadRequest("Malformed JSON body") from exc
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data, []


def _get_or_404(store: VehicleStore, vehicle_id: int):
    vehicle = store.get_vehicle(vehicle_id)
    if vehicle is None:
        raise NotFound("Vehicle not found")
    return vehicle


def _parse_index(raw: str, length: int) -> int:
    try:
        index = int(raw)
    except ValueError as exc:
        raise BadRequest("Invalid image index") from exc
    if index < 0 or index >= length:
        raise BadRequest("Invalid image index")
    return index


async def _discard(media: MediaClient, images: list[VehicleImage]) -> None:
    if images:
        await run_in_threadpool(delete_images, media, images)


def _who(auth: AuthContext) -> str:
    return auth.email if auth.user is not None else f"deleted user {auth.user_id}"


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/vehicles", response_model=VehicleListResponse)
def list_vehicles(request: Request, optimized: bool = False) -> VehicleListResponse:
    """Return every vehicle. ?optimized=true rewrites image URLs with delivery transformations."""
    store: VehicleStore = request.app.state.vehicles
    return VehicleListResponse(data=[VehicleOut.from_vehicle(v, optimized) for v in store.list_vehicles()])


@limiter.limit("60/minute")
@router.get("/vehicles/{vehicle_id}", response_model=VehicleEnvelope)
def get_vehicle(request: Request, vehicle_id: int, optimized: bool = False) -> VehicleEnvelope:
    store: VehicleStore = request.app.state.vehicles
    return VehicleEnvelope(data=VehicleOut.from_vehicle(_get_or_404(store, vehicle_id), optimized))


# ---------------------------------------------------------------------------
# POST /vehicles
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.post("/vehicles", response_model=VehicleEnvelope, status_code=201)
async def create_vehicle(request: Request, auth: AuthContext = Depends(get_current_user)) -> VehicleEnvelope:
    """Create a listing from form fields plus one or more images.

    The title pre-check gives a friendly 400; the UNIQUE constraint catches
    the concurrent case, in which the freshly uploaded images are removed.
    """
    settings = get_settings()
    fields, parts = await _read_payload(request)
    images = await collect_image_files(parts, settings.max_images_per_request, settings.max_image_bytes)
    validate_image_files(images, settings.max_image_bytes, required=True)
    body = parse_body(VehicleCreate, fields)

    store: VehicleStore = request.app.state.vehicles
    media: MediaClient = request.app.state.media
    if await run_in_threadpool(store.get_by_title, body.title) is not None:
        raise Conflict("Vehicle already exists")

    vehicle = body.to_vehicle()
    vehicle.images = await run_in_threadpool(upload_images, media, images)
    try:
        vehicle_id = await run_in_threadpool(store.create_vehicle, vehicle)
    except IntegrityError as exc:
        await _discard(media, vehicle.images)
        raise Conflict("Vehicle already exists") from exc

    created = await run_in_threadpool(store.get_vehicle, vehicle_id)
    logger.info("Vehicle %d %r created by %s with %d image(s)", vehicle_id, created.title, _who(auth), len(images))
    return VehicleEnvelope(
        data=VehicleOut.from_vehicle(created),
        message="Vehicle created successfully with images",
    )


# ---------------------------------------------------------------------------
# PUT /vehicles/{vehicle_id}
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.put("/vehicles/{vehicle_id}", response_model=VehicleEnvelope)
async def update_vehicle(
    request: Request,
    vehicle_id: int,
    auth: AuthContext = Depends(get_current_user),
) -> VehicleEnvelope:
    """Patch fields and append any uploaded images to the existing list.

    An "images" field in the body is ignored; the list only changes through
    uploads here and the single-image delete route.
    """
    settings = get_settings()
    fields, parts = await _read_payload(request)
    images = await collect_image_files(parts, settings.max_images_per_request, settings.max_image_bytes)
    validate_image_files(images, settings.max_image_bytes, required=False)
    patch = parse_body(VehiclePatch, fields)

    store: VehicleStore = request.app.state.vehicles
    media: MediaClient = request.app.state.media
    existing = await run_in_threadpool(_get_or_404, store, vehicle_id)

    updates = patch.to_fields()
    new_title = updates.get("title")
    if new_title is not None and new_title != existing.title:
        holder = await run_in_threadpool(store.get_by_title, new_title)
        if holder is not None and holder.id != vehicle_id:
            raise Conflict("Vehicle already exists")

    added: list[VehicleImage] = []
    if images:
        added = await run_in_threadpool(upload_images, media, images)
        updates["images"] = existing.images + added

    try:
        found = await run_in_threadpool(store.update_vehicle, vehicle_id, **updates)
    except IntegrityError as exc:
        await _discard(media, added)
        raise Conflict("Vehicle already exists") from exc
    if not found:
        # Deleted between the read and the write
        await _discard(media, added)
        raise NotFound("Vehicle not found")

    logger.info(
        "Vehicle %d updated by %s (fields=%s, images added=%d)",
        vehicle_id,
        _who(auth),
        sorted(k for k in updates if k != "images"),
        len(added),
    )
    return VehicleEnvelope(
        data=VehicleOut.from_vehicle(await run_in_threadpool(store.get_vehicle, vehicle_id)),
        message="Vehicle updated successfully",
    )


# ---------------------------------------------------------------------------
# DELETE /vehicles/{vehicle_id}
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.delete("/vehicles/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    request: Request,
    vehicle_id: int,
    auth: AuthContext = Depends(get_current_user),
) -> MessageResponse:
    """Delete the listing after a best-effort delete of each remote image."""
    store: VehicleStore = request.app.state.vehicles
    media: MediaClient = request.app.state.media
    vehicle = await run_in_threadpool(_get_or_404, store, vehicle_id)

    if vehicle.images:
        report = await run_in_threadpool(delete_images, media, vehicle.images)
        if not report.ok:
            logger.warning(
                "Vehicle %d: %d of %d image(s) could not be removed from the image host",
                vehicle_id,
                len(report.failed),
                len(vehicle.images),
            )

    await run_in_threadpool(store.delete_vehicle, vehicle_id)
    logger.info("Vehicle %d deleted by %s", vehicle_id, _who(auth))
    return MessageResponse(message="Vehicle deleted successfully")


# ---------------------------------------------------------------------------
# DELETE /vehicles/{vehicle_id}/images/{image_index}
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.delete("/vehicles/{vehicle_id}/images/{image_index}", response_model=VehicleEnvelope)
async def delete_vehicle_image(
    request: Request,
    vehicle_id: int,
    image_index: str,
    auth: AuthContext = Depends(get_current_user),
) -> VehicleEnvelope:
    """Remove one image by zero-based index, keeping the order of the rest.

    image_index is taken as a string so a non-numeric value yields the same
    "Invalid image index" error as an out-of-range one.
    """
    store: VehicleStore = request.app.state.vehicles
    media: MediaClient = request.app.state.media
    vehicle = await run_in_threadpool(_get_or_404, store, vehicle_id)
    index = _parse_index(image_index, len(vehicle.images))

    removed = vehicle.images[index]
    await run_in_threadpool(delete_images, media, [removed])

    remaining = vehicle.images[:index] + vehicle.images[index + 1 :]
    await run_in_threadpool(store.update_vehicle, vehicle_id, images=remaining)
    logger.info("Vehicle %d: image %d removed by %s", vehicle_id, index, _who(auth))
    return VehicleEnvelope(
        data=VehicleOut.from_vehicle(await run_in_threadpool(store.get_vehicle, vehicle_id)),
        message="Image deleted successfully",
    )
