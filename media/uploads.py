"""
media/uploads.py -- Upload validation, batch upload, and best-effort deletion.

Request pipeline for file-bearing vehicle routes:
  1. collect_image_files()  -- filter stage while reading multipart parts:
                               field name, file count, MIME type, size.
  2. validate_image_files() -- dedicated validation pass over the accepted
                               files (at least one required on create).
  3. upload_images()        -- forward each file to the image host in order.

Any violation in steps 1-2 fails the whole batch with BadRequest before the
handler touches the store or the image host.

Deletion is best-effort: delete_images() never raises. Each failure is
recorded in the returned DeletionReport and logged, and the caller carries on
with the record change it was making.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from starlette.datastructures import UploadFile

from core.errors import BadRequest
from inventory.models import VehicleImage
from media.client import ImageFile, MediaClient, MediaError
from media.urls import get_full_public_id

logger = logging.getLogger("dealership.media")

IMAGE_FIELDS = ("images", "images[]")


def _too_large(max_bytes: int) -> BadRequest:
    return BadRequest(f"File too large. Maximum file size is {max_bytes // (1024 * 1024)}MB")


def _is_image(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith("image/")


async def collect_image_files(
    parts: list[tuple[str, UploadFile]],
    max_files: int,
    max_bytes: int,
) -> list[ImageFile]:
    """Read multipart file parts into ImageFile values, rejecting the batch on the first violation.

    Args:
        parts:     (field name, upload) pairs in form order.
        max_files: Maximum number of files accepted in one request.
        max_bytes: Maximum size of a single file.

    Parts with an empty filename (an untouched file input) are skipped.
    """
    uploads = []
    for field_name, upload in parts:
        if field_name not in IMAGE_FIELDS:
            raise BadRequest("Unexpected file field")
        if upload.filename:
            uploads.append(upload)

    if len(uploads) > max_files:
        raise BadRequest(f"Too many files. Maximum {max_files} images allowed")

    images: list[ImageFile] = []
    for upload in uploads:
        if not _is_image(upload.content_type):
            raise BadRequest("Only image files are allowed")
        # Read one byte past the limit so oversize files are detected without
        # buffering the whole body.
        content = await upload.read(max_bytes + 1)
        if len(content) > max_bytes:
            raise _too_large(max_bytes)
        images.append(ImageFile(filename=upload.filename, content_type=upload.content_type, content=content))
    return images


def validate_image_files(images: list[ImageFile], max_bytes: int, required: bool) -> None:
    """Second validation pass over accepted files. Raises BadRequest on any violation."""
    if required and not images:
        raise BadRequest("At least one image is required")
    for image in images:
        if not _is_image(image.content_type):
            raise BadRequest("Only image files are allowed")
        if image.size > max_bytes:
            raise _too_large(max_bytes)


def upload_images(client: MediaClient, images: list[ImageFile]) -> list[VehicleImage]:
    """Upload files in order and return the stored image entries in the same order.

    If any upload fails, images already uploaded in this batch are deleted
    (best-effort) and the MediaError propagates.
    """
    uploaded: list[VehicleImage] = []
    for image in images:
        try:
            result = client.upload(image)
        except MediaError:
            if uploaded:
                report = delete_images(client, uploaded)
                logger.warning(
                    "Upload batch failed after %d image(s); rolled back %d, %d left orphaned",
                    len(uploaded),
                    len(report.deleted),
                    len(report.failed),
                )
            raise
        uploaded.append(VehicleImage(url=result.secure_url, public_id=result.public_id))
    return uploaded


# ---------------------------------------------------------------------------
# Best-effort deletion
# ---------------------------------------------------------------------------


@dataclass
class DeletionFailure:
    url: str
    reason: str


@dataclass
class DeletionReport:
    """Outcome of a best-effort batch delete. deleted holds public ids; failed holds per-image reasons."""

    deleted: list[str] = field(default_factory=list)
    failed: list[DeletionFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def delete_images(client: MediaClient, images: list[VehicleImage], folder: str | None = None) -> DeletionReport:
    """Delete each image from the host, collecting failures instead of raising.

    The stored public id is used when present; otherwise it is rebuilt from
    the URL under folder (default: the client's folder).
    """
    folder = folder or getattr(client, "folder", None)
    report = DeletionReport()
    for image in images:
        if not image.url:
            continue
        public_id = image.public_id
        if not public_id:
            public_id = get_full_public_id(image.url, folder) if folder else get_full_public_id(image.url)
        if not public_id:
            report.failed.append(DeletionFailure(url=image.url, reason="could not derive public id"))
            continue
        try:
            client.destroy(public_id)
        except MediaError as exc:
            report.failed.append(DeletionFailure(url=image.url, reason=exc.message))
            continue
        except Exception as exc:
            report.failed.append(DeletionFailure(url=image.url, reason=f"{type(exc).__name__}: {exc}"))
            continue
        report.deleted.append(public_id)

    for failure in report.failed:
        logger.warning("Image delete failed for %s: %s", failure.url, failure.reason)
    return report
