"""
media/client.py -- Image host client (Cloudinary, through the official SDK).

The image host is an explicit object, built once in the API lifespan from
Settings and stored on app.state.media. Handlers and helpers receive it as an
argument, so tests swap in a fake that satisfies the MediaClient protocol.

SDK calls used:
  cloudinary.uploader.upload    -- signed upload into the configured folder
  cloudinary.uploader.destroy   -- signed delete by public id
  cloudinary.api.ping           -- Admin API health check
  cloudinary.api.resources      -- Admin API listing under a prefix

Credentials are passed on every call instead of through the SDK's global
cloudinary.config(), so two clients never share account state.

No retries. A failed call raises MediaError; callers decide whether that is
fatal (upload) or best-effort (delete).
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader

from core.config import Settings
from core.errors import InternalError

logger = logging.getLogger("dealership.media")

# Incoming transformation applied on upload: automatic quality and format.
UPLOAD_TRANSFORMATION = [{"quality": "auto:good"}, {"fetch_format": "auto"}]
ALLOWED_FORMATS = ["jpg", "jpeg", "png", "webp", "avif"]


class MediaError(InternalError):
    code = "media_error"
    default_message = "Image host request failed."


@dataclass(frozen=True)
class ImageFile:
    """An uploaded file read fully into memory and ready to forward."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class UploadedImage:
    secure_url: str
    public_id: str


class MediaClient(Protocol):
    def upload(self, image: ImageFile) -> UploadedImage: ...

    def destroy(self, public_id: str) -> str: ...

    def ping(self) -> dict: ...

    def list_resources(self, prefix: str, max_results: int = 10) -> list[dict]: ...


class CloudinaryClient:
    """MediaClient backed by the Cloudinary SDK.

    Usage:
        client = CloudinaryClient.from_settings(get_settings())
        uploaded = client.upload(ImageFile("car.jpg", "image/jpeg", data))
        client.destroy(uploaded.public_id)
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        timeout: float = 30.0,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.folder = folder
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudinaryClient":
        if not settings.cloudinary_configured:
            logger.warning("Cloudinary credentials are not set -- image uploads will fail")
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.media_folder,
            timeout=settings.media_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self._api_secret)

    # ------------------------------------------------------------------
    # Uploader API
    # ------------------------------------------------------------------

    def upload(self, image: ImageFile) -> UploadedImage:
        """Upload one image into the configured folder. Raises MediaError on failure."""
        body = self._call(
            cloudinary.uploader.upload,
            io.BytesIO(image.content),
            failure="Failed to upload image",
            filename=image.filename,
            folder=self.folder,
            transformation=UPLOAD_TRANSFORMATION,
            allowed_formats=ALLOWED_FORMATS,
            resource_type="image",
        )
        try:
            return UploadedImage(secure_url=body["secure_url"], public_id=body["public_id"])
        except KeyError as exc:
            raise MediaError("Failed to upload image") from exc

    def destroy(self, public_id: str) -> str:
        """Delete an image by public id and return Cloudinary's result ("ok", "not found").

        Raises MediaError on transport or API errors.
        """
        body = self._call(cloudinary.uploader.destroy, public_id, failure="Failed to delete image")
        result = str(body.get("result", ""))
        if result != "ok":
            logger.warning("Cloudinary destroy of %s returned %r", public_id, result)
        return result

    # ------------------------------------------------------------------
    # Admin API
    # ------------------------------------------------------------------

    def ping(self) -> dict:
        return dict(self._call(cloudinary.api.ping, failure="Image host ping request failed"))

    def list_resources(self, prefix: str, max_results: int = 10) -> list[dict]:
        body = self._call(
            cloudinary.api.resources,
            failure="Image host resources request failed",
            type="upload",
            prefix=prefix,
            max_results=max_results,
        )
        return list(body.get("resources", []))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _call(self, func, *args: Any, failure: str, **options: Any) -> dict:
        """Invoke an SDK function with this client's credentials; map SDK errors to MediaError."""
        if not self.is_configured:
            raise MediaError("Image host is not configured")
        try:
            body = func(
                *args,
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self._api_secret,
                timeout=self.timeout,
                **options,
            )
        except cloudinary.exceptions.Error as exc:
            logger.error("%s: %s", failure, exc)
            raise MediaError(failure) from exc
        if not isinstance(body, dict):
            logger.error("%s: unexpected %s response", failure, type(body).__name__)
            raise MediaError(failure)
        return body
