"""
media/urls.py -- Cloudinary URL helpers.

Pure functions, no I/O. Delivery URLs look like:

    https://res.cloudinary.com/<cloud>/image/upload/v1712345678/<folder>/<name>.jpg

Deletion needs the asset's public id (<folder>/<name>). New images store the
id returned at upload time; get_full_public_id() rebuilds it from the URL for
entries that never had one. The rebuild assumes the asset sits directly in
the configured folder, which holds for everything this service uploads.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger("dealership.media")

DEFAULT_FOLDER = "rathore-motors-banda/vehicles"
DEFAULT_TRANSFORMATIONS = "w_800,h_600,c_limit,q_auto,f_auto"


def extract_public_id_from_url(image_url: str) -> str | None:
    """Return the file name of the URL's last path segment without its extension.

    "https://res.cloudinary.com/demo/image/upload/v1/cars/abc123.jpg" -> "abc123"

    Returns None if the URL cannot be parsed or has no usable last segment.
    """
    try:
        parts = urlsplit(image_url)
    except ValueError as exc:
        logger.warning("Could not parse image URL %r: %s", image_url, exc)
        return None
    if not parts.scheme or not parts.netloc:
        return None
    file_name = parts.path.rsplit("/", 1)[-1]
    public_id = file_name.split(".")[0]
    return public_id or None


def get_full_public_id(image_url: str, folder: str = DEFAULT_FOLDER) -> str | None:
    """Return "<folder>/<public id>" for the URL, or None if extraction fails."""
    public_id = extract_public_id_from_url(image_url)
    if not public_id:
        return None
    return f"{folder}/{public_id}"


def is_valid_cloudinary_url(url: str) -> bool:
    """Return True if the URL's host is cloudinary.com or one of its subdomains."""
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return False
    return host == "cloudinary.com" or host.endswith(".cloudinary.com")


def get_optimized_image_url(original_url: str, transformations: str = DEFAULT_TRANSFORMATIONS) -> str:
    """Insert a delivery transformation segment right after the "upload" path component.

    Non-Cloudinary URLs, and Cloudinary URLs without an "upload" component,
    are returned unchanged.
    """
    if not is_valid_cloudinary_url(original_url):
        return original_url
    parts = urlsplit(original_url)
    segments = parts.path.split("/")
    if "upload" not in segments:
        return original_url
    index = segments.index("upload")
    segments.insert(index + 1, transformations)
    return urlunsplit(parts._replace(path="/".join(segments)))
