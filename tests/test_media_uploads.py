"""Unit tests for media/uploads.py -- file filtering, validation, upload and best-effort delete.

Uses the FakeMediaClient fixture from conftest.py in place of Cloudinary.
"""

import asyncio
import io

import pytest
from starlette.datastructures import Headers, UploadFile

from core.errors import BadRequest
from inventory.models import VehicleImage
from media.client import ImageFile, MediaError
from media.uploads import collect_image_files, delete_images, upload_images, validate_image_files

MAX_BYTES = 1024


def _upload(filename: str = "car.jpg", content: bytes = b"jpegdata", content_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


def _collect(parts, max_files: int = 3):
    return asyncio.run(collect_image_files(parts, max_files, MAX_BYTES))


# ---------------------------------------------------------------------------
# collect_image_files
# ---------------------------------------------------------------------------


def test_collect_reads_files_in_order():
    images = _collect([("images", _upload("a.jpg", b"aa")), ("images[]", _upload("b.png", b"bbb", "image/png"))])
    assert [i.filename for i in images] == ["a.jpg", "b.png"]
    assert images[1].content == b"bbb"
    assert images[1].content_type == "image/png"


def test_collect_skips_empty_file_inputs():
    assert _collect([("images", _upload(filename=""))]) == []


def test_collect_rejects_unexpected_field():
    with pytest.raises(BadRequest, match="Unexpected file field"):
        _collect([("avatar", _upload())])


def test_collect_rejects_too_many():
    with pytest.raises(BadRequest, match="Maximum 3 images allowed"):
        _collect([("images", _upload()) for _ in range(4)])


def test_collect_rejects_non_image():
    with pytest.raises(BadRequest, match="Only image files are allowed"):
        _collect([("images", _upload("doc.pdf", b"%PDF", "application/pdf"))])


def test_collect_rejects_oversize():
    with pytest.raises(BadRequest, match="File too large"):
        _collect([("images", _upload(content=b"x" * (MAX_BYTES + 1)))])


def test_collect_accepts_exact_limit():
    assert _collect([("images", _upload(content=b"x" * MAX_BYTES))])[0].size == MAX_BYTES


# ---------------------------------------------------------------------------
# validate_image_files
# ---------------------------------------------------------------------------


def test_validate_requires_one_image_on_create():
    with pytest.raises(BadRequest, match="At least one image is required"):
        validate_image_files([], MAX_BYTES, required=True)
    validate_image_files([], MAX_BYTES, required=False)


def test_validate_checks_type_and_size():
    with pytest.raises(BadRequest):
        validate_image_files([ImageFile("a.txt", "text/plain", b"x")], MAX_BYTES, required=False)
    with pytest.raises(BadRequest):
        validate_image_files([ImageFile("a.jpg", "image/jpeg", b"x" * (MAX_BYTES + 1))], MAX_BYTES, required=False)


# ---------------------------------------------------------------------------
# upload_images
# ---------------------------------------------------------------------------


def test_upload_returns_images_in_order(fake_media):
    files = [ImageFile("a.jpg", "image/jpeg", b"a"), ImageFile("b.jpg", "image/jpeg", b"b")]
    images = upload_images(fake_media, files)
    assert [i.public_id for i in images] == fake_media.uploaded
    assert all(i.url.endswith(".jpg") for i in images)


def test_upload_failure_rolls_back_batch(fake_media):
    class FailsSecond:
        folder = fake_media.folder

        def __init__(self):
            self.calls = 0

        def upload(self, image):
            self.calls += 1
            if self.calls == 2:
                raise MediaError("Failed to upload image")
            return fake_media.upload(image)

        def destroy(self, public_id):
            return fake_media.destroy(public_id)

    files = [ImageFile(f"{n}.jpg", "image/jpeg", b"x") for n in range(3)]
    with pytest.raises(MediaError):
        upload_images(FailsSecond(), files)
    assert fake_media.destroyed == fake_media.uploaded


# ---------------------------------------------------------------------------
# delete_images
# ---------------------------------------------------------------------------


def test_delete_uses_stored_public_id(fake_media):
    image = VehicleImage(url="https://res.cloudinary.com/d/image/upload/v1/x/a.jpg", public_id="x/a")
    report = delete_images(fake_media, [image])
    assert report.ok
    assert fake_media.destroyed == ["x/a"]


def test_delete_falls_back_to_url(fake_media):
    url = "https://res.cloudinary.com/d/image/upload/v1/anything/abc.jpg"
    report = delete_images(fake_media, [VehicleImage(url=url)])
    assert report.deleted == [f"{fake_media.folder}/abc"]


def test_delete_collects_failures_and_continues(fake_media):
    images = [
        VehicleImage(url=f"https://res.cloudinary.com/d/image/upload/v1/f/{n}.jpg", public_id=f"f/{n}") for n in range(3)
    ]
    fake_media.failing_ids.add("f/1")
    report = delete_images(fake_media, images)
    assert not report.ok
    assert report.deleted == ["f/0", "f/2"]
    assert [f.url for f in report.failed] == [images[1].url]
    assert report.failed[0].reason == "Failed to delete image"


def test_delete_unparseable_url_is_reported(fake_media):
    report = delete_images(fake_media, [VehicleImage(url="not a url")])
    assert report.failed[0].reason == "could not derive public id"
    assert fake_media.destroyed == []


def test_delete_unexpected_client_error_is_reported(fake_media, monkeypatch):
    images = [
        VehicleImage(url=f"https://res.cloudinary.com/d/image/upload/v1/f/{n}.jpg", public_id=f"f/{n}") for n in range(3)
    ]
    real_destroy = fake_media.destroy

    def destroy(public_id: str) -> str:
        if public_id == "f/1":
            raise AttributeError("'list' object has no attribute 'get'")
        return real_destroy(public_id)

    monkeypatch.setattr(fake_media, "destroy", destroy)
    report = delete_images(fake_media, images)
    assert report.deleted == ["f/0", "f/2"]
    assert [f.url for f in report.failed] == [images[1].url]
    assert report.failed[0].reason.startswith("AttributeError")
