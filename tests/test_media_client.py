"""Unit tests for media/client.py -- CloudinaryClient over mocked SDK calls."""

from unittest.mock import MagicMock

import cloudinary.exceptions
import pytest

from media.client import ALLOWED_FORMATS, UPLOAD_TRANSFORMATION, CloudinaryClient, ImageFile, MediaError

CREDENTIALS = {"cloud_name": "demo", "api_key": "key123", "api_secret": "secret456"}


def _client(**overrides) -> CloudinaryClient:
    kwargs = dict(folder="cars", timeout=12.0, **CREDENTIALS)
    kwargs.update(overrides)
    return CloudinaryClient(**kwargs)


@pytest.fixture
def sdk(monkeypatch):
    """Replace the four SDK entry points the client uses with MagicMocks."""
    mocks = {
        "upload": MagicMock(),
        "destroy": MagicMock(),
        "ping": MagicMock(),
        "resources": MagicMock(),
    }
    monkeypatch.setattr("cloudinary.uploader.upload", mocks["upload"])
    monkeypatch.setattr("cloudinary.uploader.destroy", mocks["destroy"])
    monkeypatch.setattr("cloudinary.api.ping", mocks["ping"])
    monkeypatch.setattr("cloudinary.api.resources", mocks["resources"])
    return mocks


def _assert_credentials(call) -> None:
    for key, value in CREDENTIALS.items():
        assert call.kwargs[key] == value
    assert call.kwargs["timeout"] == 12.0


def test_upload_passes_folder_transformation_and_credentials(sdk):
    sdk["upload"].return_value = {
        "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/cars/a.jpg",
        "public_id": "cars/a",
    }
    uploaded = _client().upload(ImageFile("a.jpg", "image/jpeg", b"data"))

    assert uploaded.public_id == "cars/a"
    assert uploaded.secure_url.endswith("cars/a.jpg")
    call = sdk["upload"].call_args
    assert call.args[0].read() == b"data"
    assert call.kwargs["filename"] == "a.jpg"
    assert call.kwargs["folder"] == "cars"
    assert call.kwargs["transformation"] == UPLOAD_TRANSFORMATION
    assert call.kwargs["allowed_formats"] == ALLOWED_FORMATS
    _assert_credentials(call)


def test_upload_missing_fields_is_media_error(sdk):
    sdk["upload"].return_value = {"error": {"message": "bad"}}
    with pytest.raises(MediaError, match="Failed to upload image"):
        _client().upload(ImageFile("a.jpg", "image/jpeg", b"data"))


def test_upload_sdk_error_is_media_error(sdk):
    sdk["upload"].side_effect = cloudinary.exceptions.Error("Invalid image file")
    with pytest.raises(MediaError, match="Failed to upload image"):
        _client().upload(ImageFile("a.jpg", "image/jpeg", b"data"))


def test_destroy_returns_result(sdk):
    sdk["destroy"].return_value = {"result": "not found"}
    assert _client().destroy("cars/a") == "not found"
    call = sdk["destroy"].call_args
    assert call.args == ("cars/a",)
    _assert_credentials(call)


def test_destroy_sdk_error_is_media_error(sdk):
    sdk["destroy"].side_effect = cloudinary.exceptions.GeneralError("Server error")
    with pytest.raises(MediaError, match="Failed to delete image"):
        _client().destroy("cars/a")


def test_destroy_non_object_response_is_media_error(sdk):
    sdk["destroy"].return_value = ["unexpected"]
    with pytest.raises(MediaError, match="Failed to delete image"):
        _client().destroy("cars/a")


def test_unconfigured_client_never_calls_sdk(sdk):
    client = _client(api_secret="")
    assert client.is_configured is False
    with pytest.raises(MediaError, match="not configured"):
        client.destroy("cars/a")
    sdk["destroy"].assert_not_called()


def test_ping(sdk):
    sdk["ping"].return_value = {"status": "ok"}
    assert _client().ping() == {"status": "ok"}
    _assert_credentials(sdk["ping"].call_args)


def test_ping_authorization_error(sdk):
    sdk["ping"].side_effect = cloudinary.exceptions.AuthorizationRequired("bad key")
    with pytest.raises(MediaError, match="ping"):
        _client().ping()


def test_list_resources_passes_prefix(sdk):
    sdk["resources"].return_value = {"resources": [{"public_id": "cars/a"}]}
    assert _client().list_resources("cars", max_results=1) == [{"public_id": "cars/a"}]
    call = sdk["resources"].call_args
    assert call.kwargs["type"] == "upload"
    assert call.kwargs["prefix"] == "cars"
    assert call.kwargs["max_results"] == 1
    _assert_credentials(call)
