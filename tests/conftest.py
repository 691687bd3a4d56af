"""
tests/conftest.py -- Shared test fixtures for the dealership integration tests.

This module provides:
  - FakeMediaClient: in-process stand-in for the Cloudinary client
  - _make_test_stores(): creates isolated in-memory DBs for users + vehicles
  - _patch_lifespan(): wires test stores and the fake client into app.state
  - api_client: TestClient plus a registered user's JWT and the fake client

Named shared-memory SQLite URIs (not plain :memory:) are required because
TestClient runs sync route handlers in a thread pool. Plain :memory: DBs are
per-connection and would present a blank schema to each worker thread.

DEBUG must be set before any auth module import so get_settings()
auto-generates SECRET_KEY instead of raising ValueError. BCRYPT_ROUNDS=4
keeps password hashing fast.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from inventory.store import VehicleStore
from media.client import ImageFile, MediaError, UploadedImage

TEST_EMAIL = "admin@example.com"
TEST_PASSWORD = "testpass123"
TEST_NAME = "Test Admin"

# ---------------------------------------------------------------------------
# Fake image host
# ---------------------------------------------------------------------------


class FakeMediaClient:
    """Records uploads and destroys instead of calling Cloudinary.

    Public ids listed in failing_ids raise MediaError on destroy; setting
    fail_uploads makes every upload raise.
    """

    is_configured = True

    def __init__(self, folder: str = "test-folder/vehicles") -> None:
        self.folder = folder
        self.uploaded: list[str] = []
        self.destroyed: list[str] = []
        self.failing_ids: set[str] = set()
        self.fail_uploads = False
        self._counter = 0

    def upload(self, image: ImageFile) -> UploadedImage:
        if self.fail_uploads:
            raise MediaError("Failed to upload image")
        self._counter += 1
        public_id = f"{self.folder}/img{self._counter}"
        self.uploaded.append(public_id)
        return UploadedImage(
            secure_url=f"https://res.cloudinary.com/demo/image/upload/v1/{public_id}.jpg",
            public_id=public_id,
        )

    def destroy(self, public_id: str) -> str:
        if public_id in self.failing_ids:
            raise MediaError("Failed to delete image")
        self.destroyed.append(public_id)
        return "ok"

    def ping(self) -> dict:
        return {"status": "ok"}

    def list_resources(self, prefix: str, max_results: int = 10) -> list[dict]:
        return []


@pytest.fixture
def fake_media() -> FakeMediaClient:
    return FakeMediaClient()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, VehicleStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_dealership_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), VehicleStore(db_url=url)


def _patch_lifespan(user_store: UserStore, vehicles: VehicleStore, media: FakeMediaClient):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.vehicles = vehicles
        app.state.media = media
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int, FakeMediaClient], None, None]:
    """Yield (client, token, user_id, media) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores and the fake
    image host. Rate limiting is switched off for the module.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, vehicles = _make_test_stores(suffix)
    media = FakeMediaClient()

    uid = user_store.create_user(User(name=TEST_NAME, email=TEST_EMAIL, hashed_password=hash_password(TEST_PASSWORD)))
    token = create_access_token(user_id=uid, email=TEST_EMAIL, name=TEST_NAME, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, vehicles, media)
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid, media

    limiter.enabled = True
    vehicles.close()
    user_store.close()
