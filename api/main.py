"""
api/main.py -- FastAPI application entry point for the dealership backend.

Run with:      python main.py serve
               uvicorn api.main:app --reload --port 5000

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for the configured frontend origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter

Lifespan builds the user store, vehicle store and image host client on
startup and closes them on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.vehicles import router as vehicles_router
from auth.store import UserStore
from core.config import get_settings
from core.errors import DealershipError
from inventory.store import VehicleStore
from media.client import CloudinaryClient

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dealership.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create stores and the image host client; close the stores on shutdown.

    Both stores share Settings.database_url. Each creates its own table on
    first use, so a fresh database file needs no migration step.
    """
    settings = get_settings()
    logger.info("Dealership API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.vehicles = VehicleStore(settings.database_url)
    logger.info("Stores initialized")
    app.state.media = CloudinaryClient.from_settings(settings)
    logger.info("Image host client ready (folder=%s)", settings.media_folder)

    yield

    app.state.vehicles.close()
    app.state.user_store.close()
    logger.info("Dealership API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Dealership API",
    description="Vehicle inventory backend with account auth and hosted images.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order the request should meet them: CORS -> SlowAPI.
# Credentials are allowed because the browser client authenticates with the
# "token" cookie.
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(vehicles_router, prefix="/api", tags=["Vehicles"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the same ErrorResponse envelope:
#   {"success": false, "code": ..., "message": ...}
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, detail=detail).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(DealershipError)
async def dealership_error_handler(request: Request, exc: DealershipError) -> JSONResponse:
    """Render a domain error with its own status code and message."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.code, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    slowapi stores the window on the exception as exc.retry_after (int seconds)
    when it knows it.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", detail=str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed path, query or JSON body input is a plain 400 for clients."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg', '')}" if loc else str(err.get("msg", "")))
    return _error(400, "validation_error", "; ".join(messages) or "Request validation failed.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and malformed multipart bodies."""
    if exc.status_code == 404:
        return _error(404, "not_found", f"Not found - {request.url.path}")
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception goes to the log only; the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined here (not in a router) and never rate limited so load balancers can
# poll it freely.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"], response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Report liveness plus database and image host configuration state."""
    database = "ok"
    for store in (request.app.state.user_store, request.app.state.vehicles):
        try:
            if not store.ping():
                database = "error"
        except SQLAlchemyError as exc:
            logger.warning("Health check: database ping failed: %s", exc)
            database = "error"
    media = request.app.state.media
    media_state = "configured" if getattr(media, "is_configured", True) else "unconfigured"
    status = "ok" if database == "ok" else "degraded"
    return HealthResponse(status=status, version=API_VERSION, components={"database": database, "media": media_state})
