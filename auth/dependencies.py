"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. Authorization: Bearer <token> header -- API clients and the admin SPA.
  2. "token" cookie -- set by POST /api/auth/register and /login.

Both converge on an AuthContext after successful verification. The context is
what handlers receive; nothing is attached to the request object.

get_current_user() raises Unauthorized (HTTP 401) with a message that tells
"no token" apart from "token failed".

Layer rule: no imports from api/, inventory/, or media/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import dataclasses

from fastapi import Request

from auth.models import AuthContext
from auth.store import UserStore
from auth.tokens import AUTH_COOKIE, decode_access_token
from core.errors import Unauthorized

_BEARER = "Bearer "


def _extract_token(request: Request) -> str | None:
    """Return the raw JWT from the Authorization header or the auth cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith(_BEARER):
        return auth_header[len(_BEARER) :].strip() or None

    cookie = request.cookies.get(AUTH_COOKIE, "")
    if cookie.startswith(_BEARER):
        cookie = cookie[len(_BEARER) :]
    return cookie.strip() or None


def _resolve(request: Request, payload: dict) -> AuthContext:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(payload["id"])
    if user is not None:
        user = dataclasses.replace(user, hashed_password=None)
    return AuthContext(
        user_id=payload["id"],
        email=payload.get("email", ""),
        name=payload.get("name", ""),
        user=user,
    )


def get_current_user(request: Request) -> AuthContext:
    """Require authentication. Raises Unauthorized if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.post("/vehicles")
        async def route(auth: AuthContext = Depends(get_current_user)): ...

    A validly signed token for a deleted account still passes; the returned
    context has user=None.
    """
    token = _extract_token(request)
    if token is None:
        raise Unauthorized("Not authorized, no token")
    payload = decode_access_token(token)
    if payload is None:
        raise Unauthorized("Not authorized, token failed")
    return _resolve(request, payload)
