"""
api/routes/auth.py -- Registration, login, and session REST endpoints.

Routes:
  POST /api/auth/register  -- create account; returns token + sets "token" cookie
  POST /api/auth/login     -- password login; returns token + sets "token" cookie
  POST /api/auth/logout    -- clears the cookie
  GET  /api/auth/me        -- current account (requires auth)

Security:
  Register and login are rate-limited per IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, MeResponse, MessageResponse, RegisterRequest, UserOut
from auth.dependencies import get_current_user
from auth.models import AuthContext
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, issue_token, register_user, set_auth_cookie
from core.config import get_settings
from core.errors import NotFound

_LOGIN_LIMIT = get_settings().login_rate_limit

router = APIRouter()


@limiter.limit(_LOGIN_LIMIT)
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, response: Response, body: RegisterRequest) -> AuthResponse:
    """Create an account and start a session.

    Fails with 400 (conflict) if the email is already registered.
    """
    user_store: UserStore = request.app.state.user_store
    _user, token = register_user(user_store, body.name, body.email, body.password)
    set_auth_cookie(response, token)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(token=token)


@limiter.limit(_LOGIN_LIMIT)
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password; issue a fresh 7-day token.

    Unknown email and wrong password return the same 400 invalid_credentials
    error.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    token = issue_token(user)
    set_auth_cookie(response, token)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(token=token)


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie. Bearer tokens held by clients stay valid until they expire."""
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out")


@router.get("/auth/me", response_model=MeResponse)
def me(auth: AuthContext = Depends(get_current_user)) -> MeResponse:
    """Return the live account behind the token, or 404 if it was deleted."""
    if auth.user is None:
        raise NotFound("User not found")
    return MeResponse(data=UserOut(id=auth.user.id, name=auth.user.name, email=auth.user.email))
