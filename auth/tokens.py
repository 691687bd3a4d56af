"""
auth/tokens.py -- Password hashing, registration/login, JWT issue and verify.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       id, email, name, iat and exp. The claims are only base64-encoded, so
       nothing beyond identity fields may ever be added to them. Verification
       returns None on any failure -- the auth gate turns that into a 401.

  Expiry: checked here against an explicit clock rather than inside
       jwt.decode(), so the boundary is exact and testable. A token is valid
       through its exp second and rejected strictly after.

  Passwords: bcrypt directly (no passlib wrapper), cost factor from
       Settings.bcrypt_rounds (default 10). The _DUMMY_HASH constant enables
       timing equalization in authenticate_user() so response time does not
       reveal whether an email is registered.

Layer rule: no imports from api/, inventory/, or media/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.config import get_settings
from core.errors import Conflict, InvalidCredentials

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("dealership.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"
_SECRET_KEY = _settings.secret_key

AUTH_COOKIE = "token"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt truncates input past 72 bytes; the API layer caps passwords at
    128 characters which keeps ASCII passwords inside that bound.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("dealership_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    user_id: int,
    email: str,
    name: str,
    expire_seconds: int = 0,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT bound to {id, email, name}.

    Args:
        user_id:        Numeric user ID stored in the DB.
        email:          Account email.
        name:           Display name.
        expire_seconds: Lifetime in seconds. 0 (default) uses
                        Settings.token_expire_seconds (7 days).
        now:            Issue time. Defaults to the current UTC time.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "id": user_id,
        "email": email,
        "name": name,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _SECRET_KEY, algorithm=_ALGORITHM)


def decode_access_token(token: str, now: datetime | None = None) -> dict | None:
    """Verify a JWT's signature and expiry. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(
            token,
            _SECRET_KEY,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False},
        )
    except JWTError:
        return None
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or not isinstance(payload.get("id"), int):
        return None
    current = now or datetime.now(timezone.utc)
    # exp is whole seconds; compare at the same resolution so the exp second itself is valid
    if int(current.timestamp()) > exp:
        return None
    return payload


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.email, user.name)


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


def register_user(store: UserStore, name: str, email: str, password: str) -> tuple[User, str]:
    """Create an account and return (user, token).

    Raises Conflict if the email is already registered, whether the pre-check
    catches it or a concurrent insert trips the UNIQUE constraint.
    """
    if store.get_by_email(email) is not None:
        raise Conflict("User already exists")
    try:
        user_id = store.create_user(User(name=name, email=email, hashed_password=hash_password(password)))
    except IntegrityError as exc:
        raise Conflict("User already exists") from exc
    user = store.get_by_id(user_id)
    logger.info("Registered user %d (%s)", user.id, user.email)
    return user, issue_token(user)


def authenticate_user(store: UserStore, email: str, password: str) -> User:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Raises InvalidCredentials on any failure, with the same message for both
    cases.
    """
    user = store.get_by_email(email)
    if user is None or user.hashed_password is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    return user


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the JWT as an httpOnly "token" cookie on the response.

    samesite="lax": sent on same-site requests and top-level GET navigations,
        not on cross-site POSTs.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the JWT lifetime so both expire together.
    """
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.token_expire_seconds,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(AUTH_COOKIE)
