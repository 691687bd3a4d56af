"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in inventory/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, inventory/, or media/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered dealership account.

    email is stored lower-cased and stripped; the store normalizes it on every
    write and lookup so "Admin@Example.com" and "admin@example.com" are the
    same account.

    hashed_password is None on copies handed to request handlers (see
    AuthContext) so the hash never travels past the auth layer.
    """

    name: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved by the auth gate for one request.

    user_id / email / name come from the verified token claims. user is the
    live record looked up by user_id with the password hash stripped, or None
    when the account no longer exists (the token is still validly signed).
    """

    user_id: int
    email: str
    name: str
    user: User | None = None
