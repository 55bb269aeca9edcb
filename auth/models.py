"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond the sanitizing
projection). Stores and the service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserRecord:
    """A registered identity as held by the credential store.

    hashed_password is a bcrypt hash; it never leaves auth/ -- callers outside
    the service receive a UserProfile instead. Records are immutable once
    inserted (there is no update or delete path).
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None

    def to_profile(self) -> UserProfile:
        return UserProfile(username=self.username, email=self.email, created_at=self.created_at or "")


@dataclass(frozen=True)
class UserProfile:
    """Sanitized user view returned by register() and list_users()."""

    username: str
    email: str
    created_at: str = ""


@dataclass(frozen=True)
class LoginEvent:
    """One successful login. Append-only: written once, never updated."""

    username: str
    login_time: datetime
    id: int | None = None


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login.

    token is the encoded JWT. expires_at is always issued_at plus the
    configured session lifetime.
    """

    token: str
    issued_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())
