"""
auth/service.py -- Registration and login orchestration.

AuthService is constructed once at startup (api/main.py lifespan) with its
collaborators and stored on app.state. It holds no request state, so one
instance is shared by every worker thread.

Error contract: every public method raises only AuthError subclasses.
Storage (SQLAlchemyError) and signing (JWTError) failures are logged with
full detail here and re-raised as a generic InternalError.

Layer rule: no imports from api/ or core/. Configuration values arrive as
constructor arguments.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError

from auth.audit import LoginAuditLog
from auth.errors import ConstraintViolation, DuplicateUser, InternalError, InvalidCredentials, ValidationError
from auth.models import LoginResult, UserProfile, UserRecord
from auth.store import UserStore
from auth.tokens import (
    BCRYPT_MAX_BYTES,
    DEFAULT_EXPIRE_SECONDS,
    DUMMY_HASH,
    create_session_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger("authgate.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require(**fields: str | None) -> None:
    """Raise ValidationError if any field is missing, not a string, or blank."""
    missing = [name for name, value in fields.items() if not isinstance(value, str) or not value.strip()]
    if missing:
        raise ValidationError(f"All fields are required (missing: {', '.join(missing)}).")


class AuthService:
    def __init__(
        self,
        store: UserStore,
        audit_log: LoginAuditLog,
        secret_key: str,
        token_expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.audit_log = audit_log
        self._secret_key = secret_key
        self.token_expire_seconds = token_expire_seconds
        self._clock = clock

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, username: str | None, email: str | None, password: str | None) -> UserProfile:
        """Create a new account and return its sanitized profile.

        Raises ValidationError, DuplicateUser or InternalError.
        """
        _require(username=username, email=email, password=password)
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValidationError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")
        username = username.strip()
        email = email.strip()

        try:
            if self.store.find_by_username_or_email(username, email) is not None:
                raise DuplicateUser()
            record = self.store.insert(
                UserRecord(username=username, email=email, hashed_password=hash_password(password))
            )
        except ConstraintViolation as exc:
            # Lost a race with a concurrent registration for the same identity.
            raise DuplicateUser() from exc
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while registering %r", username)
            raise InternalError() from exc

        logger.info("Registered user %r", record.username)
        return record.to_profile()

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username: str | None, password: str | None) -> LoginResult:
        """Verify credentials, record the login, and issue a session token.

        Unknown usernames and wrong passwords raise the same InvalidCredentials
        with the same message. bcrypt runs in both cases.
        """
        _require(username=username, password=password)
        username = username.strip()

        try:
            record = self.store.find_by_username(username)
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while looking up %r", username)
            raise InternalError() from exc

        # bcrypt 4.x compares only the first 72 bytes; no stored password is
        # longer than that, so an oversized attempt can never be a match.
        if record is None or len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            verify_password(password, DUMMY_HASH)
            logger.info("Failed login for %r", username)
            raise InvalidCredentials()
        if not verify_password(password, record.hashed_password):
            logger.info("Failed login for %r", username)
            raise InvalidCredentials()

        now = self._clock()
        try:
            self.audit_log.append(record.username, now)
            token, issued_at, expires_at = create_session_token(
                record.username,
                record.email,
                self._secret_key,
                expire_seconds=self.token_expire_seconds,
                issued_at=now,
            )
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while recording login for %r", username)
            raise InternalError() from exc
        except JWTError as exc:
            logger.exception("Token signing failed for %r", username)
            raise InternalError() from exc

        logger.info("User %r logged in", record.username)
        return LoginResult(token=token, issued_at=issued_at, expires_at=expires_at)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_users(self) -> list[UserProfile]:
        """Return every registered user without credentials."""
        try:
            records = self.store.list_all()
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while listing users")
            raise InternalError() from exc
        return [r.to_profile() for r in records]
