"""
auth/tokens.py -- Password hashing and session token utilities.

Security design decisions:
  Passwords: bcrypt with a fresh random salt per hash (bcrypt.gensalt()).
       Bcrypt's cost factor makes brute-force of low-entropy secrets expensive.
       Plaintext passwords are never stored or compared directly.

  JWT: python-jose with HS256. Tokens carry username (as sub), username, email,
       iat and exp. exp is always iat + expire_seconds. Verification returns
       None on any failure -- callers decide how to reject.

  Timing: verify_password() always does a full bcrypt comparison. The
       DUMMY_HASH constant lets AuthService.login() spend the same bcrypt work
       when the username does not exist, so response time does not reveal
       whether an account is registered.

The signing secret is passed in explicitly by the caller (AuthService holds
it). Nothing here reads configuration.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

ALGORITHM = "HS256"
DEFAULT_EXPIRE_SECONDS = 3600

# bcrypt only reads the first 72 bytes of its input; newer releases reject
# anything longer outright. AuthService validates against this limit.
BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash counts as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first unknown-username login is not
# measurably slower than later ones.
DUMMY_HASH: str = hash_password("authgate_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_session_token(
    username: str,
    email: str,
    secret_key: str,
    expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
    issued_at: datetime | None = None,
) -> tuple[str, datetime, datetime]:
    """Encode a signed session token.

    Returns (token, issued_at, expires_at). issued_at is truncated to whole
    seconds because JWT NumericDate claims carry no fractional part; this
    keeps the returned datetimes identical to what a decoder will see.
    """
    issued_at = (issued_at or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + timedelta(seconds=expire_seconds)
    payload = {
        "sub": username,
        "username": username,
        "email": email,
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM), issued_at, expires_at


def decode_session_token(token: str, secret_key: str) -> dict | None:
    """Verify signature and expiry. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if "username" not in payload or "email" not in payload:
        return None
    return payload
