"""
auth/store.py -- SQLAlchemy Core credential store.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. The service and routes never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Uniqueness of username and email is enforced by UNIQUE indexes, so two
  concurrent registrations that both pass the service's pre-insert check
  still cannot both succeed. The loser's IntegrityError is surfaced as
  ConstraintViolation.

DB path: authgate.db at the project root unless DATABASE_URL is set.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConstraintViolation
from auth.models import UserRecord

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),  # bcrypt, never plaintext
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for UserRecord entities.

    Usage:
        store = UserStore("sqlite:///authgate.db")
        store.insert(UserRecord(username="ana", email="ana@example.com", hashed_password=hash_password("pw")))
        record = store.find_by_username("ana")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def find_by_username_or_email(self, username: str, email: str) -> UserRecord | None:
        """Return any record whose username OR email matches. Used before insert."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(or_(_users.c.username == username, _users.c.email == email))
            ).first()
        return _row_to_user(row) if row is not None else None

    def find_by_username(self, username: str) -> UserRecord | None:
        """Look up a record by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def insert(self, record: UserRecord) -> UserRecord:
        """Insert a new record and return it with id and created_at filled in.

        Raises ConstraintViolation if the username or email is already taken.
        """
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=record.username,
                        email=record.email,
                        hashed_password=record.hashed_password,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConstraintViolation() from exc
        return UserRecord(
            id=result.inserted_primary_key[0],
            username=record.username,
            email=record.email,
            hashed_password=record.hashed_password,
            created_at=created_at,
        )

    def list_all(self) -> list[UserRecord]:
        """Return every record ordered by username. No filtering or pagination."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> UserRecord:
    return UserRecord(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
