"""
auth/audit.py -- Append-only login audit log.

One row per successful login. There is no update or delete method: the log is
written by AuthService.login() and only ever read back.

The log runs on the credential store's Engine rather than opening its own
connection, so the process has exactly one storage wiring.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Integer, MetaData, String, Table, func, select
from sqlalchemy.engine import Engine

from auth.models import LoginEvent

_metadata = MetaData()

_login_events = Table(
    "login_events",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, index=True),
    Column("login_time", String(32), nullable=False),  # ISO 8601, UTC
)


class LoginAuditLog:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine)

    def append(self, username: str, login_time: datetime) -> LoginEvent:
        """Record a successful login and return the stored event."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _login_events.insert().values(username=username, login_time=login_time.isoformat())
            )
            conn.commit()
        return LoginEvent(id=result.inserted_primary_key[0], username=username, login_time=login_time)

    def events_for(self, username: str) -> list[LoginEvent]:
        """Return a user's login events, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _login_events.select()
                .where(_login_events.c.username == username)
                .order_by(_login_events.c.id)
            ).fetchall()
        return [_row_to_event(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_login_events)).scalar()
        return result or 0


def _row_to_event(row) -> LoginEvent:
    return LoginEvent(
        id=row.id,
        username=row.username,
        login_time=datetime.fromisoformat(row.login_time),
    )
