"""Server-side session store backed by the application database."""

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from contractdesk.models.base import utcnow
from contractdesk.models.session import SessionRecord

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 24


def new_session_id() -> str:
    """Generate a fresh, unguessable session id. Never derived from request input."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


@dataclass(frozen=True)
class SessionState:
    """State persisted for one session."""

    user_id: str
    is_admin_session: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "is_admin_session": self.is_admin_session}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionState | None":
        user_id = data.get("user_id") if isinstance(data, dict) else None
        if not user_id:
            return None
        return cls(user_id=str(user_id), is_admin_session=data.get("is_admin_session") is True)


class SessionStore:
    """
    Durable sid -> SessionState mapping with expiry.

    Uses its own DB sessions so writes are committed independently of the
    request's unit of work. The table is created on first use if absent.
    """

    def __init__(self, engine: Engine, session_factory: sessionmaker[Session]) -> None:
        self._engine = engine
        self._session_factory = session_factory
        self._table_ready = False
        self._table_lock = threading.Lock()

    def _ensure_table(self) -> None:
        if self._table_ready:
            return
        with self._table_lock:
            if not self._table_ready:
                SessionRecord.__table__.create(bind=self._engine, checkfirst=True)
                self._table_ready = True

    def create(self, sid: str, state: SessionState, ttl_seconds: int) -> None:
        """Persist state under sid, replacing any existing row."""
        self._ensure_table()
        expire = utcnow() + timedelta(seconds=ttl_seconds)
        with self._session_factory() as db:
            db.merge(SessionRecord(sid=sid, sess=state.to_dict(), expire=expire))
            db.commit()

    def read(self, sid: str) -> SessionState | None:
        """Return the state for sid, or None if unknown or expired (expired rows are removed)."""
        self._ensure_table()
        with self._session_factory() as db:
            row = (
                db.query(SessionRecord)
                .filter(SessionRecord.sid == sid, SessionRecord.expire > utcnow())
                .first()
            )
            if row is None:
                deleted = (
                    db.query(SessionRecord)
                    .filter(SessionRecord.sid == sid)
                    .delete(synchronize_session=False)
                )
                if deleted:
                    db.commit()
                return None
            state = SessionState.from_dict(row.sess)
            if state is None:
                logger.warning("Discarding session with unreadable state")
            return state

    def destroy(self, sid: str) -> None:
        """Delete the session row. Unknown ids are ignored."""
        self._ensure_table()
        with self._session_factory() as db:
            db.query(SessionRecord).filter(SessionRecord.sid == sid).delete(
                synchronize_session=False
            )
            db.commit()

    def touch(self, sid: str, ttl_seconds: int) -> None:
        """Push the expiry of an existing session ttl_seconds into the future."""
        self._ensure_table()
        with self._session_factory() as db:
            db.query(SessionRecord).filter(SessionRecord.sid == sid).update(
                {SessionRecord.expire: utcnow() + timedelta(seconds=ttl_seconds)},
                synchronize_session=False,
            )
            db.commit()

    def prune_expired(self) -> int:
        """Delete every expired session; returns the number of rows removed."""
        self._ensure_table()
        with self._session_factory() as db:
            deleted = (
                db.query(SessionRecord)
                .filter(SessionRecord.expire <= utcnow())
                .delete(synchronize_session=False)
            )
            db.commit()
        return deleted

    def count_expired(self) -> int:
        self._ensure_table()
        with self._session_factory() as db:
            return db.query(SessionRecord).filter(SessionRecord.expire <= utcnow()).count()
