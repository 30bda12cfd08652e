"""ORM model for server-side session rows (sid -> serialized state + expiry)."""

from sqlalchemy import JSON, Column, DateTime, String

from contractdesk.models.base import Base


class SessionRecord(Base):
    """One browser session. sess holds {"user_id": ..., "is_admin_session": bool}."""

    __tablename__ = "session"

    sid = Column(String(255), primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime(timezone=True), nullable=False, index=True)
