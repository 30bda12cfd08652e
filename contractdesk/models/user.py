"""ORM model for application users (session auth and roles)."""

from sqlalchemy import Column, DateTime, String

from contractdesk.models.base import Base, new_id, utcnow

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"


class User(Base):
    """
    User account for session authentication and role-based access control.

    role: 'admin' or 'client'. Self-registered accounts are always 'client'.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_CLIENT)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
