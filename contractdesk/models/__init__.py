"""SQLAlchemy ORM models."""

from contractdesk.models.base import Base
from contractdesk.models.contract import Contract
from contractdesk.models.session import SessionRecord
from contractdesk.models.user import User

__all__ = ["Base", "Contract", "SessionRecord", "User"]
