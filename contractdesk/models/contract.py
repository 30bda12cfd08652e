"""ORM model for submitted contract requests."""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Text

from contractdesk.models.base import Base, new_id, utcnow

CONTRACT_TYPES = (
    "target_infiltration",
    "data_extraction",
    "account_takeover",
    "network_breach",
)

CONTRACT_STATUSES = (
    "pending",
    "reviewing",
    "accepted",
    "in_progress",
    "completed",
    "rejected",
)

DEFAULT_BOUNTY = "TBD"


class Contract(Base):
    """
    One submitted request, optionally owned by the client who submitted it.

    Status moves freely between any of CONTRACT_STATUSES; only admins change it.
    """

    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    target = Column(Text, nullable=False)
    type = Column(Enum(*CONTRACT_TYPES, name="contract_type"), nullable=False)
    details = Column(Text, nullable=False)
    bounty = Column(Text, nullable=True, default=DEFAULT_BOUNTY)
    status = Column(
        Enum(*CONTRACT_STATUSES, name="contract_status"),
        nullable=False,
        default="pending",
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
