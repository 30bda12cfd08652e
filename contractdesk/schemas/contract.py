"""Request/response schemas for contract endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ContractType = Literal[
    "target_infiltration",
    "data_extraction",
    "account_takeover",
    "network_breach",
]

ContractStatus = Literal[
    "pending",
    "reviewing",
    "accepted",
    "in_progress",
    "completed",
    "rejected",
]

TARGET_MAX_LENGTH = 1_000
DETAILS_MAX_LENGTH = 10_000
BOUNTY_MAX_LENGTH = 255


class ContractCreate(BaseModel):
    """Body of POST /contracts. Ownership comes from the session, never the body."""

    model_config = {"extra": "ignore"}

    target: str = Field(..., min_length=1, max_length=TARGET_MAX_LENGTH)
    type: ContractType
    details: str = Field(..., min_length=1, max_length=DETAILS_MAX_LENGTH)
    bounty: str | None = Field(default=None, max_length=BOUNTY_MAX_LENGTH)


class ContractStatusUpdate(BaseModel):
    """Body of PATCH /contracts/{id}/status. Any status may follow any status."""

    status: ContractStatus


class ContractResponse(BaseModel):
    """Contract as returned to API callers (camelCase keys)."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    user_id: str | None
    target: str
    type: ContractType
    details: str
    bounty: str | None
    status: ContractStatus
    created_at: datetime
    updated_at: datetime
