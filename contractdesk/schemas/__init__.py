"""Pydantic request/response schemas."""

from contractdesk.schemas.auth import (
    AdminLoginResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from contractdesk.schemas.contract import (
    ContractCreate,
    ContractResponse,
    ContractStatus,
    ContractStatusUpdate,
    ContractType,
)
from contractdesk.schemas.status import StatusResponse

__all__ = [
    "AdminLoginResponse",
    "ContractCreate",
    "ContractResponse",
    "ContractStatus",
    "ContractStatusUpdate",
    "ContractType",
    "LoginRequest",
    "RegisterRequest",
    "StatusResponse",
    "UserResponse",
]
