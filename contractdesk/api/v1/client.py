"""Client dashboard endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from contractdesk.api.v1.auth import require_client
from contractdesk.core.database import get_db
from contractdesk.models.user import User
from contractdesk.schemas.contract import ContractResponse
from contractdesk.services.contracts import list_contracts_for_user

router = APIRouter()


@router.get("/contracts", response_model=list[ContractResponse])
def get_my_contracts(
    user: Annotated[User, Depends(require_client)],
    db: Annotated[Session, Depends(get_db)],
) -> list[ContractResponse]:
    """Contracts submitted by the signed-in user, newest first."""
    return [ContractResponse.model_validate(c) for c in list_contracts_for_user(db, user.id)]
