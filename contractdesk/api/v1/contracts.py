"""Contract endpoints: public submission plus admin review, status changes, and deletion."""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from contractdesk.api.deps import AppServices, get_services, json_body, json_body_openapi
from contractdesk.api.v1.auth import (
    AuthContext,
    get_auth_context,
    require_admin,
    require_authenticated,
)
from contractdesk.core.database import get_db
from contractdesk.models.user import User
from contractdesk.schemas.contract import (
    ContractCreate,
    ContractResponse,
    ContractStatusUpdate,
)
from contractdesk.services.contracts import (
    create_contract,
    delete_contract,
    get_contract,
    list_contracts,
    update_contract_status,
)
from contractdesk.services.notifications import dispatch_contract_notification

logger = logging.getLogger(__name__)
router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found")


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
def submit_contract(
    body: ContractCreate,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[AppServices, Depends(get_services)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> ContractResponse:
    """
    Submit a contract request. Anonymous submissions are allowed; when the caller
    is signed in the contract is owned by them. A notification email is sent
    after the response and its failure never affects the result.
    """
    user = auth.current_user()
    contract = create_contract(db, body, user_id=user.id if user else None)
    result = ContractResponse.model_validate(contract)
    logger.info(
        "Contract submitted",
        extra={"contract_id": result.id, "contract_type": result.type, "owned": user is not None},
    )
    background_tasks.add_task(dispatch_contract_notification, result, services.settings)
    return result


@router.get("", response_model=list[ContractResponse])
def get_contracts(
    db: Annotated[Session, Depends(get_db)],
    _admin: Annotated[User, Depends(require_admin)],
) -> list[ContractResponse]:
    """List every contract, newest first (admin only)."""
    return [ContractResponse.model_validate(c) for c in list_contracts(db)]


@router.get("/{contract_id}", response_model=ContractResponse)
def get_contract_by_id(
    contract_id: str,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[User, Depends(require_authenticated)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> ContractResponse:
    """Return one contract to an admin session or to the client who owns it."""
    contract = get_contract(db, contract_id)
    if contract is None:
        raise _not_found()
    if not auth.has_admin_access() and contract.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return ContractResponse.model_validate(contract)


@router.patch(
    "/{contract_id}/status",
    response_model=ContractResponse,
    openapi_extra=json_body_openapi(ContractStatusUpdate),
)
def patch_contract_status(
    contract_id: str,
    admin: Annotated[User, Depends(require_admin)],
    body: Annotated[ContractStatusUpdate, Depends(json_body(ContractStatusUpdate))],
    db: Annotated[Session, Depends(get_db)],
) -> ContractResponse:
    """Set a contract's status (admin only). Any status may follow any status."""
    contract = update_contract_status(db, contract_id, body.status)
    if contract is None:
        raise _not_found()
    logger.info(
        "Contract status changed",
        extra={"contract_id": contract.id, "status": contract.status, "admin_id": admin.id},
    )
    return ContractResponse.model_validate(contract)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_contract(
    contract_id: str,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Hard-delete a contract (admin only). 404 when the id does not exist."""
    if not delete_contract(db, contract_id):
        raise _not_found()
    logger.info("Contract deleted", extra={"contract_id": contract_id, "admin_id": admin.id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
