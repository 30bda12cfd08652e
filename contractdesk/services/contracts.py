"""Contract persistence: create, read, status changes, and deletion (last write wins)."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from contractdesk.models.base import utcnow
from contractdesk.models.contract import DEFAULT_BOUNTY, Contract
from contractdesk.schemas.contract import ContractCreate
from contractdesk.schemas.status import ContractCounts

# Dashboard buckets for the status snapshot.
STATUS_BUCKETS: dict[str, tuple[str, ...]] = {
    "pending": ("pending", "reviewing"),
    "active": ("accepted", "in_progress"),
    "completed": ("completed", "rejected"),
}


def create_contract(db: Session, body: ContractCreate, user_id: str | None) -> Contract:
    """Insert a new pending contract; user_id is None for anonymous submissions."""
    contract = Contract(
        user_id=user_id,
        target=body.target,
        type=body.type,
        details=body.details,
        bounty=body.bounty if body.bounty and body.bounty.strip() else DEFAULT_BOUNTY,
        status="pending",
    )
    db.add(contract)
    db.commit()
    db.refresh(contract)
    return contract


def get_contract(db: Session, contract_id: str) -> Contract | None:
    return db.query(Contract).filter(Contract.id == contract_id).first()


def list_contracts(db: Session) -> list[Contract]:
    """All contracts, newest first."""
    return db.query(Contract).order_by(Contract.created_at.desc()).all()


def list_contracts_for_user(db: Session, user_id: str) -> list[Contract]:
    """Contracts owned by user_id, newest first."""
    return (
        db.query(Contract)
        .filter(Contract.user_id == user_id)
        .order_by(Contract.created_at.desc())
        .all()
    )


def update_contract_status(db: Session, contract_id: str, status: str) -> Contract | None:
    """Set status and bump updated_at. No transition rules. Returns None if not found."""
    contract = get_contract(db, contract_id)
    if contract is None:
        return None
    contract.status = status
    contract.updated_at = utcnow()
    db.commit()
    db.refresh(contract)
    return contract


def delete_contract(db: Session, contract_id: str) -> bool:
    """Hard delete. Returns False if no row matched."""
    deleted = (
        db.query(Contract)
        .filter(Contract.id == contract_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0


def count_contracts(db: Session) -> ContractCounts:
    """Aggregate counts per dashboard bucket."""
    rows = db.query(Contract.status, func.count(Contract.id)).group_by(Contract.status).all()
    by_status = {status: count for status, count in rows}
    return ContractCounts(
        total=sum(by_status.values()),
        **{
            bucket: sum(by_status.get(s, 0) for s in statuses)
            for bucket, statuses in STATUS_BUCKETS.items()
        },
    )
