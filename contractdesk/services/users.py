"""User lookups and creation."""

from sqlalchemy.orm import Session

from contractdesk.core.security import hash_password
from contractdesk.models.user import ROLE_CLIENT, User


def get_user(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    role: str = ROLE_CLIENT,
) -> User:
    """
    Hash the password and insert the user. Commits.

    Uniqueness is enforced by the table; callers check first for friendly
    messages, and a concurrent duplicate surfaces as IntegrityError here.
    """
    user = User(
        username=username,
        email=email,
        password=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
