"""
Create a user (e.g. the first admin). Run from project root:
  python -m contractdesk.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m contractdesk.scripts.create_user admin admin@example.com 'Your-secure-passw0rd' admin
"""
import argparse
import sys

from pydantic import ValidationError

from contractdesk.core.database import SessionLocal
from contractdesk.models.user import ROLE_ADMIN, ROLE_CLIENT
from contractdesk.schemas.auth import RegisterRequest
from contractdesk.services.users import create_user, get_user_by_email, get_user_by_username


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Create a Contract Desk user (the only way to create admins)."
    )
    parser.add_argument("username", help="Username (3-255 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (8-128 chars, upper, lower, digit)")
    parser.add_argument("role", nargs="?", default=ROLE_CLIENT, choices=[ROLE_CLIENT, ROLE_ADMIN])
    args = parser.parse_args()

    try:
        request = RegisterRequest(
            username=args.username.strip(),
            email=args.email,
            password=args.password,
        )
    except ValidationError as e:
        for err in e.errors():
            print(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if get_user_by_username(db, request.username):
            print(f"User '{request.username}' already exists.", file=sys.stderr)
            return 1
        if get_user_by_email(db, request.email):
            print(f"Email '{request.email}' is already registered.", file=sys.stderr)
            return 1
        create_user(db, request.username, request.email, request.password, role=args.role)
        print(f"Created user '{request.username}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
