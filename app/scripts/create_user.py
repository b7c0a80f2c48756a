"""
Create a user from the command line (e.g. first admin). Run from project root:
  python -m app.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user "Ann Admin" ann@acme.io your-secure-password admin
"""
import argparse
import sys

from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings
from app.core.database import create_db_engine, create_session_factory
from app.core.errors import Failure
from app.services.auth import create_user
from app.services.validation import ROLES, format_field_errors, validate_signup


def main(
    argv: list[str] | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> int:
    parser = argparse.ArgumentParser(description="Create an Acquisitions API user.")
    parser.add_argument("name", help="Display name (2-255 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=ROLES)
    args = parser.parse_args(argv)

    signup, errors = validate_signup(
        {"name": args.name, "email": args.email, "password": args.password, "role": args.role}
    )
    if signup is None:
        print(f"Invalid input: {format_field_errors(errors)}", file=sys.stderr)
        return 1

    settings = get_settings()
    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(settings))
    db = session_factory()
    try:
        result = create_user(
            db,
            signup.name,
            signup.email,
            signup.password,
            signup.role,
            rounds=settings.BCRYPT_ROUNDS,
        )
    finally:
        db.close()

    if isinstance(result, Failure):
        print(f"Could not create user '{signup.email}': {result.detail}", file=sys.stderr)
        return 1
    print(f"Created user '{result.value.email}' with role '{result.value.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
