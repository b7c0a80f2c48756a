"""User sign-up and credential checks against the users table."""

import logging
from functools import lru_cache

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ErrorKind, Failure, HashingError, Success
from app.core.security import hash_password, verify_password
from app.models import User
from app.schemas.auth import UserIdentity
from app.services.validation import DEFAULT_ROLE, normalize_email

logger = logging.getLogger(__name__)

AuthResult = Success[UserIdentity] | Failure


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: str = DEFAULT_ROLE,
    *,
    rounds: int,
) -> AuthResult:
    """
    Create a user unless the email is taken.

    The existence check runs before hashing so duplicates cost no bcrypt work.
    A unique-index violation on commit (concurrent sign-up) is also a conflict.
    """
    email = normalize_email(email)
    try:
        if get_user_by_email(db, email) is not None:
            logger.warning("event=signup outcome=conflict email=%s", email)
            return Failure(ErrorKind.CONFLICT, "user already exists")

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password, rounds),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except HashingError as e:
        db.rollback()
        logger.error("event=signup outcome=error kind=hashing email=%s", email)
        return Failure.from_error(e)
    except IntegrityError:
        db.rollback()
        logger.warning("event=signup outcome=conflict email=%s reason=unique_violation", email)
        return Failure(ErrorKind.CONFLICT, "user already exists")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("event=signup outcome=error kind=store email=%s error=%s", email, type(e).__name__)
        return Failure(ErrorKind.STORE, f"store error: {type(e).__name__}")

    logger.info("event=signup outcome=success email=%s user_id=%s", email, user.id)
    return Success(UserIdentity.model_validate(user))


@lru_cache
def _dummy_hash(rounds: int) -> str:
    return hash_password("acquisitions-timing-dummy", rounds)


def authenticate_user(db: Session, email: str, password: str, *, rounds: int) -> AuthResult:
    """
    Check credentials. Unknown email and wrong password are separate failure
    details for logs; both carry ErrorKind.AUTHENTICATION.

    An unknown email still pays for one bcrypt comparison (against a dummy hash
    of the same cost) so response time does not reveal whether it exists.
    """
    email = normalize_email(email)
    try:
        user = get_user_by_email(db, email)
    except SQLAlchemyError as e:
        logger.error("event=login outcome=error kind=store email=%s error=%s", email, type(e).__name__)
        return Failure(ErrorKind.STORE, f"store error: {type(e).__name__}")

    try:
        if user is None:
            verify_password(password, _dummy_hash(rounds))
            logger.warning("event=login outcome=failure email=%s reason=user_not_found", email)
            return Failure(ErrorKind.AUTHENTICATION, "user not found")
        password_ok = verify_password(password, user.password_hash)
    except HashingError as e:
        logger.error("event=login outcome=error kind=hashing email=%s", email)
        return Failure.from_error(e)

    if not password_ok:
        logger.warning("event=login outcome=failure email=%s reason=invalid_password", email)
        return Failure(ErrorKind.AUTHENTICATION, "invalid password")

    logger.info("event=login outcome=success email=%s user_id=%s", email, user.id)
    return Success(UserIdentity.model_validate(user))


def get_user_by_id(db: Session, user_id: int) -> AuthResult:
    """Load the identity for a verified token subject."""
    try:
        user = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as e:
        logger.error("event=session outcome=error kind=store user_id=%s error=%s", user_id, type(e).__name__)
        return Failure(ErrorKind.STORE, f"store error: {type(e).__name__}")
    if user is None:
        return Failure(ErrorKind.TOKEN, "token subject no longer exists")
    return Success(UserIdentity.model_validate(user))
