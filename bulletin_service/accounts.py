"""
Account use-cases: registration, login, user listing and seed provisioning.
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from passlib.exc import PasswordSizeError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .auth import PasswordHasher, TokenService
from .config import SeedAccount
from .errors import ConflictError, InternalError, Unauthorized, ValidationError
from .models import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


def normalize_email(email: Optional[str]) -> str:
    """Emails are case-insensitive: stored and looked up stripped and lower-cased."""
    return (email or "").strip().lower()


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register_user(
    db: Session,
    hasher: PasswordHasher,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> User:
    """
    Create a user with a hashed password.

    Duplicate emails are rejected by the unique index on users.email, not by
    a pre-check, so concurrent registrations for one email yield exactly one
    success.

    Raises:
        ValidationError: name, email or password missing, or password too long
        ConflictError: email already registered
        InternalError: any other store failure
    """
    if not (_present(name) and _present(email) and _present(password)):
        raise ValidationError("Name, email and password are required.")

    try:
        password_hash = hasher.hash(password)
    except PasswordSizeError as e:
        raise ValidationError("Password is too long.") from e

    user = User(name=name.strip(), email=normalize_email(email), password=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("Registration rejected for %s: email already exists", user.email)
        raise ConflictError("Could not register user. The email may already be registered.") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Registration failed for %s", user.email)
        raise InternalError("Could not register user.") from e

    db.refresh(user)
    return user


def authenticate_user(
    db: Session,
    hasher: PasswordHasher,
    tokens: TokenService,
    email: Optional[str],
    password: Optional[str],
) -> Tuple[str, User]:
    """
    Check credentials and mint a bearer token.

    Unknown email and wrong password raise the same Unauthorized error so
    callers cannot tell which accounts exist.

    Returns:
        Tuple of (token, user)
    """
    if not (_present(email) and _present(password)):
        raise ValidationError("Email and password are required.")

    try:
        user = get_user_by_email(db, email)
    except SQLAlchemyError as e:
        logger.exception("User lookup failed during login")
        raise InternalError("Could not log in.") from e

    if not user:
        raise Unauthorized(INVALID_CREDENTIALS)

    is_valid, new_hash = hasher.verify_and_update(password, user.password)
    if not is_valid:
        raise Unauthorized(INVALID_CREDENTIALS)

    if new_hash:
        user.password = new_hash
        try:
            db.commit()
            logger.info("Password representation upgraded for user_id=%s", user.id)
        except SQLAlchemyError:
            # Login still succeeds; the upgrade is retried on the next login
            db.rollback()
            logger.exception("Could not upgrade password hash for user_id=%s", user.id)

    token = tokens.issue(user.id, user.name, user.email)
    return token, user


def list_users(db: Session) -> List[User]:
    try:
        return db.query(User).order_by(User.id.asc()).all()
    except SQLAlchemyError as e:
        logger.exception("Failed to list users")
        raise InternalError("Could not fetch users.") from e


def provision_seed_accounts(
    session_factory: sessionmaker,
    hasher: PasswordHasher,
    accounts: Iterable[SeedAccount],
) -> Dict[str, str]:
    """
    Create each seed account unless a user with its email already exists.

    Every account is attempted in its own session; a failure is logged and
    the remaining accounts are still provisioned.

    Returns:
        Mapping of email to "created", "exists" or "failed"
    """
    outcomes = {}
    accounts = list(accounts)
    if not accounts:
        return outcomes

    logger.info("Checking %d seed account(s)", len(accounts))

    for account in accounts:
        email = normalize_email(account.email)
        db = session_factory()
        try:
            if get_user_by_email(db, email):
                outcomes[email] = "exists"
                logger.info("Seed account already exists: %s", email)
                continue

            register_user(db, hasher, account.name, email, account.password)
            outcomes[email] = "created"
            logger.info("Seed account created: %s", email)
        except ConflictError:
            # Another instance created it between the lookup and the insert
            outcomes[email] = "exists"
            logger.info("Seed account already exists: %s", email)
        except Exception:
            outcomes[email] = "failed"
            logger.exception("Failed to provision seed account %s", email)
        finally:
            db.close()

    logger.info("Seed account check finished")
    return outcomes
