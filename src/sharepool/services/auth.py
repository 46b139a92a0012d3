"""User directory: registration, credential checks and lookups."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.user import User

logger = get_logger(__name__)

_hasher = PasswordHasher()
MIN_PASSWORD_LENGTH = 6


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValueError("A valid email address is required")
    return email


def list_users(session_factory: SessionFactory) -> list[User]:
    """Return all users, newest first."""
    with session_factory() as session:
        return list(
            session.exec(select(User).order_by(User.created_at.desc(), User.id.desc())).all()  # type: ignore
        )


def count_users(session_factory: SessionFactory) -> int:
    with session_factory() as session:
        return int(session.exec(select(func.count(User.id))).one() or 0)


def get_user(user_id: int, session_factory: SessionFactory) -> Optional[User]:
    with session_factory() as session:
        return session.get(User, user_id)


def get_user_by_email(email: str, session_factory: SessionFactory) -> Optional[User]:
    """Fetch a user by email (case-insensitive)."""
    email = (email or "").strip().lower()
    with session_factory() as session:
        return session.exec(select(User).where(User.email == email)).first()


def _email_taken(session: Session, email: str) -> bool:
    return session.exec(select(User.id).where(User.email == email)).first() is not None


def create_user(
    *,
    email: str,
    password: str,
    is_admin: bool = False,
    session_factory: SessionFactory,
) -> User:
    """Create a new user with hashed password."""

    email = _normalize_email(email)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    password_hash = _hasher.hash(password)
    try:
        with session_factory() as session:
            if _email_taken(session, email):
                raise ValueError("Email already registered")
            user = User(email=email, password_hash=password_hash, is_admin=is_admin)
            session.add(user)
            session.flush()
            session.refresh(user)
    except IntegrityError as exc:
        # A concurrent registration won the unique index.
        raise ValueError("Email already registered") from exc
    logger.info("User registered", extra={"user_id": user.id, "is_admin": is_admin})
    return user


def authenticate(
    *,
    email: str,
    password: str,
    session_factory: SessionFactory,
) -> Optional[User]:
    """Validate credentials and return the user when correct."""

    email = (email or "").strip().lower()
    if not email:
        return None
    with session_factory() as session:
        user = session.exec(select(User).where(User.email == email)).first()
        if user is None:
            return None
        try:
            _hasher.verify(user.password_hash, password)
        except (VerifyMismatchError, InvalidHash, VerificationError):
            logger.warning("Failed login", extra={"user_id": user.id})
            return None

        if _hasher.check_needs_rehash(user.password_hash):
            user.password_hash = _hasher.hash(password)
        user.last_login = datetime.now(timezone.utc)
        session.add(user)
        session.flush()
        session.refresh(user)
        return user


def update_admin_flag(*, user_id: int, is_admin: bool, session_factory: SessionFactory) -> User:
    """Persist the admin capability for a user; callers enforce permissions."""

    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise LookupError("User not found")
        user.is_admin = is_admin
        session.add(user)
        session.flush()
        session.refresh(user)
        return user
