"""Authentication and principal management services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from sqlmodel import select

from ..errors import NotAuthenticatedError, ValidationError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.user import User
from .events import SESSION, ChangeFeed

logger = get_logger("auth")

_hasher = PasswordHasher()


def get_user_by_username(username: str, session_factory: SessionFactory) -> Optional[User]:
    """Fetch a user by username."""
    username = username.strip()
    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user:
            session.expunge(user)
        return user


def create_user(*, username: str, password: str, session_factory: SessionFactory) -> User:
    """Create a new user with hashed password."""

    username = username.strip()
    if not username:
        raise ValidationError("Username is required", field="username")
    if not password:
        raise ValidationError("Password cannot be empty", field="password")
    password_hash = _hasher.hash(password)
    with session_factory() as session:
        existing = session.exec(select(User).where(User.username == username)).first()
        if existing:
            raise ValidationError("Username already exists", field="username")
        user = User(username=username, password_hash=password_hash)
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


def authenticate(*, username: str, password: str, session_factory: SessionFactory) -> Optional[User]:
    """Validate credentials and return the user when correct."""

    username = username.strip()
    if not username:
        return None
    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user is None:
            return None
        try:
            _hasher.verify(user.password_hash, password)
        except (VerifyMismatchError, InvalidHash, VerificationError):
            return None

        user.last_login = datetime.now(timezone.utc)
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


class AuthSession:
    """Holds the signed-in principal for one client session."""

    def __init__(self, session_factory: SessionFactory, feed: ChangeFeed):
        self.session_factory = session_factory
        self.feed = feed
        self._user: Optional[User] = None

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    @property
    def current_user_id(self) -> Optional[int]:
        """The current principal's id, or None when signed out."""
        if self._user is None:
            return None
        return self._user.id

    def require_user_id(self) -> int:
        """Return the current user id or raise if nobody is signed in."""

        user_id = self.current_user_id
        if user_id is None:
            raise NotAuthenticatedError()
        return user_id

    def sign_in(self, username: str, password: str) -> User:
        user = authenticate(username=username, password=password, session_factory=self.session_factory)
        if user is None:
            logger.warning("Sign-in rejected", extra={"username": username.strip()})
            raise NotAuthenticatedError("Invalid username or password")
        self.use(user)
        return user

    def use(self, user: User) -> None:
        """Adopt an already-authenticated user as the current principal."""

        self._user = user
        logger.info("Signed in", extra={"user_id": user.id})
        self.feed.publish(user.id, SESSION)

    def sign_out(self) -> None:
        user_id = self.current_user_id
        self._user = None
        if user_id is not None:
            logger.info("Signed out", extra={"user_id": user_id})
            self.feed.publish(user_id, SESSION)
