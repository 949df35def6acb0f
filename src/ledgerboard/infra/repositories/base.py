"""Shared plumbing for SQLModel repositories."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...errors import PermissionDeniedError, StoreError
from ...models.user import User
from ..database import SessionFactory


@contextmanager
def owner_session(session_factory: SessionFactory, user_id: int) -> Iterator[Session]:
    """Open an owner-scoped session; one block is one atomic batch.

    Raises ``PermissionDeniedError`` when the principal no longer exists and
    wraps driver failures in ``StoreError``.
    """
    try:
        with session_factory() as session:
            if session.get(User, user_id) is None:
                raise PermissionDeniedError(f"Principal {user_id} has no access")
            yield session
    except SQLAlchemyError as exc:
        raise StoreError(f"Store operation failed: {exc}") from exc


class SQLModelRepository:
    """Base class holding the session factory and store error translation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def _session(self, *, user_id: int):
        return owner_session(self.session_factory, user_id)
