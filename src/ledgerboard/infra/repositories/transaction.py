"""SQLModel implementation of the Transaction repository."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from sqlmodel import select

from ...errors import NotFoundError
from ...models.task import Task
from ...models.transaction import Transaction
from ...months import month_bounds
from .base import SQLModelRepository


class SQLModelTransactionRepository(SQLModelRepository):
    """SQLModel-based transaction repository implementation."""

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        with self._session(user_id=user_id) as session:
            obj = session.exec(
                select(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_for_month(self, year_month: str, *, user_id: int) -> list[Transaction]:
        """Non-recurring transactions dated inside the month, newest first."""
        start, end = month_bounds(year_month)
        with self._session(user_id=user_id) as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .where(Transaction.is_recurring == False)  # noqa: E712
                .where(Transaction.occurred_at >= start)
                .where(Transaction.occurred_at < end)  # Exclusive end boundary
                .order_by(Transaction.occurred_at.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_recurring(self, *, user_id: int) -> list[Transaction]:
        """All recurring templates, regardless of date."""
        with self._session(user_id=user_id) as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .where(Transaction.is_recurring == True)  # noqa: E712
                .order_by(Transaction.occurred_at, Transaction.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, transaction: Transaction, *, user_id: int) -> Transaction:
        """Create a new transaction."""
        with self._session(user_id=user_id) as session:
            transaction.user_id = user_id
            session.add(transaction)
            session.commit()
            session.refresh(transaction)
            session.expunge(transaction)
            return transaction

    def update(self, transaction: Transaction, *, user_id: int) -> Transaction:
        """Update an existing transaction owned by ``user_id``."""
        with self._session(user_id=user_id) as session:
            existing = session.exec(
                select(Transaction)
                .where(Transaction.id == transaction.id)
                .where(Transaction.user_id == user_id)
            ).first()
            if existing is None:
                raise NotFoundError(f"Transaction {transaction.id} not found")
            existing.occurred_at = transaction.occurred_at
            existing.description = transaction.description
            existing.amount = transaction.amount
            existing.category = transaction.category
            existing.is_recurring = transaction.is_recurring
            existing.recurring_start_month = transaction.recurring_start_month
            existing.excluded_months = list(transaction.excluded_months or [])
            existing.amount_history = list(transaction.amount_history or [])
            existing.updated_at = datetime.now()
            session.add(existing)
            session.commit()
            session.refresh(existing)
            session.expunge(existing)
            return existing

    def delete(self, transaction_id: int, *, user_id: int) -> bool:
        """Delete a transaction by ID; returns False when nothing matched."""
        with self._session(user_id=user_id) as session:
            transaction = session.exec(
                select(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.user_id == user_id)
            ).first()
            if transaction is None:
                return False
            session.delete(transaction)
            session.commit()
            return True

    def mutate_template(
        self,
        template_id: int,
        mutate: Callable[[Transaction], None],
        *,
        user_id: int,
    ) -> Transaction:
        """Read a recurring template, apply ``mutate`` and write it back.

        The read and the write share one session and the row is selected
        ``FOR UPDATE`` where the backend supports it, so concurrent edits to
        the array fields serialize instead of clobbering each other.
        """
        with self._session(user_id=user_id) as session:
            template = session.exec(
                select(Transaction)
                .where(Transaction.id == template_id)
                .where(Transaction.user_id == user_id)
                .where(Transaction.is_recurring == True)  # noqa: E712
                .with_for_update()
            ).first()
            if template is None:
                raise NotFoundError(f"Recurring template {template_id} not found")
            mutate(template)
            template.updated_at = datetime.now()
            session.add(template)
            session.commit()
            session.refresh(template)
            session.expunge(template)
            return template

    def delete_recurring_cascade(self, template_id: int, *, user_id: int) -> int:
        """Delete a template and every task linked to it in one batch.

        Returns the number of linked tasks removed.
        """
        with self._session(user_id=user_id) as session:
            template = session.exec(
                select(Transaction)
                .where(Transaction.id == template_id)
                .where(Transaction.user_id == user_id)
                .where(Transaction.is_recurring == True)  # noqa: E712
            ).first()
            if template is None:
                raise NotFoundError(f"Recurring template {template_id} not found")
            linked = session.exec(
                select(Task)
                .where(Task.user_id == user_id)
                .where(Task.linked_transaction_id == template_id)
            ).all()
            for task in linked:
                session.delete(task)
            session.delete(template)
            session.commit()
            return len(linked)
