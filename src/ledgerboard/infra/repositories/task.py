"""SQLModel implementation of the Task repository."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlmodel import Session, select

from ...errors import NotFoundError
from ...models.task import Task, TaskStatus
from ...models.transaction import Transaction
from .base import SQLModelRepository

_STATUS_RANK = {status.value: index for index, status in enumerate(TaskStatus)}


def _board_key(task: Task) -> tuple[int, int, int]:
    return (_STATUS_RANK.get(task.status, len(_STATUS_RANK)), task.order, task.id or 0)


class SQLModelTaskRepository(SQLModelRepository):
    """SQLModel-based task repository implementation."""

    def get_by_id(self, task_id: int, *, user_id: int) -> Optional[Task]:
        """Retrieve a task by ID."""
        with self._session(user_id=user_id) as session:
            obj = session.exec(
                select(Task).where(Task.id == task_id).where(Task.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Task]:
        """All tasks ordered by board column (todo, in-progress, done) then order."""
        with self._session(user_id=user_id) as session:
            rows = list(session.exec(select(Task).where(Task.user_id == user_id)).all())
            session.expunge_all()
        return sorted(rows, key=_board_key)

    def list_by_status(self, status: TaskStatus, *, user_id: int) -> list[Task]:
        """Tasks of one column ordered by position."""
        with self._session(user_id=user_id) as session:
            statement = (
                select(Task)
                .where(Task.user_id == user_id)
                .where(Task.status == status.value)
                .order_by(Task.order, Task.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def find_linked(self, transaction_id: int, *, user_id: int) -> list[Task]:
        """Tasks generated from a recurring template."""
        with self._session(user_id=user_id) as session:
            rows = list(
                session.exec(
                    select(Task)
                    .where(Task.user_id == user_id)
                    .where(Task.linked_transaction_id == transaction_id)
                ).all()
            )
            session.expunge_all()
            return rows

    def create(self, task: Task, *, user_id: int) -> Task:
        """Create a new task."""
        with self._session(user_id=user_id) as session:
            task.user_id = user_id
            session.add(task)
            session.commit()
            session.refresh(task)
            session.expunge(task)
            return task

    def update(self, task: Task, *, user_id: int) -> Task:
        """Update an existing task owned by ``user_id``."""
        with self._session(user_id=user_id) as session:
            existing = self._apply_update(session, task, user_id=user_id)
            session.commit()
            session.refresh(existing)
            session.expunge(existing)
            return existing

    def delete(self, task_id: int, *, user_id: int) -> bool:
        """Delete a task by ID; returns False when nothing matched."""
        with self._session(user_id=user_id) as session:
            task = session.exec(
                select(Task).where(Task.id == task_id).where(Task.user_id == user_id)
            ).first()
            if task is None:
                return False
            session.delete(task)
            session.commit()
            return True

    def apply_batch(
        self,
        *,
        creates: Iterable[Task] = (),
        updates: Iterable[Task] = (),
        deletes: Iterable[int] = (),
        user_id: int,
    ) -> list[Task]:
        """Apply creates, updates and deletes atomically; all or nothing.

        Returns the created tasks with their ids populated.
        """
        with self._session(user_id=user_id) as session:
            created = []
            for task in creates:
                task.user_id = user_id
                session.add(task)
                created.append(task)
            for task in updates:
                self._apply_update(session, task, user_id=user_id)
            for task_id in deletes:
                existing = session.exec(
                    select(Task).where(Task.id == task_id).where(Task.user_id == user_id)
                ).first()
                if existing is None:
                    raise NotFoundError(f"Task {task_id} not found")
                session.delete(existing)
            session.commit()
            for task in created:
                session.refresh(task)
            session.expunge_all()
            return created

    def convert_to_transaction(
        self, task_id: int, transaction: Transaction, *, keep_task: bool = False, user_id: int
    ) -> Transaction:
        """Record a task as a transaction and retire the task, in one batch.

        With ``keep_task`` the card stays on the board flagged
        ``added_to_calendar`` instead of being deleted.
        """
        with self._session(user_id=user_id) as session:
            task = session.exec(
                select(Task).where(Task.id == task_id).where(Task.user_id == user_id)
            ).first()
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")
            transaction.user_id = user_id
            session.add(transaction)
            if keep_task:
                task.added_to_calendar = True
                task.updated_at = datetime.now()
                session.add(task)
            else:
                session.delete(task)
            session.commit()
            session.refresh(transaction)
            session.expunge(transaction)
            return transaction

    @staticmethod
    def _apply_update(session: Session, task: Task, *, user_id: int) -> Task:
        existing = session.exec(
            select(Task).where(Task.id == task.id).where(Task.user_id == user_id)
        ).first()
        if existing is None:
            raise NotFoundError(f"Task {task.id} not found")
        existing.title = task.title
        existing.description = task.description
        existing.amount = task.amount
        existing.category = task.category
        existing.status = task.status
        existing.order = task.order
        existing.linked_transaction_id = task.linked_transaction_id
        existing.linked_month = task.linked_month
        existing.due_date = task.due_date
        existing.added_to_calendar = task.added_to_calendar
        existing.updated_at = datetime.now()
        session.add(existing)
        return existing
