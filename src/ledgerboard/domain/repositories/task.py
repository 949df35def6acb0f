"""Task repository protocol."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from ...models.task import Task, TaskStatus
from ...models.transaction import Transaction


class TaskRepository(Protocol):
    """Repository for managing bill-tracking tasks."""

    def get_by_id(self, task_id: int, *, user_id: int) -> Optional[Task]:
        """Retrieve a task by ID."""
        ...

    def list_all(self, *, user_id: int) -> list[Task]:
        """All tasks ordered by (status, order)."""
        ...

    def list_by_status(self, status: TaskStatus, *, user_id: int) -> list[Task]:
        """Tasks in one board column."""
        ...

    def find_linked(self, transaction_id: int, *, user_id: int) -> list[Task]:
        """Tasks generated from a recurring template."""
        ...

    def create(self, task: Task, *, user_id: int) -> Task:
        """Create a new task."""
        ...

    def update(self, task: Task, *, user_id: int) -> Task:
        """Update an existing task."""
        ...

    def delete(self, task_id: int, *, user_id: int) -> bool:
        """Delete a task by ID."""
        ...

    def apply_batch(
        self,
        *,
        creates: Iterable[Task] = (),
        updates: Iterable[Task] = (),
        deletes: Iterable[int] = (),
        user_id: int,
    ) -> list[Task]:
        """Apply a set of writes atomically."""
        ...

    def convert_to_transaction(
        self, task_id: int, transaction: Transaction, *, keep_task: bool = False, user_id: int
    ) -> Transaction:
        """Create ``transaction`` and retire the task atomically."""
        ...
