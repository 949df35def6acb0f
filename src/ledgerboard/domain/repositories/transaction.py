"""Transaction repository protocol."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from ...models.transaction import Transaction


class TransactionRepository(Protocol):
    """Repository for managing transactions and recurring templates."""

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        ...

    def list_for_month(self, year_month: str, *, user_id: int) -> list[Transaction]:
        """Non-recurring transactions dated within ``year_month``."""
        ...

    def list_recurring(self, *, user_id: int) -> list[Transaction]:
        """All recurring templates."""
        ...

    def create(self, transaction: Transaction, *, user_id: int) -> Transaction:
        """Create a new transaction."""
        ...

    def update(self, transaction: Transaction, *, user_id: int) -> Transaction:
        """Update an existing transaction."""
        ...

    def delete(self, transaction_id: int, *, user_id: int) -> bool:
        """Delete a transaction by ID."""
        ...

    def mutate_template(
        self, template_id: int, mutate: Callable[[Transaction], None], *, user_id: int
    ) -> Transaction:
        """Atomically read, mutate and write back a recurring template."""
        ...

    def delete_recurring_cascade(self, template_id: int, *, user_id: int) -> int:
        """Delete a template together with its linked tasks."""
        ...
