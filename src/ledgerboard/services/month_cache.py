"""Cached month views kept fresh by the change feed."""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from ..errors import PermissionDeniedError
from ..logging_config import get_logger
from ..models.task import Task
from ..months import format_year_month
from .auth import AuthSession
from .bill_tasks import BillTaskService, overdue_transactions
from .events import SESSION, TASKS, TRANSACTIONS, ChangeFeed
from .recurring import MonthView, RecurringTransactionService, TransactionView

logger = get_logger("month_cache")


class MonthViewCache:
    """Month views keyed by ``(owner_id, month)`` plus each owner's task board.

    Transaction changes drop the owner's views and re-materialize the current
    month when it was being shown, which in turn runs the bill-task
    synchronizer. Task changes drop the owner's board.
    """

    def __init__(
        self,
        transactions: RecurringTransactionService,
        tasks: BillTaskService,
        auth: AuthSession,
        feed: ChangeFeed,
        *,
        clock: Callable[[], date] = date.today,
    ):
        self.transactions = transactions
        self.tasks = tasks
        self.auth = auth
        self.clock = clock
        self._views: dict[tuple[int, str], MonthView] = {}
        self._boards: dict[int, list[Task]] = {}
        self._unsubscribe = feed.subscribe(self._on_change)

    def current_month(self) -> str:
        return format_year_month(self.clock())

    def month_view(self, year_month: str) -> MonthView:
        """Cached view of ``year_month``; signed-out reads yield an empty view."""

        user_id = self.auth.current_user_id
        if user_id is None:
            return MonthView(owner_id=None, month=year_month)
        cached = self._views.get((user_id, year_month))
        if cached is not None:
            return cached
        return self.refresh(year_month)

    def refresh(self, year_month: str) -> MonthView:
        """Re-read ``year_month``; the current month also synchronizes bill tasks."""

        user_id = self.auth.current_user_id
        if user_id is None:
            return MonthView(owner_id=None, month=year_month)
        try:
            view = self.transactions.month_view(year_month)
            if year_month == self.current_month():
                self.tasks.sync_recurring_tasks(view.recurring_expenses(), year_month)
        except PermissionDeniedError:
            # Expected while a session is being torn down.
            logger.debug("Month refresh denied", extra={"user_id": user_id, "month": year_month})
            self.forget(user_id)
            return MonthView(owner_id=None, month=year_month)
        self._views[(user_id, year_month)] = view
        return view

    def board(self) -> list[Task]:
        """The current principal's tasks, cached until the next task change."""

        user_id = self.auth.current_user_id
        if user_id is None:
            return []
        cached = self._boards.get(user_id)
        if cached is not None:
            return cached
        try:
            tasks = self.tasks.list_tasks()
        except PermissionDeniedError:
            logger.debug("Task refresh denied", extra={"user_id": user_id})
            self.forget(user_id)
            return []
        self._boards[user_id] = tasks
        return tasks

    def overdue(self, year_month: str, *, today: Optional[date] = None) -> list[TransactionView]:
        view = self.month_view(year_month)
        return overdue_transactions(view.transactions, self.board(), today=today or self.clock())

    def forget(self, owner_id: Optional[int] = None) -> None:
        """Drop cached state for one owner, or for everybody."""

        if owner_id is None:
            self._views.clear()
            self._boards.clear()
            return
        for key in [k for k in self._views if k[0] == owner_id]:
            del self._views[key]
        self._boards.pop(owner_id, None)

    def close(self) -> None:
        self._unsubscribe()
        self.forget()

    def _on_change(self, owner_id: Optional[int], collection: str) -> None:
        if owner_id is None:
            return
        if collection == SESSION:
            self.forget(owner_id)
        elif collection == TASKS:
            self._boards.pop(owner_id, None)
        elif collection == TRANSACTIONS:
            current = (owner_id, self.current_month())
            was_shown = current in self._views
            for key in [k for k in self._views if k[0] == owner_id]:
                del self._views[key]
            if was_shown and self.auth.current_user_id == owner_id:
                self.refresh(current[1])
