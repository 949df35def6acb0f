"""Bill-task synchronization, overdue tracking and kanban ordering.

Every recurring expense template owns at most one linked task. Synchronizing
against the current month creates that task on first sight, resets it to
``todo`` when the month rolls over, and follows amount changes within a month
without touching the card's progress. Manual (unlinked) tasks are left to the
user.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Optional, Sequence

from ..config import BaseConfig
from ..constants.categories import (
    Category,
    Polarity,
    category_from_stored,
    coerce_category,
)
from ..domain.repositories import TaskRepository
from ..errors import LinkedTaskError, NotFoundError, ValidationError
from ..forms import TaskForm, TaskUpdate, validate_status
from ..logging_config import get_logger
from ..models.task import Task, TaskStatus
from ..models.transaction import Transaction
from ..months import occurrence_date, parse_year_month
from .auth import AuthSession
from .events import TASKS, TRANSACTIONS, ChangeFeed
from .recurring import TransactionView

logger = get_logger("bill_tasks")


@dataclass
class TaskSyncPlan:
    """Pending writes computed by ``plan_task_sync``."""

    creates: list[Task] = field(default_factory=list)
    updates: list[Task] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.creates and not self.updates


def _copy_task(task: Task, **changes) -> Task:
    """Return a detached copy; snapshot tasks are never mutated in place."""

    data = task.model_dump()
    data.update(changes)
    return Task(**data)


def _next_order(tasks: Iterable[Task], status: TaskStatus) -> int:
    orders = [t.order for t in tasks if t.status == status.value]
    return max(orders) + 1 if orders else 0


def _same_amount(left: float, right: float) -> bool:
    return math.isclose(left, right, rel_tol=0.0, abs_tol=1e-9)


def due_date_for(view: TransactionView, current_month: str) -> datetime:
    """Due instant of a recurring expense in ``current_month``.

    The template's anchor day is projected, so a day clamped in one month
    (Jan 31 shown in February) is not carried into the next.
    """

    if view.month == current_month:
        return view.occurred_at
    return occurrence_date(view.anchor_at or view.occurred_at, current_month)


def plan_task_sync(
    instances: Iterable[TransactionView],
    tasks: Sequence[Task],
    current_month: str,
) -> TaskSyncPlan:
    """Work out creates/updates keeping one task per recurring expense template."""

    parse_year_month(current_month)
    plan = TaskSyncPlan()
    by_template: dict[int, Task] = {}
    for task in tasks:
        if task.linked_transaction_id is not None:
            by_template.setdefault(task.linked_transaction_id, task)
    next_todo = _next_order(tasks, TaskStatus.TODO)

    for view in instances:
        if not view.is_recurring_expense:
            continue
        template_id = view.key.transaction_id
        due = due_date_for(view, current_month)
        amount = abs(view.amount)
        existing = by_template.get(template_id)

        if existing is None:
            task = Task(
                user_id=view.owner_id,
                title=view.description,
                description="",
                amount=amount,
                category=view.category.value,
                status=TaskStatus.TODO.value,
                order=next_todo,
                linked_transaction_id=template_id,
                linked_month=current_month,
                due_date=due,
            )
            next_todo += 1
            plan.creates.append(task)
            by_template[template_id] = task
        elif existing.linked_month != current_month:
            changes = dict(
                status=TaskStatus.TODO.value,
                linked_month=current_month,
                due_date=due,
                amount=amount,
                title=view.description,
            )
            if existing.status != TaskStatus.TODO.value:
                changes["order"] = next_todo
                next_todo += 1
            updated = _copy_task(existing, **changes)
            plan.updates.append(updated)
            by_template[template_id] = updated
        elif not _same_amount(existing.amount, amount):
            updated = _copy_task(existing, amount=amount, title=view.description)
            plan.updates.append(updated)
            by_template[template_id] = updated

    return plan


def find_linked_task(tasks: Iterable[Task], template_id: int, month: str) -> Optional[Task]:
    for task in tasks:
        if task.linked_transaction_id == template_id and task.linked_month == month:
            return task
    return None


def is_overdue(
    view: TransactionView, tasks: Iterable[Task], *, today: Optional[date] = None
) -> bool:
    """A recurring expense is overdue once its date has passed unpaid.

    Paid means a linked task for the same template and month is ``done``.
    """

    if not view.is_recurring_expense:
        return False
    today = today or date.today()
    if view.occurred_at >= datetime.combine(today, time.min):
        return False
    linked = find_linked_task(tasks, view.key.transaction_id, view.month)
    return linked is None or linked.status != TaskStatus.DONE.value


def overdue_transactions(
    views: Iterable[TransactionView], tasks: Sequence[Task], *, today: Optional[date] = None
) -> list[TransactionView]:
    return [v for v in views if is_overdue(v, tasks, today=today)]


def plan_reorder(
    tasks: Sequence[Task], task_id: int, new_status: TaskStatus, new_order: int
) -> list[Task]:
    """Renumber columns for a drag-and-drop move; returns changed copies only.

    Moving into another column shifts every destination task at or after
    ``new_order`` down by one and closes the gap in the source column.
    """

    moving = next((t for t in tasks if t.id == task_id), None)
    if moving is None:
        raise NotFoundError(f"Task {task_id} not found")
    target = new_status.value
    changed: list[Task] = []

    def column(status: str, *, exclude: Optional[int] = None) -> list[Task]:
        return sorted(
            (t for t in tasks if t.status == status and t.id != exclude),
            key=lambda t: (t.order, t.id or 0),
        )

    if moving.status != target:
        destination = column(target)
        new_order = max(0, min(new_order, len(destination)))
        changed.append(_copy_task(moving, status=target, order=new_order))
        for index, task in enumerate(destination):
            adjusted = index + 1 if index >= new_order else index
            if task.order != adjusted:
                changed.append(_copy_task(task, order=adjusted))
        for index, task in enumerate(column(moving.status, exclude=task_id)):
            if task.order != index:
                changed.append(_copy_task(task, order=index))
        return changed

    siblings = column(target)
    old_index = next(i for i, t in enumerate(siblings) if t.id == task_id)
    new_order = max(0, min(new_order, len(siblings) - 1))
    for index, task in enumerate(siblings):
        value = index
        if index == old_index:
            value = new_order
        elif old_index < new_order and old_index < index <= new_order:
            value = index - 1
        elif new_order < old_index and new_order <= index < old_index:
            value = index + 1
        if task.order != value:
            changed.append(_copy_task(task, order=value))
    return changed


class BillTaskService:
    """Owner-scoped task operations and recurring-expense synchronization."""

    def __init__(
        self,
        repository: TaskRepository,
        auth: AuthSession,
        feed: ChangeFeed,
        *,
        max_amount: float = BaseConfig.DEFAULT_MAX_AMOUNT,
    ):
        self.repository = repository
        self.auth = auth
        self.feed = feed
        self.max_amount = max_amount

    def list_tasks(self) -> list[Task]:
        """The board for the current principal; empty when signed out."""

        user_id = self.auth.current_user_id
        if user_id is None:
            return []
        return self.repository.list_all(user_id=user_id)

    def tasks_by_status(self, status: TaskStatus) -> list[Task]:
        user_id = self.auth.current_user_id
        if user_id is None:
            return []
        return self.repository.list_by_status(status, user_id=user_id)

    def sync_recurring_tasks(
        self, instances: Iterable[TransactionView], current_month: str
    ) -> TaskSyncPlan:
        """Bring linked tasks in line with ``current_month``'s recurring expenses."""

        user_id = self.auth.require_user_id()
        tasks = self.repository.list_all(user_id=user_id)
        plan = plan_task_sync(instances, tasks, current_month)
        if plan.is_empty:
            return plan
        created = self.repository.apply_batch(
            creates=plan.creates, updates=plan.updates, user_id=user_id
        )
        plan.creates = created
        logger.info(
            "Recurring tasks synchronized",
            extra={
                "user_id": user_id,
                "month": current_month,
                "tasks_created": len(plan.creates),
                "tasks_updated": len(plan.updates),
            },
        )
        self.feed.publish(user_id, TASKS)
        return plan

    def is_transaction_overdue(
        self, view: TransactionView, *, today: Optional[date] = None
    ) -> bool:
        return is_overdue(view, self.list_tasks(), today=today)

    def add_task(self, form: TaskForm) -> Task:
        user_id = self.auth.require_user_id()
        category = form.validate(max_amount=self.max_amount)
        tasks = self.repository.list_all(user_id=user_id)
        task = Task(
            user_id=user_id,
            title=form.title,
            description=form.description,
            amount=form.amount,
            category=category.value if category else None,
            status=form.status.value,
            order=_next_order(tasks, form.status),
        )
        created = self.repository.create(task, user_id=user_id)
        logger.info("Task created", extra={"user_id": user_id, "task_id": created.id})
        self.feed.publish(user_id, TASKS)
        return created

    def update_task(self, task_id: int, update: TaskUpdate) -> Task:
        """Edit a task; linked tasks only accept status and category changes."""

        user_id = self.auth.require_user_id()
        category = update.validate(max_amount=self.max_amount)
        tasks = self.repository.list_all(user_id=user_id)
        task = next((t for t in tasks if t.id == task_id), None)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if task.is_linked and update.touches_content():
            raise LinkedTaskError(
                "Bill tasks from recurring transactions only allow status and category edits"
            )

        changes: dict = {}
        if update.title is not None:
            changes["title"] = update.title
        if update.description is not None:
            changes["description"] = update.description
        if update.amount is not None:
            changes["amount"] = update.amount
        if category is not None:
            changes["category"] = category.value
        if update.status is not None and update.status.value != task.status:
            changes["status"] = update.status.value
            changes["order"] = _next_order(tasks, update.status)

        updated = self.repository.update(_copy_task(task, **changes), user_id=user_id)
        logger.info("Task updated", extra={"user_id": user_id, "task_id": task_id})
        self.feed.publish(user_id, TASKS)
        return updated

    def delete_task(self, task_id: int) -> None:
        user_id = self.auth.require_user_id()
        task = self.repository.get_by_id(task_id, user_id=user_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if task.is_linked:
            raise LinkedTaskError(
                "Bill tasks from recurring transactions are removed by deleting the recurring transaction"
            )
        self.repository.delete(task_id, user_id=user_id)
        logger.info("Task deleted", extra={"user_id": user_id, "task_id": task_id})
        self.feed.publish(user_id, TASKS)

    def reorder_task(self, task_id: int, new_status: TaskStatus | str, new_order: int) -> list[Task]:
        """Move a task within or across columns as one atomic batch."""

        user_id = self.auth.require_user_id()
        status = validate_status(new_status)
        tasks = self.repository.list_all(user_id=user_id)
        changed = plan_reorder(tasks, task_id, status, new_order)
        if changed:
            self.repository.apply_batch(updates=changed, user_id=user_id)
            self.feed.publish(user_id, TASKS)
        logger.info(
            "Task moved",
            extra={"user_id": user_id, "task_id": task_id, "status": status.value, "order": new_order},
        )
        return changed

    def add_to_calendar(
        self,
        task_id: int,
        occurred_at: datetime,
        category: Optional[str | Category] = None,
        *,
        keep_task: bool = False,
    ) -> Transaction:
        """Turn a finished one-time task into a non-recurring expense."""

        user_id = self.auth.require_user_id()
        if not isinstance(occurred_at, datetime):
            raise ValidationError("Date is required", field="date")
        task = self.repository.get_by_id(task_id, user_id=user_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if task.is_linked:
            raise LinkedTaskError("Bill tasks from recurring transactions are already on the calendar")
        if task.status != TaskStatus.DONE.value:
            raise ValidationError("Only completed tasks can be added to the calendar", field="status")
        if task.added_to_calendar:
            raise ValidationError("Task was already added to the calendar", field="added_to_calendar")

        resolved = category_from_stored(task.category, Polarity.EXPENSE)
        if category is not None:
            resolved = coerce_category(category, Polarity.EXPENSE)
        transaction = Transaction(
            user_id=user_id,
            occurred_at=occurred_at,
            description=task.title,
            amount=-abs(task.amount),
            category=resolved.value,
            is_recurring=False,
        )
        created = self.repository.convert_to_transaction(
            task_id, transaction, keep_task=keep_task, user_id=user_id
        )
        logger.info(
            "Task added to calendar",
            extra={"user_id": user_id, "task_id": task_id, "transaction_id": created.id},
        )
        self.feed.publish(user_id, TASKS)
        self.feed.publish(user_id, TRANSACTIONS)
        return created
