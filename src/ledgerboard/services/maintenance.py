"""Maintenance utilities for recurring templates (duplicate cleanup, purge)."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session, select

from ..infra.database import SessionFactory
from ..infra.repositories.base import owner_session
from ..logging_config import get_logger
from ..models.task import Task
from ..models.transaction import Transaction
from ..months import format_year_month
from .events import TASKS, TRANSACTIONS, ChangeFeed

logger = get_logger("maintenance")


@dataclass(frozen=True)
class DuplicateGroup:
    """Templates sharing a description and amount; the oldest one is kept."""

    description: str
    amount: float
    keep_id: int
    duplicate_ids: tuple[int, ...]


@dataclass(frozen=True)
class DuplicateReport:
    total: int
    unique: int
    groups: tuple[DuplicateGroup, ...]

    @property
    def duplicates(self) -> int:
        return self.total - self.unique


@dataclass(frozen=True)
class CleanupSummary:
    """Counts returned by the destructive maintenance operations."""

    templates_removed: int
    tasks_removed: int
    start_months_backfilled: int = 0


def _templates(session: Session, user_id: int) -> list[Transaction]:
    statement = (
        select(Transaction)
        .where(Transaction.user_id == user_id)
        .where(Transaction.is_recurring == True)  # noqa: E712
        .order_by(Transaction.created_at, Transaction.id)  # type: ignore
    )
    return list(session.exec(statement).all())


def _group_duplicates(templates: list[Transaction]) -> list[DuplicateGroup]:
    grouped: dict[tuple[str, float], list[Transaction]] = defaultdict(list)
    for template in templates:
        grouped[(template.description, template.amount)].append(template)
    groups = []
    for (description, amount), members in grouped.items():
        if len(members) < 2:
            continue
        groups.append(
            DuplicateGroup(
                description=description,
                amount=amount,
                keep_id=members[0].id,
                duplicate_ids=tuple(m.id for m in members[1:]),
            )
        )
    return groups


def _delete_linked_tasks(session: Session, user_id: int, template_ids: list[int]) -> int:
    if not template_ids:
        return 0
    tasks = session.exec(
        select(Task)
        .where(Task.user_id == user_id)
        .where(Task.linked_transaction_id.in_(template_ids))  # type: ignore
    ).all()
    for task in tasks:
        session.delete(task)
    return len(tasks)


def analyze_recurring_duplicates(*, user_id: int, session_factory: SessionFactory) -> DuplicateReport:
    """Count templates that repeat another template's description and amount."""

    with owner_session(session_factory, user_id) as session:
        templates = _templates(session, user_id)
        groups = _group_duplicates(templates)
    unique = len(templates) - sum(len(g.duplicate_ids) for g in groups)
    return DuplicateReport(total=len(templates), unique=unique, groups=tuple(groups))


def dedupe_recurring_templates(
    *,
    user_id: int,
    session_factory: SessionFactory,
    feed: Optional[ChangeFeed] = None,
) -> CleanupSummary:
    """Keep the oldest template of each duplicate group and delete the rest.

    Kept templates lacking ``recurring_start_month`` get it backfilled from
    their anchor date. Linked tasks of removed templates go in the same batch.
    """

    with owner_session(session_factory, user_id) as session:
        templates = _templates(session, user_id)
        groups = _group_duplicates(templates)
        doomed = {tid for group in groups for tid in group.duplicate_ids}

        backfilled = 0
        for template in templates:
            if template.id in doomed:
                session.delete(template)
            elif not template.recurring_start_month:
                template.recurring_start_month = format_year_month(template.occurred_at)
                session.add(template)
                backfilled += 1
        tasks_removed = _delete_linked_tasks(session, user_id, sorted(doomed))

    summary = CleanupSummary(
        templates_removed=len(doomed),
        tasks_removed=tasks_removed,
        start_months_backfilled=backfilled,
    )
    logger.info(
        "Recurring duplicates removed",
        extra={
            "user_id": user_id,
            "templates_removed": summary.templates_removed,
            "tasks_removed": summary.tasks_removed,
            "backfilled": backfilled,
        },
    )
    if feed is not None and (doomed or backfilled):
        feed.publish(user_id, TRANSACTIONS)
        if tasks_removed:
            feed.publish(user_id, TASKS)
    return summary


def purge_recurring_templates(
    *,
    user_id: int,
    session_factory: SessionFactory,
    feed: Optional[ChangeFeed] = None,
) -> CleanupSummary:
    """Delete every recurring template and every linked task of the owner."""

    with owner_session(session_factory, user_id) as session:
        templates = _templates(session, user_id)
        ids = [t.id for t in templates]
        for template in templates:
            session.delete(template)
        tasks_removed = _delete_linked_tasks(session, user_id, ids)

    logger.warning(
        "Recurring templates purged",
        extra={"user_id": user_id, "templates_removed": len(ids), "tasks_removed": tasks_removed},
    )
    if feed is not None and ids:
        feed.publish(user_id, TRANSACTIONS)
        if tasks_removed:
            feed.publish(user_id, TASKS)
    return CleanupSummary(templates_removed=len(ids), tasks_removed=tasks_removed)
