"""Month summaries, spending breakdowns and calendar day rollups."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from ..constants.categories import Category, Polarity, category_style, polarity_of
from ..models.task import Task
from ..months import days_in_month, parse_year_month
from .bill_tasks import is_overdue
from .recurring import TransactionView


@dataclass(frozen=True)
class MonthSummary:
    income: float
    expenses: float
    net: float


@dataclass(frozen=True)
class CategoryBreakdownRow:
    """One slice of the spending (or income) breakdown."""

    category: Category
    label: str
    color: str
    amount: float
    percentage: float
    count: int


@dataclass(frozen=True)
class DaySummary:
    day: date
    income: float = 0.0
    expense: float = 0.0
    transactions: tuple[TransactionView, ...] = field(default_factory=tuple)
    overdue: tuple[TransactionView, ...] = field(default_factory=tuple)

    @property
    def net(self) -> float:
        return self.income - self.expense

    @property
    def has_overdue(self) -> bool:
        return bool(self.overdue)


def month_summary(views: Iterable[TransactionView]) -> MonthSummary:
    """Income and expense totals; ``net`` equals the month balance."""

    income = 0.0
    expenses = 0.0
    for view in views:
        if view.amount > 0:
            income += view.amount
        else:
            expenses += abs(view.amount)
    return MonthSummary(income=income, expenses=expenses, net=income - expenses)


def category_breakdown(
    views: Iterable[TransactionView], polarity: Polarity = Polarity.EXPENSE
) -> list[CategoryBreakdownRow]:
    """Per-category totals of one polarity, largest first."""

    totals: dict[Category, float] = defaultdict(float)
    counts: dict[Category, int] = defaultdict(int)
    for view in views:
        if polarity_of(view.amount) is not polarity:
            continue
        totals[view.category] += abs(view.amount)
        counts[view.category] += 1

    grand_total = sum(totals.values())
    rows = []
    for category, amount in totals.items():
        style = category_style(category)
        rows.append(
            CategoryBreakdownRow(
                category=category,
                label=style.label,
                color=style.color,
                amount=amount,
                percentage=(amount / grand_total * 100) if grand_total else 0.0,
                count=counts[category],
            )
        )
    rows.sort(key=lambda row: (-row.amount, row.label))
    return rows


def daily_summaries(
    views: Sequence[TransactionView],
    tasks: Sequence[Task],
    year_month: str,
    *,
    today: Optional[date] = None,
) -> list[DaySummary]:
    """One summary per calendar day of ``year_month``, in day order."""

    year, month = parse_year_month(year_month)
    by_day: dict[int, list[TransactionView]] = defaultdict(list)
    for view in views:
        if view.month == year_month:
            by_day[view.occurred_at.day].append(view)

    summaries = []
    for day in range(1, days_in_month(year_month) + 1):
        entries = by_day.get(day, [])
        summaries.append(
            DaySummary(
                day=date(year, month, day),
                income=sum(v.amount for v in entries if v.amount > 0),
                expense=sum(abs(v.amount) for v in entries if v.amount < 0),
                transactions=tuple(entries),
                overdue=tuple(v for v in entries if is_overdue(v, tasks, today=today)),
            )
        )
    return summaries
