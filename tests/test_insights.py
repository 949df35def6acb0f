"""Month summaries, category breakdown and calendar day rollups."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from ledgerboard.constants.categories import ExpenseCategory, IncomeCategory, Polarity
from ledgerboard.models.task import Task
from ledgerboard.services.insights import category_breakdown, daily_summaries, month_summary
from ledgerboard.services.recurring import OccurrenceKey, TransactionView


def view(tid, amount, day, category, *, recurring=False, month="2025-03"):
    year, mon = (int(part) for part in month.split("-"))
    return TransactionView(
        key=OccurrenceKey(tid, month if recurring else None),
        owner_id=1,
        occurred_at=datetime(year, mon, day, 10, 0),
        description=f"tx-{tid}",
        amount=amount,
        category=category,
        is_recurring=recurring,
    )


@pytest.fixture
def march():
    return [
        view(1, 1000.0, 1, IncomeCategory.SALARY),
        view(2, -200.0, 3, ExpenseCategory.GROCERIES),
        view(3, -50.0, 3, ExpenseCategory.GROCERIES),
        view(4, -750.0, 5, ExpenseCategory.RENT, recurring=True),
    ]


def test_month_summary_net_matches_balance(march):
    summary = month_summary(march)

    assert summary.income == 1000.0
    assert summary.expenses == 1000.0
    assert summary.net == 0.0


def test_breakdown_sorted_by_amount_with_percentages(march):
    rows = category_breakdown(march)

    assert [row.category for row in rows] == [ExpenseCategory.RENT, ExpenseCategory.GROCERIES]
    assert rows[0].amount == 750.0
    assert rows[0].percentage == pytest.approx(75.0)
    assert rows[1].count == 2
    assert rows[1].label == "Groceries"
    assert rows[1].color.startswith("#")


def test_income_breakdown(march):
    rows = category_breakdown(march, Polarity.INCOME)

    assert [(row.category, row.percentage) for row in rows] == [(IncomeCategory.SALARY, 100.0)]


def test_empty_breakdown():
    assert category_breakdown([]) == []


def test_daily_summaries_cover_every_day(march):
    days = daily_summaries(march, [], "2025-03", today=date(2025, 3, 10))

    assert len(days) == 31
    assert days[0].day == date(2025, 3, 1)
    assert days[0].income == 1000.0
    assert days[2].expense == 250.0
    assert days[2].net == -250.0
    assert len(days[2].transactions) == 2
    assert days[1].transactions == ()


def test_daily_summaries_flag_overdue_bills(march):
    paid = Task(
        id=1, user_id=1, title="Rent", amount=750.0, status="done",
        linked_transaction_id=4, linked_month="2025-03",
    )

    unpaid_days = daily_summaries(march, [], "2025-03", today=date(2025, 3, 10))
    paid_days = daily_summaries(march, [paid], "2025-03", today=date(2025, 3, 10))

    assert unpaid_days[4].has_overdue
    assert [v.id for v in unpaid_days[4].overdue] == ["4#2025-03"]
    assert not paid_days[4].has_overdue
    assert not any(day.has_overdue for day in unpaid_days if day.day.day != 5)
