"""Pure materialization of recurring templates onto months."""

from __future__ import annotations

from datetime import datetime

import pytest

from ledgerboard.constants.categories import ExpenseCategory, IncomeCategory
from ledgerboard.errors import ValidationError
from ledgerboard.forms import TransactionUpdate
from ledgerboard.models.transaction import AmountChange, Transaction
from ledgerboard.services.recurring import (
    OccurrenceKey,
    apply_occurrence_edit,
    compute_balance,
    exclude_month,
    materialize_month,
    materialize_template,
    resolve_effective_amount,
)


def make_template(
    *,
    id: int = 7,
    amount: float = -500.0,
    occurred_at: datetime = datetime(2025, 1, 31, 8, 30),
    start_month: str | None = None,
    excluded: list[str] | None = None,
    history: list[dict] | None = None,
    category: str = "rent",
) -> Transaction:
    return Transaction(
        id=id,
        user_id=1,
        occurred_at=occurred_at,
        description="Rent",
        amount=amount,
        category=category,
        is_recurring=True,
        recurring_start_month=start_month,
        excluded_months=excluded or [],
        amount_history=history or [],
    )


def make_plain(id: int, amount: float, occurred_at: datetime, description: str = "Coffee") -> Transaction:
    return Transaction(
        id=id,
        user_id=1,
        occurred_at=occurred_at,
        description=description,
        amount=amount,
        category=None,
        is_recurring=False,
    )


def test_anchor_on_31st_clamps_to_short_months():
    template = make_template()

    february = materialize_template(template, "2025-02")
    april = materialize_template(template, "2025-04")
    leap_february = materialize_template(make_template(occurred_at=datetime(2024, 1, 31)), "2024-02")

    assert february.occurred_at == datetime(2025, 2, 28, 8, 30)
    assert april.occurred_at == datetime(2025, 4, 30, 8, 30)
    assert leap_february.occurred_at.day == 29


def test_virtual_instance_carries_composite_key():
    view = materialize_template(make_template(), "2025-03")

    assert view.key == OccurrenceKey(7, "2025-03")
    assert view.id == "7#2025-03"
    assert view.is_virtual
    assert view.is_recurring
    assert view.category is ExpenseCategory.RENT


def test_excluded_month_is_skipped_only_for_that_month():
    template = make_template(excluded=["2025-03"])

    assert materialize_template(template, "2025-03") is None
    assert materialize_template(template, "2025-02") is not None
    assert materialize_template(template, "2025-04") is not None


@pytest.mark.parametrize(
    "month,expected",
    [("2025-01", -500.0), ("2025-02", -500.0), ("2025-03", -500.0), ("2025-04", -600.0), ("2026-01", -600.0)],
)
def test_amount_history_applies_from_effective_month(month, expected):
    template = make_template(history=[{"amount": -600.0, "effective_from": "2025-04"}])

    assert materialize_template(template, month).amount == expected


def test_latest_applicable_history_entry_wins():
    history = [
        AmountChange(amount=-650.0, effective_from="2025-06"),
        AmountChange(amount=-600.0, effective_from="2025-04"),
    ]

    assert resolve_effective_amount(-500.0, history, "2025-05") == -600.0
    assert resolve_effective_amount(-500.0, history, "2025-06") == -650.0
    assert resolve_effective_amount(-500.0, history, "2025-03") == -500.0


def test_start_month_gates_earlier_months():
    template = make_template(occurred_at=datetime(2025, 1, 15), start_month="2025-05")

    assert materialize_template(template, "2025-04") is None
    assert materialize_template(template, "2024-12") is None
    assert materialize_template(template, "2025-05") is not None
    assert materialize_template(template, "2027-11") is not None


def test_start_month_defaults_to_anchor_month():
    template = make_template(occurred_at=datetime(2025, 3, 2))

    assert materialize_template(template, "2025-02") is None
    assert materialize_template(template, "2025-03").occurred_at == datetime(2025, 3, 2)


def test_month_merges_real_and_virtual_sorted_newest_first():
    regular = [
        make_plain(1, 1000.0, datetime(2025, 3, 1, 9, 0), "Salary"),
        make_plain(2, -200.0, datetime(2025, 3, 20, 18, 0), "Groceries"),
    ]
    templates = [make_template(id=9, amount=-300.0, occurred_at=datetime(2025, 1, 10, 7, 0))]

    views = materialize_month(regular, templates, "2025-03")

    assert [v.id for v in views] == ["2", "9#2025-03", "1"]
    assert compute_balance(views) == 500.0


def test_regular_transactions_get_polarity_categories():
    views = materialize_month([make_plain(1, 40.0, datetime(2025, 3, 3))], [], "2025-03")

    assert views[0].category is IncomeCategory.MISC
    assert not views[0].is_virtual


def test_recurring_income_is_not_a_recurring_expense():
    income = make_template(amount=2500.0, category="salary")
    view = materialize_template(income, "2025-02")

    assert view.category is IncomeCategory.SALARY
    assert not view.is_recurring_expense


def test_invalid_month_is_rejected():
    with pytest.raises(ValidationError):
        materialize_month([], [make_template()], "2025-13")


def test_exclusion_is_idempotent():
    template = make_template()

    exclude_month(template, "2025-03")
    exclude_month(template, "2025-03")
    exclude_month(template, "2025-02")

    assert template.excluded_months == ["2025-02", "2025-03"]


def test_occurrence_edit_in_start_month_rewrites_base_amount():
    template = make_template(start_month="2025-01")

    apply_occurrence_edit(template, "2025-01", TransactionUpdate(amount=-550.0))

    assert template.amount == -550.0
    assert template.amount_history == []


def test_occurrence_edit_later_month_upserts_history_without_duplicates():
    template = make_template(start_month="2025-01")

    apply_occurrence_edit(template, "2025-04", TransactionUpdate(amount=-600.0))
    apply_occurrence_edit(template, "2025-04", TransactionUpdate(amount=-620.0))
    apply_occurrence_edit(template, "2025-02", TransactionUpdate(amount=-510.0))

    assert template.amount == -500.0
    assert template.amount_history == [
        {"amount": -510.0, "effective_from": "2025-02"},
        {"amount": -620.0, "effective_from": "2025-04"},
    ]


def test_occurrence_edit_before_start_month_is_rejected():
    template = make_template(start_month="2025-05")

    with pytest.raises(ValidationError):
        apply_occurrence_edit(template, "2025-03", TransactionUpdate(amount=-100.0))


def test_occurrence_edit_rewrites_description_and_category_but_never_the_date():
    template = make_template()
    anchor = template.occurred_at

    apply_occurrence_edit(
        template,
        "2025-06",
        TransactionUpdate(description="Flat rent", category="utilities", occurred_at=datetime(2025, 6, 3)),
    )

    assert template.description == "Flat rent"
    assert template.category == "utilities"
    assert template.occurred_at == anchor
