"""Input validation performed before any write."""

from __future__ import annotations

import math
from datetime import datetime

import pytest

from ledgerboard.constants.categories import ExpenseCategory, IncomeCategory
from ledgerboard.errors import ValidationError
from ledgerboard.forms import TaskForm, TaskUpdate, TransactionForm, TransactionUpdate, validate_amount
from ledgerboard.models.task import TaskStatus


@pytest.mark.parametrize("amount", [0, 0.0, math.nan, math.inf, -math.inf, 1e9 + 1, "12", None, True])
def test_invalid_amounts_are_rejected(amount):
    with pytest.raises(ValidationError) as excinfo:
        validate_amount(amount)
    assert excinfo.value.field == "amount"


def test_amount_bound_is_inclusive():
    assert validate_amount(-1e9) == -1e9
    assert validate_amount(3) == 3.0


def test_transaction_form_trims_and_resolves_category():
    form = TransactionForm(description="  Paycheck ", amount=2500, occurred_at=datetime(2025, 3, 1))

    category = form.validate()

    assert form.description == "Paycheck"
    assert category is IncomeCategory.MISC


def test_transaction_form_description_limits():
    with pytest.raises(ValidationError):
        TransactionForm(description="   ", amount=-5, occurred_at=datetime(2025, 3, 1)).validate()
    with pytest.raises(ValidationError):
        TransactionForm(description="x" * 201, amount=-5, occurred_at=datetime(2025, 3, 1)).validate()
    form = TransactionForm(description="x" * 200, amount=-5, occurred_at=datetime(2025, 3, 1))
    assert form.validate() is ExpenseCategory.MISC


def test_transaction_form_requires_a_datetime():
    with pytest.raises(ValidationError):
        TransactionForm(description="Rent", amount=-5, occurred_at="2025-03-01").validate()


def test_transaction_update_only_checks_supplied_fields():
    update = TransactionUpdate(category="groceries")

    update.validate()

    assert not update.is_empty()
    assert TransactionUpdate().is_empty()
    with pytest.raises(ValidationError):
        TransactionUpdate(amount=0).validate()


def test_task_form_requires_positive_amount():
    with pytest.raises(ValidationError):
        TaskForm(title="Pay plumber", amount=-80).validate()

    form = TaskForm(title="Pay plumber", amount=80, status="in-progress", category="utilities")
    assert form.validate() is ExpenseCategory.UTILITIES
    assert form.status is TaskStatus.IN_PROGRESS


def test_task_form_description_limit():
    with pytest.raises(ValidationError):
        TaskForm(title="Pay plumber", amount=80, description="d" * 501).validate()


def test_task_form_rejects_unknown_status():
    with pytest.raises(ValidationError) as excinfo:
        TaskForm(title="Pay plumber", amount=80, status="blocked").validate()
    assert excinfo.value.field == "status"


def test_task_update_content_detection():
    assert TaskUpdate(title="New").touches_content()
    assert TaskUpdate(amount=10).touches_content()
    assert not TaskUpdate(status=TaskStatus.DONE, category="rent").touches_content()
