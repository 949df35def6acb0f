"""Input forms validated before any write reaches the store."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .config import BaseConfig
from .constants.categories import Category, Polarity, coerce_category, polarity_of
from .errors import ValidationError
from .models.task import TaskStatus

MAX_AMOUNT = BaseConfig.DEFAULT_MAX_AMOUNT
DESCRIPTION_MAX_LENGTH = BaseConfig.DESCRIPTION_MAX_LENGTH
TASK_DESCRIPTION_MAX_LENGTH = BaseConfig.TASK_DESCRIPTION_MAX_LENGTH


def validate_amount(amount: object, *, max_amount: float = MAX_AMOUNT) -> float:
    """Return ``amount`` as a float; reject zero, NaN, infinities and huge values."""

    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError("Amount must be a valid number", field="amount")
    value = float(amount)
    if not math.isfinite(value):
        raise ValidationError("Amount must be a valid number", field="amount")
    if value == 0:
        raise ValidationError("Amount cannot be zero", field="amount")
    if abs(value) > max_amount:
        raise ValidationError("Amount is too large", field="amount")
    return value


def validate_text(
    value: Optional[str], *, field: str, max_length: int, required: bool = True
) -> str:
    text = (value or "").strip()
    if required and not text:
        raise ValidationError(f"{field.capitalize()} is required", field=field)
    if len(text) > max_length:
        raise ValidationError(f"{field.capitalize()} is too long", field=field)
    return text


def validate_status(value: object) -> TaskStatus:
    try:
        return TaskStatus(value.value if isinstance(value, TaskStatus) else value)
    except ValueError as exc:
        raise ValidationError(f"Unknown task status: {value!r}", field="status") from exc


@dataclass(slots=True)
class TransactionForm:
    """New transaction (or recurring template) prior to validation."""

    description: str
    amount: float
    occurred_at: datetime
    category: Optional[str | Category] = None
    is_recurring: bool = False

    def validate(self, *, max_amount: float = MAX_AMOUNT) -> Category:
        """Normalize fields in place and return the resolved category."""

        self.description = validate_text(
            self.description, field="description", max_length=DESCRIPTION_MAX_LENGTH
        )
        self.amount = validate_amount(self.amount, max_amount=max_amount)
        if not isinstance(self.occurred_at, datetime):
            raise ValidationError("Date is required", field="date")
        return coerce_category(self.category, polarity_of(self.amount))


@dataclass(slots=True)
class TransactionUpdate:
    """Partial edit; ``None`` means "leave unchanged"."""

    description: Optional[str] = None
    amount: Optional[float] = None
    occurred_at: Optional[datetime] = None
    category: Optional[str | Category] = None
    is_recurring: Optional[bool] = None

    def validate(self, *, max_amount: float = MAX_AMOUNT) -> None:
        if self.description is not None:
            self.description = validate_text(
                self.description, field="description", max_length=DESCRIPTION_MAX_LENGTH
            )
        if self.amount is not None:
            self.amount = validate_amount(self.amount, max_amount=max_amount)
        if self.occurred_at is not None and not isinstance(self.occurred_at, datetime):
            raise ValidationError("Date must be a datetime", field="date")

    def resolve_category(self, polarity: Polarity) -> Optional[Category]:
        if self.category is None:
            return None
        return coerce_category(self.category, polarity)

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.description,
                self.amount,
                self.occurred_at,
                self.category,
                self.is_recurring,
            )
        )


@dataclass(slots=True)
class TaskForm:
    """New manual task prior to validation."""

    title: str
    amount: float
    description: str = ""
    status: TaskStatus | str = TaskStatus.TODO
    category: Optional[str | Category] = None

    def validate(self, *, max_amount: float = MAX_AMOUNT) -> Optional[Category]:
        self.title = validate_text(self.title, field="title", max_length=DESCRIPTION_MAX_LENGTH)
        self.description = validate_text(
            self.description,
            field="description",
            max_length=TASK_DESCRIPTION_MAX_LENGTH,
            required=False,
        )
        self.amount = validate_amount(self.amount, max_amount=max_amount)
        if self.amount < 0:
            raise ValidationError("Amount must be greater than 0", field="amount")
        self.status = validate_status(self.status)
        if self.category is None:
            return None
        return coerce_category(self.category, Polarity.EXPENSE)


@dataclass(slots=True)
class TaskUpdate:
    """Partial task edit; ``None`` means "leave unchanged"."""

    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    status: Optional[TaskStatus | str] = None
    category: Optional[str | Category] = None

    def validate(self, *, max_amount: float = MAX_AMOUNT) -> Optional[Category]:
        if self.title is not None:
            self.title = validate_text(self.title, field="title", max_length=DESCRIPTION_MAX_LENGTH)
        if self.description is not None:
            self.description = validate_text(
                self.description,
                field="description",
                max_length=TASK_DESCRIPTION_MAX_LENGTH,
                required=False,
            )
        if self.amount is not None:
            self.amount = validate_amount(self.amount, max_amount=max_amount)
            if self.amount < 0:
                raise ValidationError("Amount must be greater than 0", field="amount")
        if self.status is not None:
            self.status = validate_status(self.status)
        if self.category is None:
            return None
        return coerce_category(self.category, Polarity.EXPENSE)

    def touches_content(self) -> bool:
        """True when fields other than status/category are being changed."""

        return any(value is not None for value in (self.title, self.description, self.amount))
