"""SQLModel definitions for transactions and recurring templates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from ..months import format_year_month

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .user import User


@dataclass(frozen=True)
class AmountChange:
    """A recurring amount override effective from a month onwards."""

    amount: float
    effective_from: str

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.amount, "effective_from": self.effective_from}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AmountChange":
        return cls(amount=float(raw["amount"]), effective_from=str(raw["effective_from"]))


class Transaction(SQLModel, table=True):
    """A dated entry, or, when ``is_recurring`` is set, a monthly template.

    For templates ``occurred_at`` is the anchor whose day-of-month and time are
    reused every month and ``amount`` is the base amount effective from
    ``recurring_start_month`` until the first ``amount_history`` entry.
    """

    __tablename__: ClassVar[str] = "transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    occurred_at: datetime = Field(nullable=False, index=True)
    description: str = Field(nullable=False, max_length=200)
    amount: float = Field(nullable=False, description="Positive for income, negative for expense")
    category: Optional[str] = Field(default=None, max_length=32)
    is_recurring: bool = Field(default=False, nullable=False, index=True)
    recurring_start_month: Optional[str] = Field(default=None, max_length=7)
    excluded_months: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    amount_history: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, nullable=False)
    updated_at: Optional[datetime] = Field(default=None)

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="transactions"))

    def start_month(self) -> str:
        """First month a template is active in."""

        return self.recurring_start_month or format_year_month(self.occurred_at)

    def amount_changes(self) -> list[AmountChange]:
        return [AmountChange.from_dict(raw) for raw in (self.amount_history or [])]
