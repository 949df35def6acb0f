"""Bill-tracking task cards."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy import Index
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class Task(SQLModel, table=True):
    """A kanban card; linked cards are owned by the bill-task synchronizer."""

    __tablename__: ClassVar[str] = "task"
    __table_args__ = (Index("ix_task_user_status_order", "user_id", "status", "order"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=200)
    description: str = Field(default="", max_length=500)
    amount: float = Field(nullable=False, description="Expense magnitude, always positive")
    category: Optional[str] = Field(default=None, max_length=32)
    status: str = Field(default=TaskStatus.TODO.value, nullable=False, max_length=16)
    order: int = Field(default=0, nullable=False)

    # Set only on cards generated from a recurring expense template.
    linked_transaction_id: Optional[int] = Field(default=None, index=True)
    linked_month: Optional[str] = Field(default=None, max_length=7)
    due_date: Optional[datetime] = Field(default=None)
    added_to_calendar: bool = Field(default=False, nullable=False)

    created_at: datetime = Field(default_factory=datetime.now, nullable=False)
    updated_at: Optional[datetime] = Field(default=None)

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="tasks"))

    @property
    def is_linked(self) -> bool:
        return self.linked_transaction_id is not None
