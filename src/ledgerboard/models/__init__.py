"""SQLModel table exports."""

from .task import Task, TaskStatus
from .transaction import AmountChange, Transaction
from .user import User

__all__ = [
    "AmountChange",
    "Task",
    "TaskStatus",
    "Transaction",
    "User",
]
