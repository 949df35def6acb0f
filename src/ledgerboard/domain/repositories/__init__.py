"""Repository protocol definitions for domain layer."""

from .task import TaskRepository
from .transaction import TransactionRepository

__all__ = [
    "TaskRepository",
    "TransactionRepository",
]
