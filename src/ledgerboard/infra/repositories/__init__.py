"""Concrete repository implementations using SQLModel."""

from .task import SQLModelTaskRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelTaskRepository",
    "SQLModelTransactionRepository",
]
