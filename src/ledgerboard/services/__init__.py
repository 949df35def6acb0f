"""Service module exports."""

from . import auth, bill_tasks, events, insights, maintenance, month_cache, recurring

__all__ = [
    "auth",
    "bill_tasks",
    "events",
    "insights",
    "maintenance",
    "month_cache",
    "recurring",
]
