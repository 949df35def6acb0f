"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, create_db_engine, create_session_factory, init_database
from .infra.repositories import SQLModelTaskRepository, SQLModelTransactionRepository
from .services.auth import AuthSession
from .services.bill_tasks import BillTaskService
from .services.events import ChangeFeed
from .services.month_cache import MonthViewCache
from .services.recurring import RecurringTransactionService


@dataclass
class AppContext:
    """Centralized application context with services and state."""

    # Configuration
    config: BaseConfig

    # Storage
    engine: Engine
    session_factory: SessionFactory

    # Repositories
    transaction_repo: SQLModelTransactionRepository
    task_repo: SQLModelTaskRepository

    # Services
    feed: ChangeFeed
    auth: AuthSession
    transactions: RecurringTransactionService
    tasks: BillTaskService
    months: MonthViewCache

    current_month: date

    def require_user_id(self) -> int:
        """Return the current user id or raise if not set."""

        return self.auth.require_user_id()


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    transaction_repo = SQLModelTransactionRepository(session_factory)
    task_repo = SQLModelTaskRepository(session_factory)

    feed = ChangeFeed()
    auth = AuthSession(session_factory, feed)
    transactions = RecurringTransactionService(
        transaction_repo, auth, feed, max_amount=config.MAX_AMOUNT
    )
    tasks = BillTaskService(task_repo, auth, feed, max_amount=config.MAX_AMOUNT)
    months = MonthViewCache(transactions, tasks, auth, feed)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        transaction_repo=transaction_repo,
        task_repo=task_repo,
        feed=feed,
        auth=auth,
        transactions=transactions,
        tasks=tasks,
        months=months,
        current_month=date.today().replace(day=1),
    )
