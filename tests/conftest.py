"""Pytest configuration and shared fixtures for Ledgerboard tests.

Every test gets its own SQLite database file, a session factory bound to it,
a signed-in principal and factories for templates, transactions and tasks.
Services are wired the same way ``create_app_context`` wires them.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import pytest
from sqlmodel import create_engine

from ledgerboard.infra.database import create_session_factory, init_database
from ledgerboard.infra.repositories import SQLModelTaskRepository, SQLModelTransactionRepository
from ledgerboard.logging_config import ROOT_LOGGER_NAME
from ledgerboard.models import Task, TaskStatus, Transaction, User
from ledgerboard.months import format_year_month
from ledgerboard.services.auth import AuthSession
from ledgerboard.services.bill_tasks import BillTaskService
from ledgerboard.services.events import ChangeFeed
from ledgerboard.services.month_cache import MonthViewCache
from ledgerboard.services.recurring import RecurringTransactionService

TODAY = date(2025, 3, 10)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo ``setup_logging`` so level and handlers never leak between tests."""

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = package_logger.level
    handlers = list(package_logger.handlers)
    yield package_logger
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(level)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create an isolated SQLite database for each test.

    Yields:
        Engine: SQLModel engine connected to the test database
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledgerboard-test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    init_database(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory committing on success and rolling back on error."""

    return create_session_factory(db_engine)


# =============================================================================
# Principal and services
# =============================================================================


def _insert_user(session_factory, username: str) -> User:
    with session_factory() as session:
        row = User(username=username, password_hash="dummy-hash")
        session.add(row)
        session.commit()
        session.refresh(row)
        session.expunge(row)
        return row


@pytest.fixture
def user(session_factory) -> User:
    """Default principal for scoping data."""

    return _insert_user(session_factory, "tester")


@pytest.fixture
def other_user(session_factory) -> User:
    return _insert_user(session_factory, "someone-else")


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def published(feed) -> list[tuple[int | None, str]]:
    """Every ``(owner_id, collection)`` notification, in order."""

    events: list[tuple[int | None, str]] = []
    feed.subscribe(lambda owner_id, collection: events.append((owner_id, collection)))
    return events


@pytest.fixture
def auth(session_factory, feed, user) -> AuthSession:
    """Auth session with ``user`` already signed in."""

    session = AuthSession(session_factory, feed)
    session.use(user)
    return session


@pytest.fixture
def transaction_repo(session_factory) -> SQLModelTransactionRepository:
    return SQLModelTransactionRepository(session_factory)


@pytest.fixture
def task_repo(session_factory) -> SQLModelTaskRepository:
    return SQLModelTaskRepository(session_factory)


@pytest.fixture
def transactions(transaction_repo, auth, feed) -> RecurringTransactionService:
    return RecurringTransactionService(transaction_repo, auth, feed)


@pytest.fixture
def tasks(task_repo, auth, feed) -> BillTaskService:
    return BillTaskService(task_repo, auth, feed)


@pytest.fixture
def month_cache(transactions, tasks, auth, feed) -> MonthViewCache:
    cache = MonthViewCache(transactions, tasks, auth, feed, clock=lambda: TODAY)
    yield cache
    cache.close()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def transaction_factory(session_factory, user):
    """Factory for persisting plain (non-recurring) transactions."""

    def _create_transaction(
        amount: float,
        description: str = "Test transaction",
        occurred_at: datetime | None = None,
        category: str | None = None,
        owner: User | None = None,
    ) -> Transaction:
        owner = owner or user
        transaction = Transaction(
            user_id=owner.id,
            occurred_at=occurred_at or datetime(2025, 3, 5, 12, 0),
            description=description,
            amount=amount,
            category=category or "misc",
            is_recurring=False,
        )
        with session_factory() as session:
            session.add(transaction)
            session.commit()
            session.refresh(transaction)
            session.expunge(transaction)
        return transaction

    return _create_transaction


@pytest.fixture
def template_factory(session_factory, user):
    """Factory for persisting recurring templates.

    Args:
        amount: Base amount (negative for a recurring bill)
        occurred_at: Anchor date; its day and time repeat every month
        start_month: Defaults to the anchor's month
        amount_history: ``[(amount, "YYYY-MM"), ...]`` overrides
    """

    def _create_template(
        amount: float = -1200.0,
        description: str = "Rent",
        occurred_at: datetime | None = None,
        category: str = "rent",
        start_month: str | None = None,
        excluded_months: list[str] | None = None,
        amount_history: list[tuple[float, str]] | None = None,
        owner: User | None = None,
        created_at: datetime | None = None,
    ) -> Transaction:
        owner = owner or user
        occurred_at = occurred_at or datetime(2025, 1, 1, 9, 0)
        template = Transaction(
            user_id=owner.id,
            occurred_at=occurred_at,
            description=description,
            amount=amount,
            category=category,
            is_recurring=True,
            recurring_start_month=start_month or format_year_month(occurred_at),
            excluded_months=list(excluded_months or []),
            amount_history=[
                {"amount": value, "effective_from": month} for value, month in (amount_history or [])
            ],
        )
        if created_at is not None:
            template.created_at = created_at
        with session_factory() as session:
            session.add(template)
            session.commit()
            session.refresh(template)
            session.expunge(template)
        return template

    return _create_template


@pytest.fixture
def task_factory(session_factory, user):
    """Factory for persisting tasks (manual by default)."""

    def _create_task(
        title: str = "Test task",
        amount: float = 50.0,
        status: TaskStatus = TaskStatus.TODO,
        order: int = 0,
        category: str | None = None,
        linked_transaction_id: int | None = None,
        linked_month: str | None = None,
        owner: User | None = None,
    ) -> Task:
        owner = owner or user
        task = Task(
            user_id=owner.id,
            title=title,
            amount=amount,
            status=status.value,
            order=order,
            category=category,
            linked_transaction_id=linked_transaction_id,
            linked_month=linked_month,
        )
        with session_factory() as session:
            session.add(task)
            session.commit()
            session.refresh(task)
            session.expunge(task)
        return task

    return _create_task
