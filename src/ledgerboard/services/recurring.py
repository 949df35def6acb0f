"""Recurring transaction materialization and template edits.

Recurring templates are persisted once and projected onto whichever month is
being viewed. A projection (``TransactionView`` with ``is_virtual`` set) is
never stored; edits and deletes against it are translated into mutations of
the underlying template:

* description/category edits rewrite the template for every month,
* amount edits rewrite the base amount in the start month and otherwise
  upsert an ``amount_history`` entry effective from the edited month,
* deleting one occurrence appends the month to ``excluded_months``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Union

from ..config import BaseConfig
from ..constants.categories import Category, category_from_stored, polarity_of
from ..errors import NotFoundError, ValidationError
from ..forms import TransactionForm, TransactionUpdate
from ..logging_config import get_logger
from ..models.transaction import AmountChange, Transaction
from ..months import format_year_month, is_year_month, occurrence_date, parse_year_month
from ..domain.repositories import TransactionRepository
from .auth import AuthSession
from .events import TASKS, TRANSACTIONS, ChangeFeed

logger = get_logger("recurring")

KEY_SEPARATOR = "#"


@dataclass(frozen=True)
class OccurrenceKey:
    """Identity of a visible transaction.

    ``month`` is set for a virtual occurrence of a recurring template and
    ``None`` for a concrete, persisted transaction.
    """

    transaction_id: int
    month: Optional[str] = None

    @property
    def is_virtual(self) -> bool:
        return self.month is not None

    def __str__(self) -> str:
        if self.month is None:
            return str(self.transaction_id)
        return f"{self.transaction_id}{KEY_SEPARATOR}{self.month}"

    @classmethod
    def parse(cls, raw: Union["OccurrenceKey", int, str]) -> "OccurrenceKey":
        """Accept a key, a bare id, or the ``"<id>#<YYYY-MM>"`` rendering."""

        if isinstance(raw, OccurrenceKey):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            return cls(raw)
        if not isinstance(raw, str):
            raise ValidationError(f"Invalid transaction id: {raw!r}", field="id")
        id_part, sep, month = raw.strip().partition(KEY_SEPARATOR)
        if not id_part.isdigit():
            raise ValidationError(f"Invalid transaction id: {raw!r}", field="id")
        if not sep:
            return cls(int(id_part))
        if not is_year_month(month):
            raise ValidationError(f"Invalid occurrence month in id: {raw!r}", field="id")
        return cls(int(id_part), month)


@dataclass(frozen=True)
class TransactionView:
    """A transaction as shown for one month; virtual views are never persisted."""

    key: OccurrenceKey
    owner_id: int
    occurred_at: datetime
    description: str
    amount: float
    category: Category
    is_recurring: bool = False
    # Template date for virtual occurrences; its day is kept when projecting.
    anchor_at: Optional[datetime] = None

    @property
    def id(self) -> str:
        return str(self.key)

    @property
    def is_virtual(self) -> bool:
        return self.key.is_virtual

    @property
    def month(self) -> str:
        return format_year_month(self.occurred_at)

    @property
    def template_id(self) -> Optional[int]:
        return self.key.transaction_id if self.is_recurring else None

    @property
    def is_recurring_expense(self) -> bool:
        return self.is_recurring and self.amount < 0


@dataclass(frozen=True)
class MonthView:
    """Merged, date-descending transactions of one month plus their balance."""

    owner_id: Optional[int]
    month: str
    transactions: tuple[TransactionView, ...] = field(default_factory=tuple)

    @property
    def balance(self) -> float:
        return compute_balance(self.transactions)

    def recurring_expenses(self) -> list[TransactionView]:
        return recurring_expenses(self.transactions)


def resolve_effective_amount(
    base_amount: float, history: Iterable[AmountChange], year_month: str
) -> float:
    """Amount in force for ``year_month``.

    The latest change whose ``effective_from`` is on or before the month wins;
    before every change the template's base amount applies.
    """

    for change in sorted(history, key=lambda c: c.effective_from, reverse=True):
        if change.effective_from <= year_month:
            return change.amount
    return base_amount


def view_from_transaction(transaction: Transaction) -> TransactionView:
    """View of a concrete, non-recurring transaction."""

    return TransactionView(
        key=OccurrenceKey(transaction.id),
        owner_id=transaction.user_id,
        occurred_at=transaction.occurred_at,
        description=transaction.description,
        amount=transaction.amount,
        category=category_from_stored(transaction.category, polarity_of(transaction.amount)),
        is_recurring=False,
    )


def materialize_template(template: Transaction, year_month: str) -> Optional[TransactionView]:
    """Project a template onto one month, or None when it does not occur there."""

    if year_month < template.start_month():
        return None
    if year_month in (template.excluded_months or []):
        return None
    amount = resolve_effective_amount(template.amount, template.amount_changes(), year_month)
    return TransactionView(
        key=OccurrenceKey(template.id, year_month),
        owner_id=template.user_id,
        occurred_at=occurrence_date(template.occurred_at, year_month),
        description=template.description,
        amount=amount,
        category=category_from_stored(template.category, polarity_of(amount)),
        is_recurring=True,
        anchor_at=template.occurred_at,
    )


def materialize_month(
    regular: Iterable[Transaction],
    templates: Iterable[Transaction],
    year_month: str,
) -> list[TransactionView]:
    """Merge a month's concrete transactions with its template occurrences."""

    parse_year_month(year_month)
    views = [view_from_transaction(tx) for tx in regular if not tx.is_recurring]
    for template in templates:
        if not template.is_recurring:
            continue
        view = materialize_template(template, year_month)
        if view is not None:
            views.append(view)
    views.sort(key=lambda v: v.occurred_at, reverse=True)
    return views


def compute_balance(views: Iterable[TransactionView]) -> float:
    return sum(v.amount for v in views)


def recurring_expenses(views: Iterable[TransactionView]) -> list[TransactionView]:
    """Recurring expense occurrences; recurring income is never a bill."""

    return [v for v in views if v.is_recurring_expense]


def apply_occurrence_edit(template: Transaction, month: str, update: TransactionUpdate) -> None:
    """Apply an edit made on one occurrence to its template, in place.

    The template's anchor date is never touched, as it defines the start month
    for every earlier occurrence.
    """

    start_month = template.start_month()
    if update.description is not None:
        template.description = update.description
    if update.amount is not None:
        if month == start_month:
            template.amount = update.amount
        elif month < start_month:
            raise ValidationError(
                f"Cannot change the amount for {month}, before the recurrence starts in {start_month}",
                field="amount",
            )
        else:
            history = [c for c in template.amount_changes() if c.effective_from != month]
            history.append(AmountChange(amount=update.amount, effective_from=month))
            history.sort(key=lambda c: c.effective_from)
            template.amount_history = [c.to_dict() for c in history]
    if update.category is not None:
        polarity = polarity_of(update.amount if update.amount is not None else template.amount)
        template.category = update.resolve_category(polarity).value


def exclude_month(template: Transaction, month: str) -> None:
    """Skip one occurrence; idempotent."""

    excluded = list(template.excluded_months or [])
    if month not in excluded:
        excluded.append(month)
        template.excluded_months = sorted(excluded)


class RecurringTransactionService:
    """Owner-scoped reads and mutations over transactions and templates."""

    def __init__(
        self,
        repository: TransactionRepository,
        auth: AuthSession,
        feed: ChangeFeed,
        *,
        max_amount: float = BaseConfig.DEFAULT_MAX_AMOUNT,
    ):
        self.repository = repository
        self.auth = auth
        self.feed = feed
        self.max_amount = max_amount

    def month_view(self, year_month: str) -> MonthView:
        """Materialize ``year_month`` for the current principal.

        Signed-out reads are skipped and yield an empty view.
        """

        parse_year_month(year_month)
        user_id = self.auth.current_user_id
        if user_id is None:
            return MonthView(owner_id=None, month=year_month)
        regular = self.repository.list_for_month(year_month, user_id=user_id)
        templates = self.repository.list_recurring(user_id=user_id)
        return MonthView(
            owner_id=user_id,
            month=year_month,
            transactions=tuple(materialize_month(regular, templates, year_month)),
        )

    def add_transaction(self, form: TransactionForm) -> Transaction:
        user_id = self.auth.require_user_id()
        category = form.validate(max_amount=self.max_amount)
        transaction = Transaction(
            user_id=user_id,
            occurred_at=form.occurred_at,
            description=form.description,
            amount=form.amount,
            category=category.value,
            is_recurring=form.is_recurring,
            recurring_start_month=format_year_month(form.occurred_at) if form.is_recurring else None,
        )
        created = self.repository.create(transaction, user_id=user_id)
        logger.info(
            "Transaction created",
            extra={"user_id": user_id, "transaction_id": created.id, "recurring": created.is_recurring},
        )
        self.feed.publish(user_id, TRANSACTIONS)
        return created

    def update_transaction(
        self, key: Union[OccurrenceKey, int, str], update: TransactionUpdate
    ) -> Transaction:
        """Edit a concrete transaction, or the template behind an occurrence."""

        user_id = self.auth.require_user_id()
        key = OccurrenceKey.parse(key)
        update.validate(max_amount=self.max_amount)

        if key.is_virtual:
            month = key.month
            if update.occurred_at is not None or update.is_recurring is not None:
                logger.debug(
                    "Ignoring date/recurrence change on an occurrence edit",
                    extra={"user_id": user_id, "key": str(key)},
                )
            updated = self.repository.mutate_template(
                key.transaction_id,
                lambda template: apply_occurrence_edit(template, month, update),
                user_id=user_id,
            )
            logger.info(
                "Recurring template edited",
                extra={"user_id": user_id, "template_id": key.transaction_id, "month": month},
            )
        else:
            transaction = self.repository.get_by_id(key.transaction_id, user_id=user_id)
            if transaction is None:
                raise NotFoundError(f"Transaction {key.transaction_id} not found")
            self._apply_concrete_edit(transaction, update)
            updated = self.repository.update(transaction, user_id=user_id)
            logger.info(
                "Transaction edited",
                extra={"user_id": user_id, "transaction_id": key.transaction_id},
            )
        self.feed.publish(user_id, TRANSACTIONS)
        return updated

    @staticmethod
    def _apply_concrete_edit(transaction: Transaction, update: TransactionUpdate) -> None:
        if transaction.is_recurring and update.is_recurring is False:
            raise ValidationError(
                "A recurring transaction cannot be made one-time; delete all occurrences instead",
                field="is_recurring",
            )
        if update.description is not None:
            transaction.description = update.description
        if update.amount is not None:
            transaction.amount = update.amount
        if update.occurred_at is not None:
            transaction.occurred_at = update.occurred_at
        polarity = polarity_of(transaction.amount)
        if update.category is not None:
            transaction.category = update.resolve_category(polarity).value
        else:
            transaction.category = category_from_stored(transaction.category, polarity).value
        if update.is_recurring and not transaction.is_recurring:
            transaction.is_recurring = True
            transaction.recurring_start_month = format_year_month(transaction.occurred_at)
            transaction.excluded_months = []
            transaction.amount_history = []

    def delete_transaction(self, key: Union[OccurrenceKey, int, str]) -> None:
        """Delete a concrete transaction, or skip a single occurrence.

        Deleting a template through its concrete id removes every occurrence,
        the same as ``delete_all_recurring``.
        """

        user_id = self.auth.require_user_id()
        key = OccurrenceKey.parse(key)

        if key.is_virtual:
            month = key.month
            self.repository.mutate_template(
                key.transaction_id,
                lambda template: exclude_month(template, month),
                user_id=user_id,
            )
            logger.info(
                "Occurrence excluded",
                extra={"user_id": user_id, "template_id": key.transaction_id, "month": month},
            )
            self.feed.publish(user_id, TRANSACTIONS)
            return

        transaction = self.repository.get_by_id(key.transaction_id, user_id=user_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {key.transaction_id} not found")
        if transaction.is_recurring:
            self.delete_all_recurring(key)
            return
        self.repository.delete(key.transaction_id, user_id=user_id)
        logger.info(
            "Transaction deleted",
            extra={"user_id": user_id, "transaction_id": key.transaction_id},
        )
        self.feed.publish(user_id, TRANSACTIONS)

    def delete_all_recurring(self, key: Union[OccurrenceKey, int, str]) -> int:
        """Delete a template, all of its occurrences and its linked tasks.

        Returns the number of linked tasks removed.
        """

        user_id = self.auth.require_user_id()
        template_id = OccurrenceKey.parse(key).transaction_id
        removed_tasks = self.repository.delete_recurring_cascade(template_id, user_id=user_id)
        logger.info(
            "Recurring template deleted",
            extra={"user_id": user_id, "template_id": template_id, "linked_tasks": removed_tasks},
        )
        self.feed.publish(user_id, TRANSACTIONS)
        if removed_tasks:
            self.feed.publish(user_id, TASKS)
        return removed_tasks
