"""
Centralized category definitions for transactions and bill tasks.

Expense and income categories are separate enums; ``category_style`` covers
every member of both, so there is no "unknown category" colour fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..errors import ValidationError


class Polarity(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class ExpenseCategory(str, Enum):
    # Daily Essentials
    FOOD = "food"
    GROCERIES = "groceries"
    TRANSPORT = "transport"
    FUEL = "fuel"
    # Bills & Utilities
    UTILITIES = "utilities"
    RENT = "rent"
    EMI = "emi"
    INSURANCE = "insurance"
    SUBSCRIPTIONS = "subscriptions"
    PHONE = "phone"
    INTERNET = "internet"
    # Lifestyle
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    TRAVEL = "travel"
    DINING = "dining"
    # Health & Education
    HEALTH = "health"
    FITNESS = "fitness"
    EDUCATION = "education"
    # Investments
    SIP = "sip"
    MUTUAL_FUNDS = "mutual_funds"
    STOCKS = "stocks"
    FIXED_DEPOSIT = "fixed_deposit"
    PPF = "ppf"
    NPS = "nps"
    GOLD = "gold"
    CRYPTO = "crypto"
    REAL_ESTATE = "real_estate"
    # Personal
    PERSONAL = "personal"
    GIFTS = "gifts"
    CHARITY = "charity"
    FAMILY = "family"
    # Other
    TAXES = "taxes"
    FEES = "fees"
    MISC = "misc"


class IncomeCategory(str, Enum):
    # Employment
    SALARY = "salary"
    BONUS = "bonus"
    FREELANCE = "freelance"
    BUSINESS = "business"
    COMMISSION = "commission"
    # Investment Returns
    DIVIDENDS = "dividends"
    INTEREST = "interest"
    CAPITAL_GAINS = "capital_gains"
    RENTAL = "rental"
    ROYALTIES = "royalties"
    # Other
    REFUND = "refund"
    CASHBACK = "cashback"
    GIFT = "gift"
    LOTTERY = "lottery"
    SETTLEMENTS = "settlements"
    MISC = "misc"


Category = Union[ExpenseCategory, IncomeCategory]


@dataclass(frozen=True)
class CategoryStyle:
    """Display metadata for a category."""

    label: str
    color: str
    group: str


_EXPENSE_STYLES: dict[ExpenseCategory, CategoryStyle] = {
    ExpenseCategory.FOOD: CategoryStyle("Food & Dining", "#FF6B6B", "Daily Essentials"),
    ExpenseCategory.GROCERIES: CategoryStyle("Groceries", "#4ECDC4", "Daily Essentials"),
    ExpenseCategory.TRANSPORT: CategoryStyle("Transport", "#45B7D1", "Daily Essentials"),
    ExpenseCategory.FUEL: CategoryStyle("Fuel", "#F97316", "Daily Essentials"),
    ExpenseCategory.UTILITIES: CategoryStyle("Utilities", "#FFD93D", "Bills & Utilities"),
    ExpenseCategory.RENT: CategoryStyle("Rent & Housing", "#FFEAA7", "Bills & Utilities"),
    ExpenseCategory.EMI: CategoryStyle("EMI / Loan", "#EF4444", "Bills & Utilities"),
    ExpenseCategory.INSURANCE: CategoryStyle("Insurance", "#A78BFA", "Bills & Utilities"),
    ExpenseCategory.SUBSCRIPTIONS: CategoryStyle("Subscriptions", "#8B5CF6", "Bills & Utilities"),
    ExpenseCategory.PHONE: CategoryStyle("Phone & Mobile", "#06B6D4", "Bills & Utilities"),
    ExpenseCategory.INTERNET: CategoryStyle("Internet", "#3B82F6", "Bills & Utilities"),
    ExpenseCategory.ENTERTAINMENT: CategoryStyle("Entertainment", "#EC4899", "Lifestyle"),
    ExpenseCategory.SHOPPING: CategoryStyle("Shopping", "#F472B6", "Lifestyle"),
    ExpenseCategory.TRAVEL: CategoryStyle("Travel", "#14B8A6", "Lifestyle"),
    ExpenseCategory.DINING: CategoryStyle("Restaurants & Cafe", "#FB923C", "Lifestyle"),
    ExpenseCategory.HEALTH: CategoryStyle("Health & Medical", "#EF4444", "Health & Education"),
    ExpenseCategory.FITNESS: CategoryStyle("Fitness & Gym", "#10B981", "Health & Education"),
    ExpenseCategory.EDUCATION: CategoryStyle("Education", "#6366F1", "Health & Education"),
    ExpenseCategory.SIP: CategoryStyle("SIP", "#A855F7", "Investments"),
    ExpenseCategory.MUTUAL_FUNDS: CategoryStyle("Mutual Funds", "#06B6D4", "Investments"),
    ExpenseCategory.STOCKS: CategoryStyle("Stocks & Equity", "#3B82F6", "Investments"),
    ExpenseCategory.FIXED_DEPOSIT: CategoryStyle("Fixed Deposit", "#14B8A6", "Investments"),
    ExpenseCategory.PPF: CategoryStyle("PPF", "#8B5CF6", "Investments"),
    ExpenseCategory.NPS: CategoryStyle("NPS", "#0EA5E9", "Investments"),
    ExpenseCategory.GOLD: CategoryStyle("Gold", "#FBBF24", "Investments"),
    ExpenseCategory.CRYPTO: CategoryStyle("Crypto", "#F97316", "Investments"),
    ExpenseCategory.REAL_ESTATE: CategoryStyle("Real Estate", "#22C55E", "Investments"),
    ExpenseCategory.PERSONAL: CategoryStyle("Personal Care", "#D946EF", "Personal"),
    ExpenseCategory.GIFTS: CategoryStyle("Gifts", "#F43F5E", "Personal"),
    ExpenseCategory.CHARITY: CategoryStyle("Charity & Donations", "#FB7185", "Personal"),
    ExpenseCategory.FAMILY: CategoryStyle("Family & Kids", "#E879F9", "Personal"),
    ExpenseCategory.TAXES: CategoryStyle("Taxes", "#78716C", "Other"),
    ExpenseCategory.FEES: CategoryStyle("Bank Fees & Charges", "#A1A1AA", "Other"),
    ExpenseCategory.MISC: CategoryStyle("Miscellaneous", "#6B7280", "Other"),
}

_INCOME_STYLES: dict[IncomeCategory, CategoryStyle] = {
    IncomeCategory.SALARY: CategoryStyle("Salary", "#22C55E", "Employment"),
    IncomeCategory.BONUS: CategoryStyle("Bonus", "#84CC16", "Employment"),
    IncomeCategory.FREELANCE: CategoryStyle("Freelance", "#10B981", "Employment"),
    IncomeCategory.BUSINESS: CategoryStyle("Business Income", "#14B8A6", "Employment"),
    IncomeCategory.COMMISSION: CategoryStyle("Commission", "#06B6D4", "Employment"),
    IncomeCategory.DIVIDENDS: CategoryStyle("Dividends", "#0EA5E9", "Investment Returns"),
    IncomeCategory.INTEREST: CategoryStyle("Interest", "#3B82F6", "Investment Returns"),
    IncomeCategory.CAPITAL_GAINS: CategoryStyle("Capital Gains", "#6366F1", "Investment Returns"),
    IncomeCategory.RENTAL: CategoryStyle("Rental Income", "#8B5CF6", "Investment Returns"),
    IncomeCategory.ROYALTIES: CategoryStyle("Royalties", "#A855F7", "Investment Returns"),
    IncomeCategory.REFUND: CategoryStyle("Refund", "#F59E0B", "Other"),
    IncomeCategory.CASHBACK: CategoryStyle("Cashback & Rewards", "#FBBF24", "Other"),
    IncomeCategory.GIFT: CategoryStyle("Gift Received", "#F472B6", "Other"),
    IncomeCategory.LOTTERY: CategoryStyle("Lottery & Winnings", "#EC4899", "Other"),
    IncomeCategory.SETTLEMENTS: CategoryStyle("Settlements from Friends", "#22D3EE", "Other"),
    IncomeCategory.MISC: CategoryStyle("Miscellaneous", "#6B7280", "Other"),
}


def polarity_of(amount: float) -> Polarity:
    """Positive amounts are income, everything else is an expense."""

    return Polarity.INCOME if amount > 0 else Polarity.EXPENSE


def default_category(polarity: Polarity) -> Category:
    if polarity is Polarity.INCOME:
        return IncomeCategory.MISC
    return ExpenseCategory.MISC


def categories_for(polarity: Polarity) -> list[Category]:
    """All categories of a polarity, in display order."""

    if polarity is Polarity.INCOME:
        return list(IncomeCategory)
    return list(ExpenseCategory)


def category_style(category: Category) -> CategoryStyle:
    if isinstance(category, IncomeCategory):
        return _INCOME_STYLES[category]
    return _EXPENSE_STYLES[category]


def coerce_category(raw: str | Category | None, polarity: Polarity) -> Category:
    """Validate a raw category value against a polarity.

    ``None`` and empty strings resolve to the polarity's ``misc``.
    """

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default_category(polarity)
    enum_cls = IncomeCategory if polarity is Polarity.INCOME else ExpenseCategory
    value = raw.value if isinstance(raw, Enum) else raw.strip().lower()
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown {polarity.value} category: {value!r}", field="category"
        ) from exc


def category_from_stored(raw: str | None, polarity: Polarity) -> Category:
    """Resolve a persisted category string, tolerating legacy values."""

    try:
        return coerce_category(raw, polarity)
    except ValidationError:
        return default_category(polarity)


__all__ = [
    "Category",
    "CategoryStyle",
    "ExpenseCategory",
    "IncomeCategory",
    "Polarity",
    "categories_for",
    "category_from_stored",
    "category_style",
    "coerce_category",
    "default_category",
    "polarity_of",
]
