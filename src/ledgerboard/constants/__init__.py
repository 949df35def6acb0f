"""Static lookup data."""

from .categories import (
    Category,
    CategoryStyle,
    ExpenseCategory,
    IncomeCategory,
    Polarity,
    category_style,
    coerce_category,
    default_category,
    polarity_of,
)

__all__ = [
    "Category",
    "CategoryStyle",
    "ExpenseCategory",
    "IncomeCategory",
    "Polarity",
    "category_style",
    "coerce_category",
    "default_category",
    "polarity_of",
]
