"""SQLAlchemy models package."""

from bursar.models.currency_rate import CurrencyRate
from bursar.models.expense import Expense, ExpenseCategory
from bursar.models.payment import FeeType, Payment, PaymentMethod
from bursar.models.user import User

__all__ = [
    "CurrencyRate",
    "Expense",
    "ExpenseCategory",
    "FeeType",
    "Payment",
    "PaymentMethod",
    "User",
]
