"""API routers package."""

from bursar.routers import analytics, currency, expenses, payments, reports

__all__ = [
    "analytics",
    "currency",
    "expenses",
    "payments",
    "reports",
]
