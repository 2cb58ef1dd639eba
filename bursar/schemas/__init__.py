from bursar.schemas.base import (
    ERROR,
    FAIL,
    SUCCESS,
    BaseRequest,
    BaseResponse,
    Money,
    Percent,
    jsend_error,
    jsend_fail,
    jsend_success,
    to_payload,
)
from bursar.schemas.currency import CurrencyRateResponse, RateHistoryResponse, RateUpdateRequest
from bursar.schemas.expense import (
    ExpenseCreate,
    ExpenseListResponse,
    ExpensePageResponse,
    ExpensePagination,
    ExpenseResponse,
    ExpenseStatistics,
    ExpenseUpdate,
)
from bursar.schemas.payment import (
    PaymentCreate,
    PaymentListResponse,
    PaymentPagination,
    PaymentResponse,
    PaymentSearchResponse,
    PaymentStatistics,
    PaymentUpdate,
)
from bursar.schemas.reporting import (
    ChartsAnalytics,
    DailyReport,
    DashboardReport,
    FinancialSummary,
    MonthlyReport,
    RangeReport,
    YearlyReport,
)

__all__ = [
    "ERROR",
    "FAIL",
    "SUCCESS",
    "BaseRequest",
    "BaseResponse",
    "ChartsAnalytics",
    "CurrencyRateResponse",
    "DailyReport",
    "DashboardReport",
    "ExpenseCreate",
    "ExpenseListResponse",
    "ExpensePageResponse",
    "ExpensePagination",
    "ExpenseResponse",
    "ExpenseStatistics",
    "ExpenseUpdate",
    "FinancialSummary",
    "Money",
    "MonthlyReport",
    "PaymentCreate",
    "PaymentListResponse",
    "PaymentPagination",
    "PaymentResponse",
    "PaymentSearchResponse",
    "PaymentStatistics",
    "PaymentUpdate",
    "Percent",
    "RangeReport",
    "RateHistoryResponse",
    "RateUpdateRequest",
    "YearlyReport",
    "jsend_error",
    "jsend_fail",
    "jsend_success",
    "to_payload",
]
