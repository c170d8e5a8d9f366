"""
Data Models Package

This package contains all Pydantic models used by the forecasting core.
All data flowing through the system must conform to these schemas.
"""

from cashflow.models.ledger import (
    Account,
    DailySpendingAverage,
    IncomeRule,
    PayFrequency,
    RecurringExpense,
    Transaction,
)
from cashflow.models.forecast import (
    ESTIMATED_SUFFIX,
    CashEvent,
    DailySpendForecast,
    DayForecast,
    EstimationResult,
    EventOrigin,
    EventType,
    ForecastResult,
    ForecastStatus,
    MonthlyTotal,
    PeriodTrendForecast,
    TrendLabel,
)
from cashflow.models.analysis import (
    BudgetAnalysis,
    BudgetStatus,
    BudgetTrend,
    CategoryVariance,
    ContributionAnalysis,
    ExpenseTrend,
    MonthHealth,
    MonthSummary,
    RecommendationOverview,
    SixMonthForecast,
    Suggestion,
    SuggestionSeverity,
    SuggestionType,
    TrendAnalysis,
    TrendDirection,
    VarianceAnalysis,
)
from cashflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "DailySpendingAverage",
    "IncomeRule",
    "PayFrequency",
    "RecurringExpense",
    "Transaction",
    # Forecast models
    "ESTIMATED_SUFFIX",
    "CashEvent",
    "DailySpendForecast",
    "DayForecast",
    "EstimationResult",
    "EventOrigin",
    "EventType",
    "ForecastResult",
    "ForecastStatus",
    "MonthlyTotal",
    "PeriodTrendForecast",
    "TrendLabel",
    # Analysis models
    "BudgetAnalysis",
    "BudgetStatus",
    "BudgetTrend",
    "CategoryVariance",
    "ContributionAnalysis",
    "ExpenseTrend",
    "MonthHealth",
    "MonthSummary",
    "RecommendationOverview",
    "SixMonthForecast",
    "Suggestion",
    "SuggestionSeverity",
    "SuggestionType",
    "TrendAnalysis",
    "TrendDirection",
    "VarianceAnalysis",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
