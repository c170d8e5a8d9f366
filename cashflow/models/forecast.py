"""
Forecast Models

Derived, never persisted. These are the plain result structures the
forecasting core produces.

DESIGN DECISION: Cash events are immutable. Reconciliation produces a
new event from a (forecast event, transaction) pair instead of editing
the forecast in place, so a forecast can be reconciled twice without
aliasing surprises.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from cashflow.models.ledger import Transaction

ESTIMATED_SUFFIX = " (estimated)"


# =============================================================================
# CASH EVENTS
# =============================================================================

class EventType(str, Enum):
    """What kind of cash movement an event is."""
    INCOME = "income"
    FIXED_EXPENSE = "fixed_expense"
    VARIABLE_EXPENSE = "variable_expense"


class EventOrigin(str, Enum):
    """
    Where an event's amount came from.

    Aggregators rely on this to split fixed from variable totals:
    only ESTIMATED amounts count as variable.
    """
    CONFIGURED = "configured"   # nominal amount from a rule
    ESTIMATED = "estimated"     # predicted by the variable expense model
    ACTUAL = "actual"           # taken from a real transaction


class CashEvent(BaseModel):
    """A single dated, signed amount contributing to a day's balance change."""
    model_config = ConfigDict(frozen=True)

    event_date: date
    description: str
    amount: float = Field(..., description="Positive = deposit, negative = withdrawal")
    type: EventType
    origin: EventOrigin = EventOrigin.CONFIGURED
    actualized: bool = False
    transaction_id: Optional[int] = None
    income_rule_id: Optional[int] = None
    recurring_expense_id: Optional[int] = None
    forecasted_amount: Optional[float] = Field(
        default=None,
        description="Amount forecast before actualization (for variance display)"
    )

    @property
    def rule_key(self) -> Optional[tuple[str, int]]:
        """('income', id) or ('expense', id) for rule-generated events."""
        if self.income_rule_id is not None:
            return ("income", self.income_rule_id)
        if self.recurring_expense_id is not None:
            return ("expense", self.recurring_expense_id)
        return None

    @property
    def is_estimated(self) -> bool:
        return self.origin == EventOrigin.ESTIMATED

    @property
    def variance(self) -> Optional[float]:
        """Actual minus forecast, for actualized events."""
        if self.forecasted_amount is None:
            return None
        return self.amount - self.forecasted_amount

    def actualize(self, transaction: Transaction) -> "CashEvent":
        """Return a copy of this forecast event overwritten by a real transaction."""
        return self.model_copy(update={
            "actualized": True,
            "forecasted_amount": self.amount,
            "event_date": transaction.date,
            "description": transaction.description,
            "amount": transaction.amount,
            "transaction_id": transaction.id,
            "origin": EventOrigin.ACTUAL,
        })

    @classmethod
    def from_transaction(cls, transaction: Transaction, event_type: EventType) -> "CashEvent":
        """Build a standalone actual event for an unmatched transaction."""
        return cls(
            event_date=transaction.date,
            description=transaction.description,
            amount=transaction.amount,
            type=event_type,
            origin=EventOrigin.ACTUAL,
            actualized=True,
            transaction_id=transaction.id,
            income_rule_id=transaction.income_rule_id,
            recurring_expense_id=transaction.recurring_expense_id,
        )


# =============================================================================
# BALANCE FORECAST
# =============================================================================

class DayForecast(BaseModel):
    """One day of a month's balance walk."""

    date: date
    events: list[CashEvent] = Field(default_factory=list)
    opening_balance: float
    net_change: float
    closing_balance: float
    below_safe_min: bool = False


class ForecastStatus(BaseModel):
    """Worst-case summary of a month."""

    min_balance: float
    days_below_safe_min: int = Field(default=0, ge=0)


class ForecastResult(BaseModel):
    """
    One month's ordered day-by-day balance trajectory.

    `starting_balance` is the opening balance of the first visible day.
    In the account's start month, days before the start date are omitted.
    """

    account_id: int
    year: int
    month: int = Field(..., ge=1, le=12)
    starting_balance: float
    is_start_month: bool = False
    safe_min_balance: float
    days: list[DayForecast] = Field(default_factory=list)
    overall_status: ForecastStatus

    @property
    def closing_balance(self) -> float:
        if not self.days:
            return self.starting_balance
        return self.days[-1].closing_balance

    @property
    def events(self) -> list[CashEvent]:
        return [event for day in self.days for event in day.events]

    def day(self, day_of_month: int) -> Optional[DayForecast]:
        for entry in self.days:
            if entry.date.day == day_of_month:
                return entry
        return None


# =============================================================================
# VARIABLE EXPENSE ESTIMATION
# =============================================================================

class MonthlyTotal(BaseModel):
    """Total absolute spend of one expense in one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    total: float
    inflation_adjusted_total: Optional[float] = None


class EstimationResult(BaseModel):
    """Point estimate for one variable expense plus the signals behind it."""

    recurring_expense_id: int
    estimate: float
    seasonal_estimate: Optional[float] = None
    recency_estimate: Optional[float] = None
    trend_slope: float = 0.0
    data_points_used: int = 0

    @property
    def used_history(self) -> bool:
        return self.seasonal_estimate is not None or self.recency_estimate is not None


# =============================================================================
# PERIOD TREND
# =============================================================================

class TrendLabel(str, Enum):
    TRENDING_HIGHER = "Trending Higher"
    TRENDING_LOWER = "Trending Lower"
    ON_TRACK = "On Track"


class DailySpendForecast(BaseModel):
    date: date
    predicted_spend: float


class PeriodTrendForecast(BaseModel):
    """In-progress forecast of a variable expense over an explicit period."""

    recurring_expense_id: int

    # Period definition
    period_start: date
    period_end: date
    as_of_date: date
    days_elapsed: int
    days_remaining: int
    total_days: int

    # Baseline model expectations
    baseline_full_period_spend: float
    expected_to_date: float
    expected_remaining: float

    # Actual current state
    actual_to_date: float

    # Trend analysis
    trend_ratio: float
    trend_label: TrendLabel
    trend_percentage: float

    # Predictions
    predicted_remaining: float
    predicted_full_period_spend: float
    predicted_end_of_period_balance: float

    # Breakdown info
    baseline_weight_to_date: float
    baseline_weight_remaining: float
    baseline_weight_full_period: float
    fraction_elapsed: float

    daily_forecasts: list[DailySpendForecast] = Field(default_factory=list)
