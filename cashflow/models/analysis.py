"""
Analysis Models

Summaries built on top of monthly forecasts and transaction history:
six-month outlook, expense trends, recommendations, variance and
budget-goal analysis.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# SIX-MONTH FORECAST
# =============================================================================

class MonthHealth(str, Enum):
    """Month status by days below the safe minimum."""
    SAFE = "safe"         # 0 days
    WARNING = "warning"   # 1-7 days
    DANGER = "danger"     # more than 7 days

    @classmethod
    def from_days_below(cls, days_below_safe_min: int) -> "MonthHealth":
        if days_below_safe_min <= 0:
            return cls.SAFE
        if days_below_safe_min > 7:
            return cls.DANGER
        return cls.WARNING


class MonthSummary(BaseModel):
    year: int
    month: int = Field(..., ge=1, le=12)
    month_name: str
    total_income: float
    total_fixed_expenses: float
    total_variable_expenses: float
    total_expenses: float
    opening_balance: float
    closing_balance: float
    lowest_balance: float
    lowest_balance_day: int
    status: MonthHealth
    days_below_safe_min: int

    @property
    def net_change(self) -> float:
        return self.total_income - self.total_expenses


class SixMonthStatus(BaseModel):
    lowest_balance: float
    lowest_balance_month: str
    total_projected_income: float
    total_projected_expenses: float
    net_change: float


class SixMonthForecast(BaseModel):
    account_id: int
    safe_min_balance: float
    months: list[MonthSummary] = Field(default_factory=list)
    overall_status: SixMonthStatus


# =============================================================================
# TREND DETECTION
# =============================================================================

class TrendDirection(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class ExpenseTrend(BaseModel):
    recurring_expense_id: int
    expense_name: str
    current_month_actual: float
    three_month_average: float
    six_month_average: float
    trend: TrendDirection = TrendDirection.STABLE
    trend_percentage: float = Field(
        default=0.0,
        description="Positive = increasing, negative = decreasing"
    )
    alert: bool = Field(
        default=False,
        description="Current month is more than 15% above the six-month average"
    )


class TrendSummary(BaseModel):
    total_increasing_categories: int = 0
    total_decreasing_categories: int = 0
    total_alerts: int = 0
    average_trend_percentage: float = 0.0


class TrendAnalysis(BaseModel):
    account_id: int
    current_year: int
    current_month: int
    expenses: list[ExpenseTrend] = Field(default_factory=list)
    summary: TrendSummary = Field(default_factory=TrendSummary)


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

class SuggestionType(str, Enum):
    CONTRIBUTION = "contribution"
    EXPENSE = "expense"
    BALANCE = "balance"
    TREND = "trend"


class SuggestionSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return {"critical": 0, "warning": 1, "info": 2}[self.value]


class Suggestion(BaseModel):
    type: SuggestionType
    severity: SuggestionSeverity
    title: str
    description: str
    actionable: bool = False
    recommended_action: Optional[str] = None


class ContributionAnalysis(BaseModel):
    current_annual_contribution: float
    recommended_annual_contribution: Optional[float] = None
    adjustment_needed: bool = False
    adjustment_percentage: float = 0.0


class RecommendationOverview(BaseModel):
    account_id: int
    year: int
    month: int
    six_month_forecast: SixMonthForecast
    trend_analysis: TrendAnalysis
    suggestions: list[Suggestion] = Field(default_factory=list)
    contribution_analysis: ContributionAnalysis


# =============================================================================
# VARIANCE
# =============================================================================

class CategoryVariance(BaseModel):
    recurring_expense_id: int
    expense_name: str
    estimated_monthly: float
    actual_monthly: float
    variance: float = Field(..., description="Positive = over budget")
    variance_percentage: float


class VarianceTotals(BaseModel):
    total_estimated: float = 0.0
    total_actual: float = 0.0
    total_variance: float = 0.0
    total_variance_percentage: float = 0.0


class VarianceAnalysis(BaseModel):
    account_id: int
    year: int
    month: int
    categories: list[CategoryVariance] = Field(default_factory=list)
    totals: VarianceTotals = Field(default_factory=VarianceTotals)


# =============================================================================
# BUDGET GOALS
# =============================================================================

class BudgetStatus(str, Enum):
    ON_TRACK = "on-track"
    WARNING = "warning"
    OVER_BUDGET = "over-budget"


class BudgetTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class PeriodSpending(BaseModel):
    year: int
    month: int
    amount: float
    budget_goal: float
    variance: float


class CurrentPeriodBudget(BaseModel):
    year: int
    month: int
    actual_spending: float
    budget_goal: float
    variance: float
    variance_percent: float
    days_elapsed: int
    days_in_period: int
    projected_total: float
    projected_variance: float
    status: BudgetStatus


class BudgetHistory(BaseModel):
    last_three_periods: list[PeriodSpending] = Field(default_factory=list)
    average_monthly: float = 0.0
    trend: BudgetTrend = BudgetTrend.STABLE


class BudgetImpact(BaseModel):
    annual_savings_if_goal_met: float
    monthly_difference: float
    percentage_reduction: float


class BudgetAnalysis(BaseModel):
    recurring_expense_id: int
    expense_name: str
    budget_goal: float
    billing_cycle_day: Optional[int] = None
    current_period: CurrentPeriodBudget
    historical: BudgetHistory
    impact: BudgetImpact
    recommendations: list[str] = Field(default_factory=list)
