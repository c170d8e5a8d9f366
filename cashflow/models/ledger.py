"""
Ledger Models for Cashflow Forecast

These are the records the forecasting core reads from storage:
accounts, the rules that generate cash events, and the transactions
that actualize them.

DESIGN DECISION: Balances are never stored. An account only holds its
starting balance and start date; everything else is derived by the
balance simulator.

All dates are normalised to UTC calendar dates on the way in.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from cashflow.dates import to_utc_date


# =============================================================================
# ENUMS
# =============================================================================

class PayFrequency(str, Enum):
    """
    How often an income rule pays or a recurring expense occurs.

    For WEEKLY and BI_WEEKLY expenses the stored day is a day of week
    (0=Sunday .. 6=Saturday), otherwise a day of month.
    """
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    SEMI_MONTHLY = "semi_monthly"
    MONTHLY = "monthly"

    @property
    def uses_day_of_week(self) -> bool:
        return self in (PayFrequency.WEEKLY, PayFrequency.BI_WEEKLY)

    @property
    def periods_per_year(self) -> int:
        return {
            PayFrequency.WEEKLY: 52,
            PayFrequency.BI_WEEKLY: 26,
            PayFrequency.SEMI_MONTHLY: 24,
            PayFrequency.MONTHLY: 12,
        }[self]


# =============================================================================
# ACCOUNT
# =============================================================================

class Account(BaseModel):
    """
    A cash account being forecast.

    `inflation_rate` is an annual percentage (3.0 means 3%).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    name: str = Field(default="", max_length=200)
    starting_balance: float = Field(
        ...,
        description="Balance on the start date, before any events that day"
    )
    start_date: date = Field(
        ...,
        description="First day the account is tracked (UTC)"
    )
    safe_min_balance: float = Field(
        default=0.0,
        description="Balance below which a day is flagged as at risk"
    )
    inflation_rate: float = Field(
        default=0.0,
        ge=-100.0,
        description="Annual inflation rate in percent"
    )
    default_pay_frequency: PayFrequency = PayFrequency.SEMI_MONTHLY

    @field_validator('start_date', mode='before')
    @classmethod
    def normalise_start_date(cls, v):
        return to_utc_date(v)

    @property
    def annual_inflation_fraction(self) -> float:
        return self.inflation_rate / 100


# =============================================================================
# RULES
# =============================================================================

class IncomeRule(BaseModel):
    """
    A paycheck contribution into the account.

    Only `contribution_amount` reaches the forecast; `annual_salary`
    is informational.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    account_id: int
    name: str = Field(..., min_length=1, max_length=200)
    annual_salary: float = Field(default=0.0, ge=0)
    contribution_amount: float = Field(..., description="Amount deposited per pay day")
    pay_frequency: PayFrequency = PayFrequency.SEMI_MONTHLY
    pay_days: list[int] = Field(
        default_factory=list,
        description="Days of month the contribution lands on"
    )

    @field_validator('pay_days')
    @classmethod
    def validate_pay_days(cls, v: list[int]) -> list[int]:
        for day in v:
            if not 1 <= day <= 31:
                raise ValueError(f"Pay day must be between 1 and 31, got {day}")
        return v

    @property
    def annual_contribution(self) -> float:
        return self.contribution_amount * self.pay_frequency.periods_per_year


class RecurringExpense(BaseModel):
    """
    A bill or spending category that recurs.

    Variable expenses have their amount predicted from history;
    `amount` is then only the fallback.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    account_id: int
    name: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., description="Nominal amount per occurrence")
    day_of_month: int = Field(
        ...,
        ge=0,
        le=31,
        description="Day of month, or day of week (0=Sunday .. 6=Saturday) for weekly/bi-weekly"
    )
    category: str = Field(default="other")
    frequency: PayFrequency = PayFrequency.MONTHLY
    is_variable: bool = False
    active_from: Optional[date] = None
    active_to: Optional[date] = None
    budget_goal: Optional[float] = Field(default=None, ge=0)
    billing_cycle_day: Optional[int] = Field(default=None, ge=1, le=31)

    @field_validator('active_from', 'active_to', mode='before')
    @classmethod
    def normalise_bounds(cls, v):
        if v is None or v == "":
            return None
        return to_utc_date(v)

    @model_validator(mode='after')
    def validate_day(self) -> 'RecurringExpense':
        if self.frequency.uses_day_of_week:
            if self.day_of_month > 6:
                raise ValueError("Weekly expenses need a day of week between 0 and 6")
        elif self.day_of_month < 1:
            raise ValueError("Day of month must be between 1 and 31")

        if self.active_from and self.active_to and self.active_to < self.active_from:
            raise ValueError("Active-to date cannot be before active-from date")
        return self

    def is_active_on(self, day: date) -> bool:
        if self.active_from and day < self.active_from:
            return False
        if self.active_to and day > self.active_to:
            return False
        return True


# =============================================================================
# HISTORY
# =============================================================================

class Transaction(BaseModel):
    """
    A historical cash movement.

    Positive amounts are deposits, negative amounts are withdrawals.
    A transaction actualizes at most one rule; with neither link set it
    is a one-off.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int
    account_id: int
    date: date
    amount: float
    description: str = ""
    category: Optional[str] = None
    income_rule_id: Optional[int] = None
    recurring_expense_id: Optional[int] = None

    @field_validator('date', mode='before')
    @classmethod
    def normalise_date(cls, v):
        return to_utc_date(v)

    @model_validator(mode='after')
    def validate_single_link(self) -> 'Transaction':
        if self.income_rule_id is not None and self.recurring_expense_id is not None:
            raise ValueError(
                "Transaction cannot be linked to both an income rule and a recurring expense"
            )
        return self

    @property
    def is_one_off(self) -> bool:
        return self.income_rule_id is None and self.recurring_expense_id is None


class DailySpendingAverage(BaseModel):
    """
    Historical average spend of a variable expense on one calendar day.

    Keyed by (month, day); this is the "shape" used to weight days
    inside a billing period.
    """

    recurring_expense_id: int
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)
    daily_average: float = Field(..., ge=0)

    @property
    def key(self) -> tuple[int, int]:
        return self.month, self.day
