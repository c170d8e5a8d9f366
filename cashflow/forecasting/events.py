"""
Cash Event Generator

Expands income rules and recurring expenses into dated cash events for
one calendar month. Variable expenses take their predicted amount.

Scheduling by frequency:
- weekly:       every date whose weekday matches the stored day (0=Sunday)
- bi_weekly:    every second matching weekday, counted from the 1st of the
                month (0-indexed, even indexes kept)
- semi_monthly: day d and day d+14, both clamped to the month length; the
                second only when it lands after the first
- monthly:      day d clamped to the month length

KNOWN LIMITATION: bi_weekly restarts its count every month instead of
following a true 14-day cadence from an anchor date, so it drifts at
month boundaries. The behaviour is kept as is until rules carry an
anchor date.
"""

from datetime import date
from typing import Mapping, Optional, Sequence

from cashflow.dates import clamp_day_to_month, day_of_week, days_in_month, iter_month_days
from cashflow.models.forecast import (
    ESTIMATED_SUFFIX,
    CashEvent,
    EventOrigin,
    EventType,
)
from cashflow.models.ledger import IncomeRule, PayFrequency, RecurringExpense
from cashflow.money import round_cents


def occurrence_dates(expense: RecurringExpense, year: int, month: int) -> list[date]:
    """Scheduled dates of an expense in one month, before active-range filtering."""
    frequency = expense.frequency

    if frequency == PayFrequency.WEEKLY:
        return [d for d in iter_month_days(year, month) if day_of_week(d) == expense.day_of_month]

    if frequency == PayFrequency.BI_WEEKLY:
        matching = [d for d in iter_month_days(year, month) if day_of_week(d) == expense.day_of_month]
        return matching[::2]

    first = clamp_day_to_month(year, month, expense.day_of_month)
    dates = [date(year, month, first)]

    if frequency == PayFrequency.SEMI_MONTHLY:
        second = clamp_day_to_month(year, month, expense.day_of_month + 14)
        if second > first:
            dates.append(date(year, month, second))

    return dates


def income_events(rule: IncomeRule, year: int, month: int) -> list[CashEvent]:
    """One deposit per pay day that exists in the month; pay days are not clamped."""
    last_day = days_in_month(year, month)
    return [
        CashEvent(
            event_date=date(year, month, day),
            description=f"{rule.name} contribution",
            amount=round_cents(rule.contribution_amount),
            type=EventType.INCOME,
            income_rule_id=rule.id,
        )
        for day in rule.pay_days
        if day <= last_day
    ]


def expense_events(
    expense: RecurringExpense,
    year: int,
    month: int,
    estimate: Optional[float] = None,
) -> list[CashEvent]:
    """
    Withdrawal events of one recurring expense.

    A variable expense uses `estimate` when it is non-zero, else its
    nominal amount.
    """
    amount = expense.amount
    if expense.is_variable and estimate:
        amount = estimate

    if expense.is_variable:
        description = f"{expense.name}{ESTIMATED_SUFFIX}"
        event_type = EventType.VARIABLE_EXPENSE
        origin = EventOrigin.ESTIMATED
    else:
        description = expense.name
        event_type = EventType.FIXED_EXPENSE
        origin = EventOrigin.CONFIGURED

    return [
        CashEvent(
            event_date=day,
            description=description,
            amount=-abs(amount),
            type=event_type,
            origin=origin,
            recurring_expense_id=expense.id,
        )
        for day in occurrence_dates(expense, year, month)
        if expense.is_active_on(day)
    ]


def generate_cash_events(
    income_rules: Sequence[IncomeRule],
    expenses: Sequence[RecurringExpense],
    estimates: Mapping[int, float],
    year: int,
    month: int,
) -> list[CashEvent]:
    """
    Forecast events for a month, income first then expenses, in rule order.

    Args:
        income_rules: The account's income rules
        expenses: The account's recurring expenses
        estimates: expense id -> predicted amount for variable expenses
        year: Target year
        month: Target month (1-12)
    """
    events: list[CashEvent] = []
    for rule in income_rules:
        events.extend(income_events(rule, year, month))
    for expense in expenses:
        events.extend(expense_events(expense, year, month, estimates.get(expense.id)))
    return events
