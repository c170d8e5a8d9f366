"""
Budget Advisor

Tracks variable expenses that carry a budget goal against that goal.

A "period" is the expense's billing cycle when it has one, running from
the cycle day of the previous month up to (not including) the cycle day
of the month; otherwise it is the calendar month. Cycle days past the
end of a short month are clamped to its last day.

Status of the current period:
- over-budget: spend already above the goal
- warning:     projected spend at the current pace above 110% of the goal
- on-track:    otherwise
"""

from datetime import date, timedelta
from typing import Optional

from cashflow.dates import add_months, clamp_day_to_month, month_start, utc_today
from cashflow.forecasting.context import ForecastContext
from cashflow.models.analysis import (
    BudgetAnalysis,
    BudgetHistory,
    BudgetImpact,
    BudgetStatus,
    BudgetTrend,
    CurrentPeriodBudget,
    PeriodSpending,
)
from cashflow.models.ledger import RecurringExpense

WARNING_RATIO = 1.1
TREND_TOLERANCE = 0.1
HISTORY_PERIODS = 3


def billing_period(expense: RecurringExpense, year: int, month: int) -> tuple[date, date]:
    """[start, end) of the period labelled year/month."""
    if expense.billing_cycle_day:
        prev_year, prev_month = add_months(year, month, -1)
        cycle = expense.billing_cycle_day
        start = date(prev_year, prev_month, clamp_day_to_month(prev_year, prev_month, cycle))
        end = date(year, month, clamp_day_to_month(year, month, cycle))
        return start, end

    return month_start(year, month), month_start(*add_months(year, month, 1))


def _period_spend(context: ForecastContext, expense_id: int, start: date, end: date) -> float:
    transactions = context.expense_transactions_between(expense_id, start, end - timedelta(days=1))
    return sum(abs(t.amount) for t in transactions)


def _status(actual: float, projected: float, goal: float) -> BudgetStatus:
    if actual > goal:
        return BudgetStatus.OVER_BUDGET
    if projected > goal * WARNING_RATIO:
        return BudgetStatus.WARNING
    return BudgetStatus.ON_TRACK


def _trend(periods: list[PeriodSpending], goal: float) -> BudgetTrend:
    if len(periods) < HISTORY_PERIODS:
        return BudgetTrend.STABLE
    change = periods[-1].variance - periods[0].variance
    if change < -goal * TREND_TOLERANCE:
        return BudgetTrend.IMPROVING
    if change > goal * TREND_TOLERANCE:
        return BudgetTrend.WORSENING
    return BudgetTrend.STABLE


def budget_recommendations(
    current: CurrentPeriodBudget,
    trend: BudgetTrend,
    average_monthly: float,
) -> list[str]:
    goal = current.budget_goal
    days_left = current.days_in_period - current.days_elapsed
    target_daily = goal / current.days_in_period
    messages = []

    if current.status == BudgetStatus.OVER_BUDGET:
        messages.append(
            f"Already ${abs(current.variance):,.0f} over budget with {days_left} days remaining"
        )
        catch_up = (goal - abs(current.variance)) / days_left if days_left > 0 else 0.0
        if catch_up > 0:
            messages.append(
                f"Reduce daily spending to ${catch_up:,.2f} or less to get back on track"
            )
        else:
            messages.append(
                "Already significantly over budget - focus on minimizing additional "
                "spending this month"
            )
    elif current.status == BudgetStatus.WARNING:
        messages.append(
            f"Projected to exceed budget by ${abs(current.projected_variance):,.0f} "
            "if current pace continues"
        )
        messages.append(f"Target daily spending of ${target_daily:,.2f} to stay within budget")
    else:
        messages.append(
            f"On track! Keep daily spending below ${target_daily:,.2f} to maintain progress"
        )

    if trend == BudgetTrend.WORSENING:
        messages.append(
            "Spending has increased over the last 3 months - consider reviewing recent purchases"
        )
    elif trend == BudgetTrend.IMPROVING:
        messages.append("Great progress! Spending is decreasing month over month")

    if average_monthly > goal:
        messages.append(
            f"Meeting your budget goal would save ${(average_monthly - goal) * 12:,.0f} annually"
        )

    return messages


def analyze_expense_budget(
    context: ForecastContext,
    expense: RecurringExpense,
    year: int,
    month: int,
    as_of: date,
) -> BudgetAnalysis:
    goal = expense.budget_goal
    start, end = billing_period(expense, year, month)

    actual = _period_spend(context, expense.id, start, end)
    days_in_period = (end - start).days
    if start <= as_of < end:
        days_elapsed = (as_of - start).days + 1
    else:
        days_elapsed = days_in_period

    daily_rate = actual / days_elapsed if days_elapsed > 0 else 0.0
    projected = daily_rate * days_in_period
    variance = actual - goal

    current = CurrentPeriodBudget(
        year=year,
        month=month,
        actual_spending=actual,
        budget_goal=goal,
        variance=variance,
        variance_percent=variance / goal * 100 if goal > 0 else 0.0,
        days_elapsed=days_elapsed,
        days_in_period=days_in_period,
        projected_total=projected,
        projected_variance=projected - goal,
        status=_status(actual, projected, goal),
    )

    history = []
    for back in range(HISTORY_PERIODS, 0, -1):
        y, m = add_months(year, month, -back)
        amount = _period_spend(context, expense.id, *billing_period(expense, y, m))
        history.append(PeriodSpending(
            year=y,
            month=m,
            amount=amount,
            budget_goal=goal,
            variance=amount - goal,
        ))

    average = sum(p.amount for p in history) / len(history)
    trend = _trend(history, goal)

    return BudgetAnalysis(
        recurring_expense_id=expense.id,
        expense_name=expense.name,
        budget_goal=goal,
        billing_cycle_day=expense.billing_cycle_day,
        current_period=current,
        historical=BudgetHistory(
            last_three_periods=history,
            average_monthly=average,
            trend=trend,
        ),
        impact=BudgetImpact(
            annual_savings_if_goal_met=(average - goal) * 12,
            monthly_difference=average - goal,
            percentage_reduction=(average - goal) / average * 100 if average > 0 else 0.0,
        ),
        recommendations=budget_recommendations(current, trend, average),
    )


def analyze_budget(
    context: ForecastContext,
    account_id: int,
    year: int,
    month: int,
    as_of: Optional[date] = None,
) -> list[BudgetAnalysis]:
    """Budget analysis of every variable expense with a goal."""
    as_of = as_of or utc_today()
    return [
        analyze_expense_budget(context, expense, year, month, as_of)
        for expense in context.variable_expenses(account_id)
        if expense.budget_goal
    ]
