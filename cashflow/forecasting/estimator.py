"""
Variable Expense Predictor

Produces a point estimate per variable expense for a target month from the
expense's monthly-total history.

Signals, all computed on inflation-adjusted monthly totals:
1. Seasonal: mean of past months sharing the target's calendar month
2. Recency: weighted mean of the last 3 months before the target
3. Trend: least-squares slope over up to 12 months before the target

DESIGN DECISION: The blend of seasonal and recency plus a trend clamp of
±10% bounds the error a single outlier month can cause. A plain 3-month
average reacts too slowly to step changes, a pure trend line overreacts
to spikes.

With fewer than 3 months of history no prediction is attempted and the
configured nominal amount is returned. That is not an error.
"""

from typing import Iterable, Optional

from cashflow.dates import months_between
from cashflow.forecasting.context import ForecastContext
from cashflow.models.forecast import EstimationResult, MonthlyTotal
from cashflow.models.ledger import RecurringExpense, Transaction
from cashflow.money import round_cents

RECENCY_WINDOW = 3
TREND_WINDOW = 12
MIN_TREND_DATA = 6
MIN_HISTORY_MONTHS = 3

W_SEASONAL = 0.4
W_RECENCY = 0.6

MAX_TREND_IMPACT = 0.10

# oldest -> newest
RECENCY_WEIGHTS = {
    3: (0.2, 0.3, 0.5),
    2: (0.4, 0.6),
    1: (1.0,),
}


def build_monthly_history(transactions: Iterable[Transaction]) -> list[MonthlyTotal]:
    """Sum absolute amounts per calendar month, oldest month first."""
    totals: dict[tuple[int, int], float] = {}
    for txn in transactions:
        key = (txn.date.year, txn.date.month)
        totals[key] = totals.get(key, 0.0) + abs(txn.amount)

    return [
        MonthlyTotal(year=year, month=month, total=total)
        for (year, month), total in sorted(totals.items())
    ]


def adjust_for_inflation(
    total: float,
    year: int,
    month: int,
    target_year: int,
    target_month: int,
    annual_rate: float,
) -> float:
    """
    Express a historical total in target-month dollars.

    `annual_rate` is a fraction (0.03 for 3%).
    """
    years = months_between(year, month, target_year, target_month) / 12
    return total * (1 + annual_rate) ** years


def _before_target(
    history: list[MonthlyTotal],
    target_year: int,
    target_month: int,
) -> list[MonthlyTotal]:
    return [m for m in history if (m.year, m.month) < (target_year, target_month)]


def seasonal_estimate(history: list[MonthlyTotal], target_month: int) -> Optional[float]:
    """Mean adjusted total of the same calendar month in past years."""
    values = [m.inflation_adjusted_total for m in history if m.month == target_month]
    if not values:
        return None
    return round_cents(sum(values) / len(values))


def recency_estimate(
    history: list[MonthlyTotal],
    target_year: int,
    target_month: int,
) -> Optional[float]:
    """Weighted mean of the last RECENCY_WINDOW months strictly before the target."""
    recent = _before_target(history, target_year, target_month)[-RECENCY_WINDOW:]
    if not recent:
        return None

    weights = RECENCY_WEIGHTS[len(recent)]
    weighted_sum = sum(m.inflation_adjusted_total * w for m, w in zip(recent, weights))
    return round_cents(weighted_sum / sum(weights))


def trend_slope(
    history: list[MonthlyTotal],
    target_year: int,
    target_month: int,
) -> float:
    """
    Ordinary least-squares slope of adjusted totals against a 0-based
    time index, over the last TREND_WINDOW months before the target.

    Needs MIN_TREND_DATA points, otherwise 0.
    """
    window = _before_target(history, target_year, target_month)[-TREND_WINDOW:]
    if len(window) < MIN_TREND_DATA:
        return 0.0

    n = len(window)
    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for x, point in enumerate(window):
        y = point.inflation_adjusted_total
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_x2 += x * x

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return 0.0

    return round_cents((n * sum_xy - sum_x * sum_y) / denominator)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def estimate_variable_expense(
    expense: RecurringExpense,
    transactions: Iterable[Transaction],
    target_year: int,
    target_month: int,
    annual_inflation_rate: float = 0.0,
) -> EstimationResult:
    """
    Estimate one variable expense for a target month.

    Args:
        expense: The recurring expense; its `amount` is the fallback
        transactions: The expense's full linked history
        target_year: Year being forecast
        target_month: Month being forecast (1-12)
        annual_inflation_rate: Fraction, not percent

    Returns:
        EstimationResult with the final estimate and the signals behind it
    """
    history = build_monthly_history(transactions)

    if len(history) < MIN_HISTORY_MONTHS:
        return EstimationResult(
            recurring_expense_id=expense.id,
            estimate=expense.amount,
            data_points_used=len(history),
        )

    history = [
        m.model_copy(update={
            "inflation_adjusted_total": adjust_for_inflation(
                m.total, m.year, m.month, target_year, target_month, annual_inflation_rate
            )
        })
        for m in history
    ]

    seasonal = seasonal_estimate(history, target_month)
    recency = recency_estimate(history, target_year, target_month)
    slope = trend_slope(history, target_year, target_month)

    if seasonal is not None and recency is not None:
        base = W_SEASONAL * seasonal + W_RECENCY * recency
    elif recency is not None:
        base = recency
    elif seasonal is not None:
        base = seasonal
    else:
        base = expense.amount

    # Measured from the last data point, even one after the target
    last = history[-1]
    months_ahead = months_between(last.year, last.month, target_year, target_month)

    adjusted = _clamp(
        base + slope * months_ahead,
        base * (1 - MAX_TREND_IMPACT),
        base * (1 + MAX_TREND_IMPACT),
    )

    return EstimationResult(
        recurring_expense_id=expense.id,
        estimate=max(0.0, round_cents(adjusted)),
        seasonal_estimate=seasonal,
        recency_estimate=recency,
        trend_slope=slope,
        data_points_used=len(history),
    )


def explain_estimate(
    context: ForecastContext,
    expense: RecurringExpense,
    year: int,
    month: int,
) -> EstimationResult:
    """Estimate one expense through the request context (memoised)."""
    key = (expense.id, year, month)
    if key not in context.estimates:
        account = context.account(expense.account_id)
        context.estimates[key] = estimate_variable_expense(
            expense,
            context.expense_transactions(expense.id),
            year,
            month,
            account.annual_inflation_fraction,
        )
    return context.estimates[key]


def get_variable_expense_estimates(
    context: ForecastContext,
    account_id: int,
    year: int,
    month: int,
) -> dict[int, float]:
    """Map of expense id -> estimate for every variable expense of an account."""
    return {
        expense.id: explain_estimate(context, expense, year, month).estimate
        for expense in context.variable_expenses(account_id)
    }
