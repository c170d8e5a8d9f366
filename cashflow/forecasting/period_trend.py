"""
Period Trend Predictor

Forecasts a variable expense over an explicit period that need not
align with calendar months (a credit card billing cycle, for example),
given what has been spent so far.

Three ingredients:
1. Baseline: the predictor's estimate for the period-start month
2. Daily shape: historical average spend per (month, day), used to
   split the baseline between elapsed and remaining days
3. Pace: current-period daily rate (weight 0.5) blended with the recent
   3-calendar-month daily rate (weight 0.3)

Remaining days are predicted from the blended pace; a day with shape
data nudges it 20% towards that day's relative weight.
"""

from datetime import date, timedelta
from typing import Optional

from cashflow.dates import iter_days, shift_date_by_months, utc_today
from cashflow.forecasting.context import ForecastContext
from cashflow.forecasting.estimator import explain_estimate
from cashflow.models.forecast import DailySpendForecast, PeriodTrendForecast, TrendLabel
from cashflow.models.ledger import RecurringExpense
from cashflow.validation.validator import ForecastRequestValidator

TREND_THRESHOLD_HIGH = 1.10
TREND_THRESHOLD_LOW = 0.90

W_CURRENT = 0.50
W_RECENT = 0.30
W_PATTERN = 0.20


def classify_trend(trend_ratio: float) -> TrendLabel:
    if trend_ratio >= TREND_THRESHOLD_HIGH:
        return TrendLabel.TRENDING_HIGHER
    if trend_ratio <= TREND_THRESHOLD_LOW:
        return TrendLabel.TRENDING_LOWER
    return TrendLabel.ON_TRACK


def daily_shape_weights(
    context: ForecastContext,
    expense_id: int,
    period_start: date,
    period_end: date,
) -> dict[date, float]:
    """
    Shape weight of every day in the period, 0 where no average exists.

    Empty when the expense has no daily averages at all, which callers
    treat as uniform weighting.
    """
    averages = context.daily_averages(expense_id)
    if not averages:
        return {}

    by_key = {avg.key: avg.daily_average for avg in averages}
    return {
        day: by_key.get((day.month, day.day), 0.0)
        for day in iter_days(period_start, period_end)
    }


def recent_daily_rate(
    context: ForecastContext,
    expense_id: int,
    as_of_date: date,
    months_back: int,
) -> float:
    """Average daily spend over [as_of - months_back months, as_of)."""
    window_start = shift_date_by_months(as_of_date, -months_back)
    transactions = [
        t for t in context.expense_transactions(expense_id)
        if window_start <= t.date < as_of_date
    ]
    if not transactions:
        return 0.0

    days = (as_of_date - window_start).days
    if days <= 0:
        return 0.0
    return sum(abs(t.amount) for t in transactions) / days


def _predict_remaining(
    base_rate: float,
    weights: dict[date, float],
    as_of_date: date,
    period_end: date,
) -> list[DailySpendForecast]:
    first = as_of_date + timedelta(days=1)
    remaining_days = list(iter_days(first, period_end))

    shaped = [weights.get(day, 0.0) for day in remaining_days]
    positive = [w for w in shaped if w > 0]
    avg_weight = sum(positive) / len(positive) if positive else 0.0

    forecasts = []
    for day, weight in zip(remaining_days, shaped):
        if weight > 0 and avg_weight > 0:
            pattern_rate = base_rate * (weight / avg_weight)
            predicted = base_rate * (1 - W_PATTERN) + pattern_rate * W_PATTERN
        else:
            predicted = base_rate
        forecasts.append(DailySpendForecast(date=day, predicted_spend=predicted))
    return forecasts


def calculate_period_trend_forecast(
    context: ForecastContext,
    expense: RecurringExpense,
    period_start: date,
    period_end: date,
    current_balance: float,
    as_of_date: Optional[date] = None,
) -> PeriodTrendForecast:
    """
    Forecast a variable expense over a billing period.

    Args:
        context: Request context
        expense: A variable recurring expense
        period_start: First day of the period
        period_end: Last day of the period
        current_balance: Spend so far this period (sign is ignored for the trend)
        as_of_date: "Today"; defaults to the current UTC date

    Raises:
        InvalidInputError: Bad period, as-of before start, or fixed expense
    """
    as_of_date = as_of_date or utc_today()
    ForecastRequestValidator.validate_period(period_start, period_end, as_of_date)
    ForecastRequestValidator.validate_variable_expense(expense)

    total_days = (period_end - period_start).days + 1
    days_elapsed = min((as_of_date - period_start).days + 1, total_days)
    days_remaining = total_days - days_elapsed

    estimate = explain_estimate(context, expense, period_start.year, period_start.month)
    baseline = estimate.estimate or expense.amount

    weights = daily_shape_weights(context, expense.id, period_start, period_end)
    weight_to_date = sum(w for d, w in weights.items() if d <= as_of_date)
    weight_remaining = sum(w for d, w in weights.items() if d > as_of_date)
    weight_total = weight_to_date + weight_remaining

    if weight_total > 0:
        fraction_elapsed = weight_to_date / weight_total
        fraction_remaining = weight_remaining / weight_total
    else:
        fraction_elapsed = days_elapsed / total_days
        fraction_remaining = days_remaining / total_days

    expected_to_date = baseline * fraction_elapsed
    expected_remaining = baseline * fraction_remaining

    actual_to_date = abs(current_balance)
    trend_ratio = actual_to_date / expected_to_date if expected_to_date > 0 else 1.0

    current_rate = actual_to_date / days_elapsed if days_elapsed > 0 else 0.0
    recent_rate = recent_daily_rate(
        context, expense.id, as_of_date, context.settings.recent_rate_months
    )

    weighted_rate = 0.0
    weight_sum = 0.0
    if current_rate > 0:
        weighted_rate += current_rate * W_CURRENT
        weight_sum += W_CURRENT
    if recent_rate > 0:
        weighted_rate += recent_rate * W_RECENT
        weight_sum += W_RECENT
    base_rate = weighted_rate / weight_sum if weight_sum > 0 else current_rate

    daily_forecasts = _predict_remaining(base_rate, weights, as_of_date, period_end)
    predicted_remaining = sum(f.predicted_spend for f in daily_forecasts)

    return PeriodTrendForecast(
        recurring_expense_id=expense.id,
        period_start=period_start,
        period_end=period_end,
        as_of_date=as_of_date,
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        total_days=total_days,
        baseline_full_period_spend=baseline,
        expected_to_date=expected_to_date,
        expected_remaining=expected_remaining,
        actual_to_date=actual_to_date,
        trend_ratio=trend_ratio,
        trend_label=classify_trend(trend_ratio),
        trend_percentage=(trend_ratio - 1) * 100,
        predicted_remaining=predicted_remaining,
        predicted_full_period_spend=actual_to_date + predicted_remaining,
        predicted_end_of_period_balance=current_balance + predicted_remaining,
        baseline_weight_to_date=weight_to_date,
        baseline_weight_remaining=weight_remaining,
        baseline_weight_full_period=weight_total,
        fraction_elapsed=fraction_elapsed,
        daily_forecasts=daily_forecasts,
    )
