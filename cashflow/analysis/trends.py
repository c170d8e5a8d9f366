"""
Trend Detector

Compares each variable expense's recent spend with its longer-run
average:
- current month actual
- 3-month average: the current month and the two before it, divided by 3
- 6-month average: six months back through the current month, divided by 6

Missing months count as zero spend.
"""

from cashflow.dates import add_months, month_end, month_start
from cashflow.forecasting.context import ForecastContext
from cashflow.models.analysis import ExpenseTrend, TrendAnalysis, TrendDirection, TrendSummary
from cashflow.models.ledger import RecurringExpense
from cashflow.money import round_cents

TREND_THRESHOLD_PERCENT = 5.0
ALERT_RATIO = 1.15


def _total(transactions) -> float:
    return sum(abs(t.amount) for t in transactions)


def expense_trend(
    context: ForecastContext,
    expense: RecurringExpense,
    year: int,
    month: int,
) -> ExpenseTrend:
    window_end = month_end(year, month)
    six_back = month_start(*add_months(year, month, -6))
    three_back = month_start(*add_months(year, month, -2))

    history = context.expense_transactions_between(expense.id, six_back, window_end)

    current = _total(t for t in history if t.date >= month_start(year, month))
    three_month_average = _total(t for t in history if t.date >= three_back) / 3
    six_month_average = _total(history) / 6

    trend = TrendDirection.STABLE
    trend_percentage = 0.0
    if six_month_average > 0:
        trend_percentage = (three_month_average - six_month_average) / six_month_average * 100
        if trend_percentage > TREND_THRESHOLD_PERCENT:
            trend = TrendDirection.INCREASING
        elif trend_percentage < -TREND_THRESHOLD_PERCENT:
            trend = TrendDirection.DECREASING

    return ExpenseTrend(
        recurring_expense_id=expense.id,
        expense_name=expense.name,
        current_month_actual=round_cents(current),
        three_month_average=round_cents(three_month_average),
        six_month_average=round_cents(six_month_average),
        trend=trend,
        trend_percentage=round_cents(trend_percentage),
        alert=six_month_average > 0 and current > six_month_average * ALERT_RATIO,
    )


def analyze_trends(
    context: ForecastContext,
    account_id: int,
    year: int,
    month: int,
) -> TrendAnalysis:
    """Trend of every variable expense of an account as of year/month."""
    trends = [
        expense_trend(context, expense, year, month)
        for expense in context.variable_expenses(account_id)
    ]

    average = (
        sum(t.trend_percentage for t in trends) / len(trends) if trends else 0.0
    )

    return TrendAnalysis(
        account_id=account_id,
        current_year=year,
        current_month=month,
        expenses=trends,
        summary=TrendSummary(
            total_increasing_categories=sum(t.trend == TrendDirection.INCREASING for t in trends),
            total_decreasing_categories=sum(t.trend == TrendDirection.DECREASING for t in trends),
            total_alerts=sum(t.alert for t in trends),
            average_trend_percentage=round_cents(average),
        ),
    )
