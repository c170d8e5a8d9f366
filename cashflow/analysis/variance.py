"""
Variance Analysis

Configured monthly amount versus actual linked spend, per variable
expense, for one calendar month.
"""

from cashflow.dates import month_end, month_start
from cashflow.forecasting.context import ForecastContext
from cashflow.models.analysis import CategoryVariance, VarianceAnalysis, VarianceTotals
from cashflow.money import round_cents


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def analyze_variance(
    context: ForecastContext,
    account_id: int,
    year: int,
    month: int,
) -> VarianceAnalysis:
    start, end = month_start(year, month), month_end(year, month)

    categories = []
    for expense in context.variable_expenses(account_id):
        actual = sum(
            abs(t.amount)
            for t in context.expense_transactions_between(expense.id, start, end)
        )
        variance = actual - expense.amount
        categories.append(CategoryVariance(
            recurring_expense_id=expense.id,
            expense_name=expense.name,
            estimated_monthly=round_cents(expense.amount),
            actual_monthly=round_cents(actual),
            variance=round_cents(variance),
            variance_percentage=round_cents(_percent(variance, expense.amount)),
        ))

    total_estimated = sum(c.estimated_monthly for c in categories)
    total_actual = sum(c.actual_monthly for c in categories)
    total_variance = total_actual - total_estimated

    return VarianceAnalysis(
        account_id=account_id,
        year=year,
        month=month,
        categories=categories,
        totals=VarianceTotals(
            total_estimated=round_cents(total_estimated),
            total_actual=round_cents(total_actual),
            total_variance=round_cents(total_variance),
            total_variance_percentage=round_cents(_percent(total_variance, total_estimated)),
        ),
    )
