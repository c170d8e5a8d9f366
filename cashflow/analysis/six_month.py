"""
Six-Month Forecast

Folds consecutive month simulations into per-month summaries and an
overall outlook. The months come from a single forward pass of the
balance simulator, so each month opens with the previous close.
"""

from cashflow.dates import add_months, friendly_month
from cashflow.forecasting.simulator import BalanceSimulator
from cashflow.models.analysis import (
    MonthHealth,
    MonthSummary,
    SixMonthForecast,
    SixMonthStatus,
)
from cashflow.models.forecast import ForecastResult
from cashflow.models.ledger import Account
from cashflow.money import round_cents

FORECAST_MONTHS = 6


def summarize_month(forecast: ForecastResult) -> MonthSummary:
    """
    Totals and worst case of one month.

    Deposits count as income. Withdrawals count as variable only while
    they are still estimates; once actualized they count as fixed.
    """
    total_income = 0.0
    total_fixed = 0.0
    total_variable = 0.0

    for event in forecast.events:
        if event.amount > 0:
            total_income += event.amount
        elif event.is_estimated:
            total_variable += abs(event.amount)
        else:
            total_fixed += abs(event.amount)

    lowest = forecast.overall_status.min_balance
    lowest_day = next(
        (d.date.day for d in forecast.days if d.closing_balance == lowest),
        1,
    )
    days_below = forecast.overall_status.days_below_safe_min

    return MonthSummary(
        year=forecast.year,
        month=forecast.month,
        month_name=friendly_month(forecast.year, forecast.month),
        total_income=round_cents(total_income),
        total_fixed_expenses=round_cents(total_fixed),
        total_variable_expenses=round_cents(total_variable),
        total_expenses=round_cents(total_fixed + total_variable),
        opening_balance=round_cents(forecast.starting_balance),
        closing_balance=round_cents(forecast.closing_balance),
        lowest_balance=round_cents(lowest),
        lowest_balance_day=lowest_day,
        status=MonthHealth.from_days_below(days_below),
        days_below_safe_min=days_below,
    )


def generate_six_month_forecast(
    simulator: BalanceSimulator,
    account: Account,
    start_year: int,
    start_month: int,
    months: int = FORECAST_MONTHS,
) -> SixMonthForecast:
    """Summaries for `months` consecutive months starting at start_year/start_month."""
    summaries = []
    for offset in range(months):
        year, month = add_months(start_year, start_month, offset)
        summaries.append(summarize_month(simulator.forecast(account.id, year, month)))

    lowest = min(s.lowest_balance for s in summaries)
    lowest_month = next(s.month_name for s in summaries if s.lowest_balance == lowest)
    total_income = sum(s.total_income for s in summaries)
    total_expenses = sum(s.total_expenses for s in summaries)

    return SixMonthForecast(
        account_id=account.id,
        safe_min_balance=account.safe_min_balance,
        months=summaries,
        overall_status=SixMonthStatus(
            lowest_balance=lowest,
            lowest_balance_month=lowest_month,
            total_projected_income=round_cents(total_income),
            total_projected_expenses=round_cents(total_expenses),
            net_change=round_cents(total_income - total_expenses),
        ),
    )
