"""
Forecasting core: estimation, event generation, reconciliation and
balance simulation.
"""

from cashflow.forecasting.context import ForecastContext
from cashflow.forecasting.estimator import (
    estimate_variable_expense,
    explain_estimate,
    get_variable_expense_estimates,
)
from cashflow.forecasting.events import generate_cash_events, occurrence_dates
from cashflow.forecasting.period_trend import calculate_period_trend_forecast
from cashflow.forecasting.reconciler import reconcile
from cashflow.forecasting.simulator import BalanceSimulator, build_month_events, simulate_month

__all__ = [
    "ForecastContext",
    "estimate_variable_expense",
    "explain_estimate",
    "get_variable_expense_estimates",
    "generate_cash_events",
    "occurrence_dates",
    "calculate_period_trend_forecast",
    "reconcile",
    "BalanceSimulator",
    "build_month_events",
    "simulate_month",
]
