"""Aggregators built on top of the forecasting core."""

from cashflow.analysis.budget import analyze_budget, billing_period
from cashflow.analysis.recommendations import generate_recommendations
from cashflow.analysis.six_month import generate_six_month_forecast, summarize_month
from cashflow.analysis.trends import analyze_trends
from cashflow.analysis.variance import analyze_variance

__all__ = [
    "analyze_budget",
    "billing_period",
    "generate_recommendations",
    "generate_six_month_forecast",
    "summarize_month",
    "analyze_trends",
    "analyze_variance",
]
