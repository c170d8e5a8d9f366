"""
Recommendation Engine

Turns a six-month forecast and a trend analysis into ranked,
human-readable suggestions plus a proposed annual contribution.

The thresholds here are business policy, not part of the forecasting
model. The first forecast month is excluded from balance checks because
it is already under way.
"""

import math
from typing import Optional, Sequence

from cashflow.models.analysis import (
    ContributionAnalysis,
    MonthHealth,
    RecommendationOverview,
    SixMonthForecast,
    Suggestion,
    SuggestionSeverity,
    SuggestionType,
    TrendAnalysis,
)
from cashflow.models.ledger import Account, IncomeRule
from cashflow.money import round_cents

TARGET_MONTHLY_GROWTH = 150.0
GAP_BUFFER = 2.0
GROWTH_BUFFER = 1.2
MIN_ADJUSTMENT_PERCENT = 0.5
MIN_ADJUSTMENT_ANNUAL = 500.0
DECLINE_THRESHOLD = -50.0
HIGH_EXPENSE_RATIO = 1.2


def _money(value: float, decimals: int = 0) -> str:
    return f"${value:,.{decimals}f}"


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def current_annual_contribution(income_rules: Sequence[IncomeRule]) -> float:
    return sum(rule.annual_contribution for rule in income_rules)


def _contribution_suggestion(
    account: Account,
    six_month: SixMonthForecast,
    current_annual: float,
) -> tuple[ContributionAnalysis, Optional[Suggestion], float]:
    """Returns the contribution analysis, its suggestion (if any), and net change per future month."""
    future = six_month.months[1:]
    net_per_month = (
        sum(m.total_income - m.total_expenses for m in future) / len(future) if future else 0.0
    )
    future_lowest = (
        min(m.lowest_balance for m in future)
        if future else six_month.overall_status.lowest_balance
    )

    analysis = ContributionAnalysis(current_annual_contribution=round_cents(current_annual))
    if future_lowest >= account.safe_min_balance:
        return analysis, None, net_per_month

    gap = account.safe_min_balance - future_lowest
    needed = gap / 6 * 12 * GAP_BUFFER
    if net_per_month < TARGET_MONTHLY_GROWTH:
        needed += (TARGET_MONTHLY_GROWTH - net_per_month) * 12 * GROWTH_BUFFER

    recommended = math.ceil((current_annual + needed) / 100) * 100
    increase = recommended - current_annual
    if current_annual > 0:
        percentage = increase / current_annual * 100
    else:
        percentage = 100.0

    analysis.recommended_annual_contribution = float(recommended)
    analysis.adjustment_percentage = round_cents(percentage)

    if percentage < MIN_ADJUSTMENT_PERCENT or increase < MIN_ADJUSTMENT_ANNUAL:
        return analysis, None, net_per_month

    analysis.adjustment_needed = True
    suggestion = Suggestion(
        type=SuggestionType.CONTRIBUTION,
        severity=SuggestionSeverity.WARNING,
        title=f"Increase contributions by {round(percentage)}%",
        description=(
            "To maintain a safe balance and achieve positive growth, increase annual "
            f"contributions from {_money(current_annual)} to {_money(recommended)}."
        ),
        actionable=True,
        recommended_action=(
            f"Increase monthly contributions by approximately {_money(increase / 12)}"
        ),
    )
    return analysis, suggestion, net_per_month


def generate_recommendations(
    account: Account,
    income_rules: Sequence[IncomeRule],
    six_month: SixMonthForecast,
    trends: TrendAnalysis,
    year: int,
    month: int,
) -> RecommendationOverview:
    """Build the suggestion list, most severe first."""
    suggestions: list[Suggestion] = []
    future = six_month.months[1:]

    # Balance dips
    troubled = [m for m in future if m.status in (MonthHealth.WARNING, MonthHealth.DANGER)]
    if troubled:
        first = troubled[0]
        suggestions.append(Suggestion(
            type=SuggestionType.BALANCE,
            severity=(
                SuggestionSeverity.CRITICAL
                if first.status == MonthHealth.DANGER else SuggestionSeverity.WARNING
            ),
            title=f"Balance drops below safe minimum in {first.month_name}",
            description=(
                f"Your projected balance will drop to {_money(first.lowest_balance, 2)} on day "
                f"{first.lowest_balance_day}, which is {first.days_below_safe_min} day(s) below "
                f"your safe minimum of {_money(account.safe_min_balance, 2)}."
            ),
            actionable=True,
            recommended_action="Increase contributions or reduce variable expenses",
        ))

    current_annual = current_annual_contribution(income_rules)
    contribution, contribution_suggestion, net_per_month = _contribution_suggestion(
        account, six_month, current_annual
    )
    if contribution_suggestion:
        suggestions.append(contribution_suggestion)

    # Expense trends
    alerts = [e for e in trends.expenses if e.alert]
    if alerts:
        count = len(alerts)
        suggestions.append(Suggestion(
            type=SuggestionType.TREND,
            severity=SuggestionSeverity.WARNING,
            title=f"{count} expense {_plural(count, 'category', 'categories')} trending higher",
            description=(
                "These expenses are currently 15%+ above their 6-month average: "
                f"{', '.join(e.expense_name for e in alerts)}."
            ),
            actionable=True,
            recommended_action="Review these expenses and consider adjusting your budget estimates",
        ))

    decreasing = trends.summary.total_decreasing_categories
    if decreasing > 0:
        suggestions.append(Suggestion(
            type=SuggestionType.TREND,
            severity=SuggestionSeverity.INFO,
            title=(
                f"{decreasing} expense "
                f"{_plural(decreasing, 'category is', 'categories are')} trending lower"
            ),
            description="Good news! Some of your variable expenses are decreasing compared to recent months.",
        ))

    # Overall trajectory
    if not contribution.adjustment_needed:
        if net_per_month > 0:
            suggestions.append(Suggestion(
                type=SuggestionType.BALANCE,
                severity=SuggestionSeverity.INFO,
                title="Account growing steadily",
                description=(
                    "Your account is projected to grow by an average of "
                    f"{_money(net_per_month)} per month over the next 6 months."
                ),
            ))
        elif net_per_month < DECLINE_THRESHOLD:
            suggestions.append(Suggestion(
                type=SuggestionType.BALANCE,
                severity=SuggestionSeverity.WARNING,
                title="Account balance declining",
                description=(
                    "Your account is projected to decrease by an average of "
                    f"{_money(abs(net_per_month))} per month. This trend may require attention."
                ),
                actionable=True,
                recommended_action="Review expenses and consider increasing contributions",
            ))

    # Expensive months
    if six_month.months:
        highest = max(six_month.months, key=lambda m: m.total_expenses)
        average = sum(m.total_expenses for m in six_month.months) / len(six_month.months)
        if highest.total_expenses > average * HIGH_EXPENSE_RATIO:
            suggestions.append(Suggestion(
                type=SuggestionType.EXPENSE,
                severity=SuggestionSeverity.INFO,
                title=f"{highest.month_name} has higher than average expenses",
                description=(
                    f"Expected expenses of {_money(highest.total_expenses, 2)} are "
                    f"{round((highest.total_expenses - average) / average * 100)}% above your "
                    "6-month average."
                ),
            ))

    suggestions.sort(key=lambda s: s.severity.rank)

    return RecommendationOverview(
        account_id=account.id,
        year=year,
        month=month,
        six_month_forecast=six_month,
        trend_analysis=trends,
        suggestions=suggestions,
        contribution_analysis=contribution,
    )
