"""
Balance Simulator

Walks the days of a month in order, applying each day's cash events to a
running balance.

DESIGN DECISION: A month's opening balance is the previous month's
closing balance. Instead of recursing backwards month by month, the
simulator runs one forward pass from the account's start month and
memoises every month it passes through in the request context, so a
six-month forecast costs one chain, not six.

Boundaries:
- Start month: opens with the starting balance on the start date; days
  before it are not shown
- Months before the start month: open with the starting balance on day 1
- Chains longer than `max_chain_months`: restart from the starting
  balance that many months before the target (date-floor guard). Only
  the target is memoised; the months it was built from are not

Every monetary value is rounded to cents at each step.
"""

from datetime import date
from typing import Optional, Sequence
from uuid import UUID

from cashflow.audit.logger import AuditLogger
from cashflow.dates import add_months, days_in_month, format_month, months_between
from cashflow.forecasting.context import ForecastContext
from cashflow.forecasting.estimator import get_variable_expense_estimates
from cashflow.forecasting.events import generate_cash_events
from cashflow.forecasting.reconciler import reconcile
from cashflow.models.forecast import CashEvent, DayForecast, ForecastResult, ForecastStatus
from cashflow.models.ledger import Account
from cashflow.money import round_cents


def build_month_events(
    context: ForecastContext,
    account_id: int,
    year: int,
    month: int,
) -> list[CashEvent]:
    """Forecast events for a month with actual transactions overlaid."""
    estimates = get_variable_expense_estimates(context, account_id, year, month)
    events = generate_cash_events(
        context.income_rules(account_id),
        context.expenses(account_id),
        estimates,
        year,
        month,
    )
    return reconcile(
        events,
        context.month_transactions(account_id, year, month),
        window_days=context.settings.fuzzy_match_window_days,
    )


def simulate_month(
    account: Account,
    year: int,
    month: int,
    events: Sequence[CashEvent],
    opening_balance: float,
    first_day: int = 1,
    is_start_month: bool = False,
) -> ForecastResult:
    """
    Integrate a month's events day by day.

    Events dated outside [first_day, month end] are not applied.
    """
    by_day: dict[date, list[CashEvent]] = {}
    for event in events:
        by_day.setdefault(event.event_date, []).append(event)

    balance = round_cents(opening_balance)
    min_balance = balance
    days_below = 0
    days: list[DayForecast] = []

    for day in range(first_day, days_in_month(year, month) + 1):
        current = date(year, month, day)
        day_events = by_day.get(current, [])

        net_change = round_cents(sum(e.amount for e in day_events))
        closing = round_cents(balance + net_change)
        below = closing < account.safe_min_balance
        if below:
            days_below += 1
        min_balance = min(min_balance, closing)

        days.append(DayForecast(
            date=current,
            events=day_events,
            opening_balance=balance,
            net_change=net_change,
            closing_balance=closing,
            below_safe_min=below,
        ))
        balance = closing

    return ForecastResult(
        account_id=account.id,
        year=year,
        month=month,
        starting_balance=round_cents(opening_balance),
        is_start_month=is_start_month,
        safe_min_balance=account.safe_min_balance,
        days=days,
        overall_status=ForecastStatus(
            min_balance=min_balance,
            days_below_safe_min=days_below,
        ),
    )


class BalanceSimulator:
    """
    Month forecasts for one request.

    Usage:
        simulator = BalanceSimulator(context, audit_logger, correlation_id)
        result = simulator.forecast(account_id, 2025, 1)
    """

    def __init__(
        self,
        context: ForecastContext,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._context = context
        self._audit = audit_logger
        self._correlation_id = correlation_id

    def forecast(self, account_id: int, year: int, month: int) -> ForecastResult:
        """
        Forecast one month, simulating any months between the account
        start and the target that are not cached yet.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._context.account(account_id)
        key = (account_id, year, month)
        if key in self._context.forecasts:
            return self._context.forecasts[key]

        start_year, start_month = account.start_date.year, account.start_date.month
        chain_length = months_between(start_year, start_month, year, month)

        if chain_length < 0:
            return self._forecast_before_start(account, year, month)

        max_chain = self._context.settings.max_chain_months
        truncated = chain_length > max_chain
        if truncated:
            chain_year, chain_month = add_months(year, month, -max_chain)
            if self._audit:
                self._audit.log_chain_truncated(
                    account_id=account.id,
                    requested=format_month(year, month),
                    chain_start=format_month(chain_year, chain_month),
                    max_chain_months=max_chain,
                    correlation_id=self._correlation_id,
                )
            chain_length = max_chain
        else:
            chain_year, chain_month = start_year, start_month

        opening = account.starting_balance
        result = None
        for offset in range(chain_length + 1):
            y, m = add_months(chain_year, chain_month, offset)
            cached = self._context.forecasts.get((account_id, y, m))
            if cached is not None:
                result = cached
            else:
                is_start = (y, m) == (start_year, start_month)
                result = simulate_month(
                    account,
                    y,
                    m,
                    build_month_events(self._context, account_id, y, m),
                    opening_balance=opening,
                    first_day=account.start_date.day if is_start else 1,
                    is_start_month=is_start,
                )
                # intermediate months of a truncated chain depend on where it was cut
                if not truncated or offset == chain_length:
                    self._context.forecasts[(account_id, y, m)] = result
            opening = result.closing_balance

        return result

    def _forecast_before_start(self, account: Account, year: int, month: int) -> ForecastResult:
        if self._audit:
            self._audit.log_opening_balance_fallback(
                account_id=account.id,
                year=year,
                month=month,
                starting_balance=account.starting_balance,
                correlation_id=self._correlation_id,
            )
        result = simulate_month(
            account,
            year,
            month,
            build_month_events(self._context, account.id, year, month),
            opening_balance=account.starting_balance,
        )
        self._context.forecasts[(account.id, year, month)] = result
        return result
