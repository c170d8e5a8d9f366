"""
Tests for the balance simulator

Test strategy:
1. Day-by-day walk of a hand-computed January 2025
2. Month-to-month carry-forward and start-month boundaries
3. Fallback paths (before start, chain guard) and their audit events
4. Everything runs against the in-memory store
"""

import pytest
from datetime import date

from cashflow.audit import AuditLogger
from cashflow.config.settings import ForecastSettings
from cashflow.forecasting.context import ForecastContext
from cashflow.forecasting.simulator import BalanceSimulator, simulate_month
from cashflow.models import (
    Account,
    AuditEventType,
    CashEvent,
    EventType,
    IncomeRule,
    RecurringExpense,
    Transaction,
)
from cashflow.money import round_cents
from cashflow.services.storage import InMemoryAuditStorage, InMemoryForecastStore
from cashflow.services.storage.interface import NotFoundError


def _store(start_date: str = "2025-01-01", safe_min: float = 500) -> InMemoryForecastStore:
    """
    Starting balance 2500, salary 750 on the 1st and 15th, rent 1500 on the 1st.

    January 2025: day 1 closes at 1750, day 15 at 2500, month closes at 2500.
    """
    store = InMemoryForecastStore()
    store.add_account(Account(
        id=1,
        name="Household",
        starting_balance=2500,
        start_date=start_date,
        safe_min_balance=safe_min,
    ))
    store.add_income_rule(IncomeRule(
        id=1, account_id=1, name="Salary", contribution_amount=750, pay_days=[1, 15],
    ))
    store.add_recurring_expense(RecurringExpense(
        id=1, account_id=1, name="Rent", amount=1500, day_of_month=1,
    ))
    return store


def _simulator(store, settings=None, audit_storage=None) -> BalanceSimulator:
    context = ForecastContext(store, settings)
    audit = AuditLogger(storage=audit_storage) if audit_storage is not None else None
    return BalanceSimulator(context, audit)


class TestSimulateMonth:
    """Tests for the day walk of a single month."""

    def test_january_walk(self):
        """Test opening, net and closing on the event days."""
        result = _simulator(_store()).forecast(1, 2025, 1)

        day_1 = result.day(1)
        assert day_1.opening_balance == 2500
        assert day_1.net_change == -750
        assert day_1.closing_balance == 1750
        assert [e.amount for e in day_1.events] == [750, -1500]

        assert result.day(2).net_change == 0
        assert result.day(14).closing_balance == 1750
        assert result.day(15).closing_balance == 2500
        assert result.closing_balance == 2500
        assert len(result.days) == 31

    def test_status_when_safe(self):
        """Test a month that never drops below the safe minimum."""
        result = _simulator(_store()).forecast(1, 2025, 1)
        assert result.overall_status.min_balance == 1750
        assert result.overall_status.days_below_safe_min == 0

    def test_days_below_safe_min(self):
        """Test counting days that close below the safe minimum."""
        result = _simulator(_store(safe_min=2000)).forecast(1, 2025, 1)

        assert result.overall_status.days_below_safe_min == 14
        assert result.overall_status.min_balance == 1750
        assert result.day(14).below_safe_min is True
        assert result.day(15).below_safe_min is False

    def test_balance_identity(self):
        """Test that closing equals opening plus the sum of daily nets."""
        result = _simulator(_store()).forecast(1, 2025, 3)
        total_net = sum(d.net_change for d in result.days)
        assert result.closing_balance == round_cents(result.starting_balance + total_net)
        for previous, current in zip(result.days, result.days[1:]):
            assert current.opening_balance == previous.closing_balance

    def test_events_outside_window_ignored(self):
        """Test that events before first_day are not applied."""
        account = Account(id=1, starting_balance=100, start_date="2025-01-10")
        events = [
            CashEvent(event_date=date(2025, 1, 5), description="early", amount=-50, type=EventType.FIXED_EXPENSE),
            CashEvent(event_date=date(2025, 1, 12), description="later", amount=-20, type=EventType.FIXED_EXPENSE),
        ]
        result = simulate_month(account, 2025, 1, events, opening_balance=100, first_day=10)

        assert result.days[0].date == date(2025, 1, 10)
        assert result.closing_balance == 80

    def test_cent_rounding(self):
        """Test that fractional cents never accumulate."""
        account = Account(id=1, starting_balance=0, start_date="2025-01-01")
        events = [
            CashEvent(event_date=date(2025, 1, 1), description="a", amount=0.1, type=EventType.INCOME),
            CashEvent(event_date=date(2025, 1, 1), description="b", amount=0.2, type=EventType.INCOME),
        ]
        result = simulate_month(account, 2025, 1, events, opening_balance=0)
        assert result.day(1).net_change == 0.3
        assert result.closing_balance == 0.3


class TestCarryForward:
    """Tests for chaining months."""

    def test_february_opens_with_january_close(self):
        """Test carry-forward across the month boundary."""
        simulator = _simulator(_store())
        january = simulator.forecast(1, 2025, 1)
        february = simulator.forecast(1, 2025, 2)

        assert february.starting_balance == january.closing_balance
        assert february.day(1).closing_balance == 1750
        assert february.is_start_month is False

    def test_chain_is_memoised(self):
        """Test that every month on the chain is cached in the context."""
        context = ForecastContext(_store())
        BalanceSimulator(context).forecast(1, 2025, 4)
        assert set(context.forecasts) == {(1, 2025, m) for m in range(1, 5)}

    def test_cached_month_returned(self):
        """Test that a repeat request returns the same object."""
        simulator = _simulator(_store())
        assert simulator.forecast(1, 2025, 3) is simulator.forecast(1, 2025, 3)

    def test_actual_transactions_change_the_chain(self):
        """Test that an actual rent payment shifts later months."""
        store = _store()
        store.add_transaction(Transaction(
            id=1, account_id=1, date="2025-01-02", amount=-1400, recurring_expense_id=1,
        ))
        simulator = _simulator(store)

        january = simulator.forecast(1, 2025, 1)
        february = simulator.forecast(1, 2025, 2)

        assert january.day(1).closing_balance == 3250
        assert january.day(2).closing_balance == 1850
        assert january.closing_balance == 2600
        assert february.starting_balance == 2600


class TestStartBoundaries:
    """Tests for the start month and months before it."""

    def test_start_mid_month(self):
        """Test that days before the start date are omitted."""
        result = _simulator(_store(start_date="2025-01-10")).forecast(1, 2025, 1)

        assert result.is_start_month is True
        assert result.days[0].date == date(2025, 1, 10)
        assert len(result.days) == 22
        assert result.starting_balance == 2500
        assert result.closing_balance == 3250

    def test_month_before_start(self):
        """Test that a month before the start opens with the starting balance."""
        audit_storage = InMemoryAuditStorage()
        simulator = _simulator(_store(start_date="2025-03-01"), audit_storage=audit_storage)

        result = simulator.forecast(1, 2025, 1)

        assert result.starting_balance == 2500
        assert result.days[0].date == date(2025, 1, 1)
        assert result.day(1).closing_balance == 1750
        events = audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.OPENING_BALANCE_FALLBACK]

    def test_chain_guard(self):
        """Test that a chain longer than the limit restarts from the starting balance."""
        audit_storage = InMemoryAuditStorage()
        simulator = _simulator(
            _store(),
            settings=ForecastSettings(max_chain_months=2),
            audit_storage=audit_storage,
        )

        result = simulator.forecast(1, 2025, 6)

        # chain restarts at April with 2500 on day 1, every month nets to zero
        assert result.starting_balance == 2500
        assert result.day(1).opening_balance == 2500
        assert set(simulator._context.forecasts) == {(1, 2025, 6)}

        [event] = audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.FORECAST_CHAIN_TRUNCATED
        assert event.details["chain_start"] == "2025-04"

    def test_truncated_chain_does_not_leak_into_shorter_requests(self):
        """Test that a month inside a truncated window is rebuilt from the real start."""
        store = _store()
        store.add_recurring_expense(RecurringExpense(
            id=9, account_id=1, name="Gym", amount=100, day_of_month=20,
        ))
        settings = ForecastSettings(max_chain_months=2)
        simulator = _simulator(store, settings=settings)

        # April is truncated to a February start; March is within the limit
        simulator.forecast(1, 2025, 4)
        march = simulator.forecast(1, 2025, 3)

        # each month nets -100 from 2500 in January
        assert march.starting_balance == 2300
        assert march.closing_balance == 2200
        fresh = _simulator(store, settings=settings).forecast(1, 2025, 3)
        assert march.closing_balance == fresh.closing_balance

    def test_unknown_account(self):
        """Test that a missing account raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            _simulator(_store()).forecast(99, 2025, 1)
        assert exc_info.value.entity_type == "account"
        assert exc_info.value.entity_id == 99


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
