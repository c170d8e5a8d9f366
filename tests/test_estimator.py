"""
Tests for the variable expense predictor

Test strategy:
1. Signal functions on hand-built monthly histories
2. Full estimates against hand-computed blends and clamps
3. Memoisation through the request context (in-memory store)
"""

import pytest
from datetime import date
from unittest.mock import MagicMock

from cashflow.forecasting.context import ForecastContext
from cashflow.forecasting.estimator import (
    adjust_for_inflation,
    build_monthly_history,
    estimate_variable_expense,
    explain_estimate,
    get_variable_expense_estimates,
    recency_estimate,
    seasonal_estimate,
    trend_slope,
)
from cashflow.models import Account, MonthlyTotal, RecurringExpense, Transaction
from cashflow.services.storage import InMemoryForecastStore


GROCERIES = RecurringExpense(
    id=7, account_id=1, name="Groceries", amount=200, day_of_month=15, is_variable=True,
)


def _txn(txn_id: int, day: date, amount: float, expense_id: int = 7) -> Transaction:
    return Transaction(
        id=txn_id, account_id=1, date=day, amount=amount, recurring_expense_id=expense_id,
    )


def _monthly(*entries) -> list[MonthlyTotal]:
    return [
        MonthlyTotal(year=y, month=m, total=t, inflation_adjusted_total=t)
        for y, m, t in entries
    ]


def _rising_history() -> list[Transaction]:
    """Jul..Dec 2024 spending 100, 120, ..., 200."""
    return [
        _txn(i, date(2024, 7 + i, 10), -(100 + 20 * i))
        for i in range(6)
    ]


class TestMonthlyHistory:
    """Tests for monthly aggregation."""

    def test_sums_absolute_amounts_per_month(self):
        """Test that refunds and charges both add to the month total."""
        history = build_monthly_history([
            _txn(1, date(2024, 3, 2), -50),
            _txn(2, date(2024, 3, 20), -25.5),
            _txn(3, date(2024, 1, 5), 10),
        ])
        assert [(m.year, m.month, m.total) for m in history] == [
            (2024, 1, 10),
            (2024, 3, 75.5),
        ]

    def test_inflation_adjustment(self):
        """Test one year of 3% inflation."""
        assert adjust_for_inflation(100, 2024, 1, 2025, 1, 0.03) == pytest.approx(103.0)

    def test_no_inflation_is_identity(self):
        """Test zero rate leaves totals unchanged."""
        assert adjust_for_inflation(100, 2020, 5, 2025, 1, 0.0) == 100


class TestSignals:
    """Tests for seasonal, recency and trend signals."""

    def test_seasonal_averages_same_calendar_month(self):
        """Test mean of past Januaries."""
        history = _monthly((2023, 1, 280), (2023, 6, 100), (2024, 1, 320))
        assert seasonal_estimate(history, 1) == 300

    def test_seasonal_without_matching_month(self):
        """Test that no matching month means no seasonal signal."""
        assert seasonal_estimate(_monthly((2024, 6, 100)), 1) is None

    def test_recency_weights_newest_most(self):
        """Test 0.2/0.3/0.5 weighting of the last three months."""
        history = _monthly((2024, 10, 160), (2024, 11, 180), (2024, 12, 200))
        assert recency_estimate(history, 2025, 1) == 186.0

    def test_recency_ignores_months_at_or_after_target(self):
        """Test that only months strictly before the target are used."""
        history = _monthly((2024, 11, 100), (2024, 12, 100), (2025, 1, 900))
        assert recency_estimate(history, 2025, 1) == 100.0

    def test_recency_with_two_months(self):
        """Test 0.4/0.6 weighting when only two months exist."""
        history = _monthly((2024, 11, 100), (2024, 12, 200))
        assert recency_estimate(history, 2025, 1) == 160.0

    def test_trend_needs_six_points(self):
        """Test that short histories have no slope."""
        history = _monthly((2024, 8, 100), (2024, 9, 200), (2024, 10, 300))
        assert trend_slope(history, 2025, 1) == 0.0

    def test_trend_slope(self):
        """Test least-squares slope of a straight line."""
        history = _monthly(*[(2024, 7 + i, 100 + 20 * i) for i in range(6)])
        assert trend_slope(history, 2025, 1) == 20.0


class TestEstimateVariableExpense:
    """Tests for the blended estimate."""

    def test_fallback_with_short_history(self):
        """Test that fewer than three months returns the nominal amount."""
        result = estimate_variable_expense(
            GROCERIES,
            [_txn(1, date(2024, 11, 3), -500), _txn(2, date(2024, 12, 3), -500)],
            2025, 1,
        )
        assert result.estimate == 200
        assert result.data_points_used == 2
        assert result.used_history is False

    def test_trend_clamped_to_ten_percent(self):
        """Test that base 186 with slope 20 is capped at 186 * 1.1."""
        result = estimate_variable_expense(GROCERIES, _rising_history(), 2025, 1)

        assert result.recency_estimate == 186.0
        assert result.seasonal_estimate is None
        assert result.trend_slope == 20.0
        assert result.estimate == 204.6
        assert result.data_points_used == 6

    def test_seasonal_and_recency_blend(self):
        """Test 0.4 * seasonal + 0.6 * recency."""
        transactions = [
            _txn(1, date(2024, 1, 10), -300),
            _txn(2, date(2024, 10, 10), -100),
            _txn(3, date(2024, 11, 10), -100),
            _txn(4, date(2024, 12, 10), -100),
        ]
        result = estimate_variable_expense(GROCERIES, transactions, 2025, 1)

        assert result.seasonal_estimate == 300.0
        assert result.recency_estimate == 100.0
        assert result.trend_slope == 0.0
        assert result.estimate == 180.0

    def test_falling_trend_clamped_from_below(self):
        """Test that a steep decline is floored at 90% of base."""
        transactions = [
            _txn(i, date(2024, 7 + i, 10), -(200 - 30 * i))
            for i in range(6)
        ]
        result = estimate_variable_expense(GROCERIES, transactions, 2025, 1)

        # recency: 0.2*110 + 0.3*80 + 0.5*50 = 71
        assert result.recency_estimate == 71.0
        assert result.estimate == 63.9

    def test_estimate_never_negative(self):
        """Test that estimates are floored at zero."""
        result = estimate_variable_expense(
            GROCERIES,
            [_txn(i, date(2024, 10 + i, 1), 0) for i in range(3)],
            2025, 1,
        )
        assert result.estimate == 0.0

    def test_inflation_raises_estimate(self):
        """Test that inflation-adjusted history yields a higher estimate."""
        transactions = [
            _txn(1, date(2024, 10, 10), -100),
            _txn(2, date(2024, 11, 10), -100),
            _txn(3, date(2024, 12, 10), -100),
        ]
        flat = estimate_variable_expense(GROCERIES, transactions, 2025, 1)
        inflated = estimate_variable_expense(GROCERIES, transactions, 2025, 1, 0.12)

        assert flat.estimate == 100.0
        assert inflated.estimate > flat.estimate


class TestContextEstimates:
    """Tests for estimates computed through the request context."""

    def _store(self) -> InMemoryForecastStore:
        store = InMemoryForecastStore()
        store.add_account(Account(id=1, starting_balance=1000, start_date="2024-01-01"))
        store.add_recurring_expense(GROCERIES)
        store.add_recurring_expense(RecurringExpense(
            id=8, account_id=1, name="Rent", amount=1500, day_of_month=1,
        ))
        store.add_transactions(_rising_history())
        return store

    def test_only_variable_expenses_are_estimated(self):
        """Test that fixed expenses are left out of the estimate map."""
        context = ForecastContext(self._store())
        estimates = get_variable_expense_estimates(context, 1, 2025, 1)
        assert estimates == {7: 204.6}

    def test_estimate_is_memoised(self):
        """Test that the same expense and month is computed once."""
        context = ForecastContext(self._store())
        first = explain_estimate(context, GROCERIES, 2025, 1)
        second = explain_estimate(context, GROCERIES, 2025, 1)

        assert first is second
        assert (7, 2025, 1) in context.estimates

    def test_variable_expenses_filtered_by_store(self):
        """Test that the store is asked for variable expenses only."""
        store = MagicMock(wraps=self._store())
        context = ForecastContext(store)

        assert [e.id for e in context.variable_expenses(1)] == [7]
        store.list_recurring_expenses.assert_called_once_with(1, variable_only=True)

        # cached for later lookups by id
        assert context.expense(7).name == "Groceries"
        store.get_recurring_expense.assert_not_called()

    def test_variable_expenses_reuse_loaded_list(self):
        """Test that an already loaded expense list is filtered in place."""
        store = MagicMock(wraps=self._store())
        context = ForecastContext(store)

        context.expenses(1)
        assert [e.id for e in context.variable_expenses(1)] == [7]
        store.list_recurring_expenses.assert_called_once_with(1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
