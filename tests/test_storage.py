"""
Tests for storage backends

Test strategy:
1. In-memory store: filtering, ordering and referential checks
2. Google Sheets store: row parsing against a mocked client
3. No real API calls (gspread is never reached)
"""

import pytest
from datetime import date, datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

from cashflow.models import (
    Account,
    AuditEventBuilder,
    AuditEventType,
    DailySpendingAverage,
    IncomeRule,
    PayFrequency,
    RecurringExpense,
    Transaction,
)
from cashflow.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsForecastStore,
    InMemoryAuditStorage,
    InMemoryForecastStore,
    NotFoundError,
)


def _memory_store() -> InMemoryForecastStore:
    store = InMemoryForecastStore()
    store.add_account(Account(id=1, starting_balance=100, start_date="2025-01-01"))
    store.add_recurring_expense(RecurringExpense(
        id=1, account_id=1, name="Rent", amount=1500, day_of_month=1,
    ))
    store.add_recurring_expense(RecurringExpense(
        id=2, account_id=1, name="Groceries", amount=400, day_of_month=10, is_variable=True,
    ))
    store.add_transactions([
        Transaction(id=2, account_id=1, date="2025-02-03", amount=-50, recurring_expense_id=2),
        Transaction(id=1, account_id=1, date="2025-01-12", amount=-40, recurring_expense_id=2),
        Transaction(id=3, account_id=1, date="2025-01-20", amount=25),
    ])
    return store


class TestInMemoryForecastStore:
    """Tests for the dict-backed store."""

    def test_get_account(self):
        store = _memory_store()
        assert store.get_account(1).starting_balance == 100
        assert store.get_account(2) is None

    def test_variable_only_filter(self):
        """Test filtering recurring expenses by the variable flag."""
        store = _memory_store()
        assert [e.id for e in store.list_recurring_expenses(1)] == [1, 2]
        assert [e.id for e in store.list_recurring_expenses(1, variable_only=True)] == [2]

    def test_transactions_sorted_and_filtered(self):
        """Test inclusive date bounds and oldest-first order."""
        store = _memory_store()
        assert [t.id for t in store.list_transactions(1)] == [1, 3, 2]
        january = store.list_transactions(1, date(2025, 1, 1), date(2025, 1, 20))
        assert [t.id for t in january] == [1, 3]

    def test_expense_transactions(self):
        """Test transactions linked to one expense."""
        store = _memory_store()
        assert [t.id for t in store.list_expense_transactions(2)] == [1, 2]
        assert store.list_expense_transactions(1) == []

    def test_rule_for_unknown_account(self):
        """Test that rules must belong to an existing account."""
        store = _memory_store()
        with pytest.raises(NotFoundError) as exc_info:
            store.add_income_rule(IncomeRule(
                id=1, account_id=9, name="Salary", contribution_amount=1, pay_days=[1],
            ))
        assert exc_info.value.entity_id == 9

    def test_daily_averages_by_expense(self):
        store = _memory_store()
        store.add_daily_average(DailySpendingAverage(recurring_expense_id=2, month=1, day=1, daily_average=5))
        store.add_daily_average(DailySpendingAverage(recurring_expense_id=3, month=1, day=1, daily_average=7))
        assert [a.daily_average for a in store.list_daily_averages(2)] == [5]


def _at(event, minute: int):
    return event.model_copy(update={"timestamp": datetime(2025, 1, 1, 12, minute, tzinfo=timezone.utc)})


class TestInMemoryAuditStorage:
    """Tests for the list-backed audit log."""

    def test_correlation_lookup(self):
        """Test events grouped by correlation id in chronological order."""
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        first = _at(AuditEventBuilder.trends_analyzed(1, 0, correlation_id=correlation_id), 1)
        other = _at(AuditEventBuilder.trends_analyzed(1, 0), 2)
        second = _at(AuditEventBuilder.trends_analyzed(1, 2, correlation_id=correlation_id), 3)
        for event in (first, other, second):
            storage.append_event(event)

        assert storage.get_events_by_correlation_id(correlation_id) == [first, second]
        assert storage.get_recent_events(limit=1) == [second]


def _sheets_client(**records) -> MagicMock:
    """Mock GoogleSheetsClient whose sheets return the given records."""
    client = MagicMock()
    for sheet, rows in records.items():
        getattr(client, f"get_{sheet}_sheet").return_value.get_all_records.return_value = rows
    return client


class TestGoogleSheetsForecastStore:
    """Tests for reading the ledger from mocked worksheets."""

    def test_account_row(self):
        """Test account conversion with blank optional columns."""
        client = _sheets_client(accounts=[{
            "id": 1,
            "name": "Household",
            "starting_balance": "2500",
            "start_date": "2025-01-01",
            "safe_min_balance": 500,
            "inflation_rate": "",
            "default_pay_frequency": "",
        }])
        account = GoogleSheetsForecastStore(client).get_account(1)

        assert account.starting_balance == 2500
        assert account.start_date == date(2025, 1, 1)
        assert account.safe_min_balance == 500
        assert account.inflation_rate == 0
        assert account.default_pay_frequency == PayFrequency.SEMI_MONTHLY

    def test_missing_account(self):
        client = _sheets_client(accounts=[])
        assert GoogleSheetsForecastStore(client).get_account(1) is None

    @pytest.mark.parametrize("cell,expected", [
        ("[1, 15]", [1, 15]),
        ("1,15", [1, 15]),
        (15, [15]),
        ("", []),
    ])
    def test_pay_days_formats(self, cell, expected):
        """Test JSON, comma separated and single-number pay days."""
        client = _sheets_client(income_rules=[{
            "id": 1,
            "account_id": 1,
            "name": "Salary",
            "annual_salary": "",
            "contribution_amount": 750,
            "pay_frequency": "semi_monthly",
            "pay_days": cell,
        }])
        [rule] = GoogleSheetsForecastStore(client).list_income_rules(1)
        assert rule.pay_days == expected

    def test_expense_row(self):
        """Test expense conversion including flags and optional numbers."""
        client = _sheets_client(expenses=[
            {
                "id": 2, "account_id": 1, "name": "Groceries", "amount": 400,
                "day_of_month": 10, "category": "food", "frequency": "monthly",
                "is_variable": "TRUE", "active_from": "", "active_to": "",
                "budget_goal": 350, "billing_cycle_day": "",
            },
            {
                "id": 3, "account_id": 1, "name": "Rent", "amount": 1500,
                "day_of_month": 1, "category": "", "frequency": "",
                "is_variable": "FALSE", "active_from": "2025-01-01", "active_to": "",
                "budget_goal": "", "billing_cycle_day": "",
            },
        ])
        store = GoogleSheetsForecastStore(client)

        [groceries] = store.list_recurring_expenses(1, variable_only=True)
        assert groceries.is_variable is True
        assert groceries.budget_goal == 350
        assert groceries.billing_cycle_day is None

        rent = store.get_recurring_expense(3)
        assert rent.is_variable is False
        assert rent.category == "other"
        assert rent.active_from == date(2025, 1, 1)
        assert rent.budget_goal is None

    def test_malformed_and_empty_rows_skipped(self):
        """Test that one bad row does not fail the whole sheet."""
        client = _sheets_client(transactions=[
            {"id": 1, "account_id": 1, "date": "2025-01-05", "amount": "-40",
             "description": "Shop", "category": "", "income_rule_id": "", "recurring_expense_id": 2},
            {"id": "", "account_id": "", "date": "", "amount": "",
             "description": "", "category": "", "income_rule_id": "", "recurring_expense_id": ""},
            {"id": 2, "account_id": 1, "date": "not a date", "amount": "-10",
             "description": "", "category": "", "income_rule_id": "", "recurring_expense_id": ""},
            {"id": 3, "account_id": 1, "date": "2025-01-02", "amount": "12.5",
             "description": "Refund", "category": "", "income_rule_id": "", "recurring_expense_id": ""},
        ])
        transactions = GoogleSheetsForecastStore(client).list_transactions(1)

        assert [t.id for t in transactions] == [3, 1]
        assert transactions[1].recurring_expense_id == 2
        assert transactions[0].is_one_off is True

    def test_expense_transactions_date_filter(self):
        """Test inclusive bounds on linked transactions."""
        client = _sheets_client(transactions=[
            {"id": i, "account_id": 1, "date": f"2025-01-{day:02d}", "amount": -10,
             "description": "", "category": "", "income_rule_id": "", "recurring_expense_id": 2}
            for i, day in enumerate([1, 15, 31], start=1)
        ])
        transactions = GoogleSheetsForecastStore(client).list_expense_transactions(
            2, date(2025, 1, 1), date(2025, 1, 15)
        )
        assert [t.id for t in transactions] == [1, 2]

    def test_daily_averages(self):
        client = _sheets_client(daily_averages=[
            {"recurring_expense_id": 2, "month": 1, "day": 3, "daily_average": "4.5"},
            {"recurring_expense_id": 9, "month": 1, "day": 3, "daily_average": "1"},
        ])
        [average] = GoogleSheetsForecastStore(client).list_daily_averages(2)
        assert average.key == (1, 3)
        assert average.daily_average == 4.5


class TestGoogleSheetsAuditStorage:
    """Tests for the audit worksheet."""

    def test_append_event(self):
        """Test that events are appended as raw rows."""
        client = MagicMock()
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.trends_analyzed(1, 2)

        assert storage.append_event(event) is True
        sheet = client.get_audit_sheet.return_value
        sheet.append_row.assert_called_once_with(event.to_sheets_row(), value_input_option="RAW")

    def test_read_back_by_correlation_id(self):
        """Test parsing stored rows, skipping the header and blank rows."""
        correlation_id = uuid4()
        event = AuditEventBuilder.estimates_computed(
            account_id=1, year=2025, month=1, estimates={2: 204.6}, fallbacks=[],
            correlation_id=correlation_id,
        )
        client = MagicMock()
        client.get_audit_sheet.return_value.get_all_values.return_value = [
            ["event_id", "timestamp"],
            event.to_sheets_row(),
            [""],
            AuditEventBuilder.trends_analyzed(1, 0).to_sheets_row(),
        ]

        [loaded] = GoogleSheetsAuditStorage(client).get_events_by_correlation_id(correlation_id)

        assert loaded.event_id == event.event_id
        assert loaded.event_type == AuditEventType.ESTIMATES_COMPUTED
        assert loaded.entity_id == "1"
        assert loaded.details["estimates"] == {"2": 204.6}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
