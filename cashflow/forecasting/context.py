"""
Per-Request Forecast Context

DESIGN DECISION: One forecasting request reads each piece of ledger data
at most once. The context is a read-through cache in front of the store,
plus memo tables for derived values:
- month forecasts keyed by (account_id, year, month)
- variable expense estimates keyed by (expense_id, year, month)

A context must not outlive its request. Nothing in it is shared across
requests, so concurrent requests for different accounts need no locking.
"""

from datetime import date
from typing import Optional

from cashflow.config.settings import ForecastSettings
from cashflow.dates import month_end, month_start
from cashflow.models.forecast import EstimationResult, ForecastResult
from cashflow.models.ledger import (
    Account,
    DailySpendingAverage,
    IncomeRule,
    RecurringExpense,
    Transaction,
)
from cashflow.services.storage.interface import ForecastStoreInterface, NotFoundError


class ForecastContext:
    """Read-through snapshot of the store for a single request."""

    def __init__(
        self,
        store: ForecastStoreInterface,
        settings: Optional[ForecastSettings] = None,
    ):
        self.store = store
        self.settings = settings or ForecastSettings()

        self._accounts: dict[int, Account] = {}
        self._income_rules: dict[int, list[IncomeRule]] = {}
        self._expenses: dict[int, list[RecurringExpense]] = {}
        self._variable_expenses: dict[int, list[RecurringExpense]] = {}
        self._expense_by_id: dict[int, RecurringExpense] = {}
        self._month_transactions: dict[tuple[int, int, int], list[Transaction]] = {}
        self._expense_transactions: dict[int, list[Transaction]] = {}
        self._daily_averages: dict[int, list[DailySpendingAverage]] = {}

        # Derived values
        self.forecasts: dict[tuple[int, int, int], ForecastResult] = {}
        self.estimates: dict[tuple[int, int, int], EstimationResult] = {}

    # -- entities -------------------------------------------------------------

    def account(self, account_id: int) -> Account:
        """Return the account or raise NotFoundError."""
        if account_id not in self._accounts:
            account = self.store.get_account(account_id)
            if account is None:
                raise NotFoundError(
                    f"Account {account_id} not found",
                    entity_type="account",
                    entity_id=account_id,
                )
            self._accounts[account_id] = account
        return self._accounts[account_id]

    def income_rules(self, account_id: int) -> list[IncomeRule]:
        if account_id not in self._income_rules:
            self._income_rules[account_id] = self.store.list_income_rules(account_id)
        return self._income_rules[account_id]

    def expenses(self, account_id: int) -> list[RecurringExpense]:
        if account_id not in self._expenses:
            expenses = self.store.list_recurring_expenses(account_id)
            self._expenses[account_id] = expenses
            for expense in expenses:
                self._expense_by_id[expense.id] = expense
        return self._expenses[account_id]

    def variable_expenses(self, account_id: int) -> list[RecurringExpense]:
        """Variable expenses, filtered by the store unless the full list is already loaded."""
        if account_id not in self._variable_expenses:
            if account_id in self._expenses:
                expenses = [e for e in self._expenses[account_id] if e.is_variable]
            else:
                expenses = self.store.list_recurring_expenses(account_id, variable_only=True)
                for expense in expenses:
                    self._expense_by_id[expense.id] = expense
            self._variable_expenses[account_id] = expenses
        return self._variable_expenses[account_id]

    def expense(self, expense_id: int) -> RecurringExpense:
        """Return the recurring expense or raise NotFoundError."""
        if expense_id not in self._expense_by_id:
            expense = self.store.get_recurring_expense(expense_id)
            if expense is None:
                raise NotFoundError(
                    f"Recurring expense {expense_id} not found",
                    entity_type="expense",
                    entity_id=expense_id,
                )
            self._expense_by_id[expense_id] = expense
        return self._expense_by_id[expense_id]

    # -- history --------------------------------------------------------------

    def month_transactions(self, account_id: int, year: int, month: int) -> list[Transaction]:
        """All of an account's transactions dated inside one calendar month."""
        key = (account_id, year, month)
        if key not in self._month_transactions:
            self._month_transactions[key] = self.store.list_transactions(
                account_id,
                date_from=month_start(year, month),
                date_to=month_end(year, month),
            )
        return self._month_transactions[key]

    def expense_transactions(self, expense_id: int) -> list[Transaction]:
        """Full linked history of one recurring expense, oldest first."""
        if expense_id not in self._expense_transactions:
            self._expense_transactions[expense_id] = self.store.list_expense_transactions(
                expense_id
            )
        return self._expense_transactions[expense_id]

    def expense_transactions_between(
        self,
        expense_id: int,
        date_from: date,
        date_to: date,
    ) -> list[Transaction]:
        """Linked transactions with date_from <= date <= date_to."""
        return [
            t for t in self.expense_transactions(expense_id)
            if date_from <= t.date <= date_to
        ]

    def daily_averages(self, expense_id: int) -> list[DailySpendingAverage]:
        if expense_id not in self._daily_averages:
            self._daily_averages[expense_id] = self.store.list_daily_averages(expense_id)
        return self._daily_averages[expense_id]
