"""
In-Memory Storage Implementation

Dict-backed implementation of the storage interfaces. Used by the test
suite and by callers that already hold their ledger in memory (for
example after a CSV import).
"""

from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from cashflow.models.ledger import (
    Account,
    DailySpendingAverage,
    IncomeRule,
    RecurringExpense,
    Transaction,
)
from cashflow.models.audit import AuditEvent
from cashflow.services.storage.interface import (
    AuditStorageInterface,
    ForecastStoreInterface,
    NotFoundError,
)


def _in_range(day: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True


class InMemoryForecastStore(ForecastStoreInterface):
    """
    Ledger held in plain dicts keyed by id.

    Insertion order is preserved, which is the order rules are
    expanded into cash events.
    """

    def __init__(self):
        self._accounts: dict[int, Account] = {}
        self._income_rules: dict[int, IncomeRule] = {}
        self._expenses: dict[int, RecurringExpense] = {}
        self._transactions: dict[int, Transaction] = {}
        self._daily_averages: list[DailySpendingAverage] = []

    # -- loading --------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        self._accounts[account.id] = account
        return account

    def add_income_rule(self, rule: IncomeRule) -> IncomeRule:
        self._require_account(rule.account_id)
        self._income_rules[rule.id] = rule
        return rule

    def add_recurring_expense(self, expense: RecurringExpense) -> RecurringExpense:
        self._require_account(expense.account_id)
        self._expenses[expense.id] = expense
        return expense

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._require_account(transaction.account_id)
        self._transactions[transaction.id] = transaction
        return transaction

    def add_transactions(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self.add_transaction(transaction)

    def add_daily_average(self, average: DailySpendingAverage) -> DailySpendingAverage:
        self._daily_averages.append(average)
        return average

    def _require_account(self, account_id: int) -> None:
        if account_id not in self._accounts:
            raise NotFoundError(
                f"Account not found: {account_id}",
                entity_type="account",
                entity_id=account_id,
            )

    # -- ForecastStoreInterface -----------------------------------------------

    def get_account(self, account_id: int) -> Optional[Account]:
        return self._accounts.get(account_id)

    def list_income_rules(self, account_id: int) -> list[IncomeRule]:
        return [r for r in self._income_rules.values() if r.account_id == account_id]

    def list_recurring_expenses(
        self,
        account_id: int,
        variable_only: bool = False,
    ) -> list[RecurringExpense]:
        return [
            e for e in self._expenses.values()
            if e.account_id == account_id and (e.is_variable or not variable_only)
        ]

    def get_recurring_expense(self, expense_id: int) -> Optional[RecurringExpense]:
        return self._expenses.get(expense_id)

    def list_transactions(
        self,
        account_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        matches = [
            t for t in self._transactions.values()
            if t.account_id == account_id and _in_range(t.date, date_from, date_to)
        ]
        return sorted(matches, key=lambda t: t.date)

    def list_expense_transactions(
        self,
        expense_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        matches = [
            t for t in self._transactions.values()
            if t.recurring_expense_id == expense_id and _in_range(t.date, date_from, date_to)
        ]
        return sorted(matches, key=lambda t: t.date)

    def list_daily_averages(self, expense_id: int) -> list[DailySpendingAverage]:
        return [a for a in self._daily_averages if a.recurring_expense_id == expense_id]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
