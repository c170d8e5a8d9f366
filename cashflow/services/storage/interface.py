"""
Abstract Storage Interface

DESIGN DECISION: The forecasting core never talks to a database directly.
It consumes this read-only contract, which allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Add caching layers transparently
4. Keep business logic decoupled from storage implementation

The forecasting core does not write. Persisting derived values would be
an optimization, never a correctness requirement.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from cashflow.models.ledger import (
    Account,
    DailySpendingAverage,
    IncomeRule,
    RecurringExpense,
    Transaction,
)
from cashflow.models.audit import AuditEvent


class ForecastStoreInterface(ABC):
    """
    Abstract interface for the ledger data the forecasting core reads.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods. Date ranges are inclusive on both
    ends and compared as UTC calendar dates.
    """

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """
        Retrieve an account by its ID.

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    def list_income_rules(self, account_id: int) -> list[IncomeRule]:
        """List the income rules of an account, in creation order."""
        pass

    @abstractmethod
    def list_recurring_expenses(
        self,
        account_id: int,
        variable_only: bool = False,
    ) -> list[RecurringExpense]:
        """
        List the recurring expenses of an account, in creation order.

        Args:
            account_id: Owning account
            variable_only: Only return expenses flagged variable
        """
        pass

    @abstractmethod
    def get_recurring_expense(self, expense_id: int) -> Optional[RecurringExpense]:
        """
        Retrieve a recurring expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List an account's transactions, oldest first.

        Args:
            account_id: Owning account
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
        """
        pass

    @abstractmethod
    def list_expense_transactions(
        self,
        expense_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List transactions linked to one recurring expense, oldest first.

        Args:
            expense_id: The recurring expense the transactions actualize
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
        """
        pass

    @abstractmethod
    def list_daily_averages(self, expense_id: int) -> list[DailySpendingAverage]:
        """List the daily spending shape rows of one recurring expense."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events of one forecasting request, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
    ):
        super().__init__(message)
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
