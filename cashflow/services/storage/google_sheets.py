"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the initial storage backend because:
1. Non-technical users can view and edit their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- Limited query capabilities (we filter in Python)
- Every read is a full-sheet read, so the forecasting core fetches
  each sheet once per request (see forecasting.context)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import date, datetime
from typing import Any, Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from cashflow.config import get_settings
from cashflow.models.ledger import (
    Account,
    DailySpendingAverage,
    IncomeRule,
    RecurringExpense,
    Transaction,
)
from cashflow.models.audit import AuditEvent, AuditEventType, AuditSeverity
from cashflow.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ForecastStoreInterface,
    StorageError,
)

T = TypeVar("T")

logger = structlog.get_logger(__name__)

# Column headers expected in row 1 of each ledger sheet
ACCOUNT_COLUMNS = [
    "id",
    "name",
    "starting_balance",
    "start_date",
    "safe_min_balance",
    "inflation_rate",
    "default_pay_frequency",
]

INCOME_RULE_COLUMNS = [
    "id",
    "account_id",
    "name",
    "annual_salary",
    "contribution_amount",
    "pay_frequency",
    "pay_days",  # JSON array, e.g. [1, 15]
]

EXPENSE_COLUMNS = [
    "id",
    "account_id",
    "name",
    "amount",
    "day_of_month",
    "category",
    "frequency",
    "is_variable",
    "active_from",
    "active_to",
    "budget_goal",
    "billing_cycle_day",
]

TRANSACTION_COLUMNS = [
    "id",
    "account_id",
    "date",
    "amount",
    "description",
    "category",
    "income_rule_id",
    "recurring_expense_id",
]

DAILY_AVERAGE_COLUMNS = [
    "recurring_expense_id",
    "month",
    "day",
    "daily_average",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_READ_RETRY = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "y"}


def _parse_int_list(value: Any) -> list[int]:
    value = _blank_to_none(value)
    if value is None:
        return []
    if isinstance(value, (int, float)):
        return [int(value)]
    text = str(value).strip()
    if text.startswith("["):
        return [int(v) for v in json.loads(text)]
    return [int(v) for v in text.split(",") if v.strip()]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_READ_RETRY
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.accounts_sheet_name, ACCOUNT_COLUMNS)

    def get_income_rules_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.income_rules_sheet_name, INCOME_RULE_COLUMNS)

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def get_daily_averages_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(
            self._settings.daily_averages_sheet_name,
            DAILY_AVERAGE_COLUMNS,
            rows=2000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsForecastStore(ForecastStoreInterface):
    """
    Read-only Google Sheets implementation of the ledger store.

    One worksheet per record type, header in row 1, one record per row.
    Malformed rows are skipped with a warning rather than failing the
    whole forecast.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -- row conversion -------------------------------------------------------

    @staticmethod
    def _row_to_account(row: dict) -> Account:
        return Account(
            id=int(row["id"]),
            name=str(row.get("name") or ""),
            starting_balance=float(row["starting_balance"]),
            start_date=str(row["start_date"]),
            safe_min_balance=float(_blank_to_none(row.get("safe_min_balance")) or 0),
            inflation_rate=float(_blank_to_none(row.get("inflation_rate")) or 0),
            default_pay_frequency=_blank_to_none(row.get("default_pay_frequency")) or "semi_monthly",
        )

    @staticmethod
    def _row_to_income_rule(row: dict) -> IncomeRule:
        return IncomeRule(
            id=int(row["id"]),
            account_id=int(row["account_id"]),
            name=str(row["name"]),
            annual_salary=float(_blank_to_none(row.get("annual_salary")) or 0),
            contribution_amount=float(row["contribution_amount"]),
            pay_frequency=_blank_to_none(row.get("pay_frequency")) or "semi_monthly",
            pay_days=_parse_int_list(row.get("pay_days")),
        )

    @staticmethod
    def _row_to_expense(row: dict) -> RecurringExpense:
        budget_goal = _blank_to_none(row.get("budget_goal"))
        cycle_day = _blank_to_none(row.get("billing_cycle_day"))
        return RecurringExpense(
            id=int(row["id"]),
            account_id=int(row["account_id"]),
            name=str(row["name"]),
            amount=float(row["amount"]),
            day_of_month=int(row["day_of_month"]),
            category=str(row.get("category") or "other"),
            frequency=_blank_to_none(row.get("frequency")) or "monthly",
            is_variable=_parse_bool(row.get("is_variable", False)),
            active_from=_blank_to_none(row.get("active_from")),
            active_to=_blank_to_none(row.get("active_to")),
            budget_goal=float(budget_goal) if budget_goal is not None else None,
            billing_cycle_day=int(cycle_day) if cycle_day is not None else None,
        )

    @staticmethod
    def _row_to_transaction(row: dict) -> Transaction:
        income_rule_id = _blank_to_none(row.get("income_rule_id"))
        expense_id = _blank_to_none(row.get("recurring_expense_id"))
        return Transaction(
            id=int(row["id"]),
            account_id=int(row["account_id"]),
            date=str(row["date"]),
            amount=float(row["amount"]),
            description=str(row.get("description") or ""),
            category=_blank_to_none(row.get("category")),
            income_rule_id=int(income_rule_id) if income_rule_id is not None else None,
            recurring_expense_id=int(expense_id) if expense_id is not None else None,
        )

    @staticmethod
    def _row_to_daily_average(row: dict) -> DailySpendingAverage:
        return DailySpendingAverage(
            recurring_expense_id=int(row["recurring_expense_id"]),
            month=int(row["month"]),
            day=int(row["day"]),
            daily_average=float(row["daily_average"]),
        )

    # -- reading --------------------------------------------------------------

    @_READ_RETRY
    def _fetch_records(self, get_sheet: Callable[[], gspread.Worksheet]) -> list[dict]:
        try:
            return get_sheet().get_all_records()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read sheet: {e}")

    def _load(
        self,
        get_sheet: Callable[[], gspread.Worksheet],
        convert: Callable[[dict], T],
    ) -> list[T]:
        items = []
        for row in self._fetch_records(get_sheet):
            if not any(str(v).strip() for v in row.values()):
                continue  # Skip empty rows
            try:
                items.append(convert(row))
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("sheet_row_skipped", error=str(e), row=row)
        return items

    def get_account(self, account_id: int) -> Optional[Account]:
        for account in self._load(self._client.get_accounts_sheet, self._row_to_account):
            if account.id == account_id:
                return account
        return None

    def list_income_rules(self, account_id: int) -> list[IncomeRule]:
        rules = self._load(self._client.get_income_rules_sheet, self._row_to_income_rule)
        return [r for r in rules if r.account_id == account_id]

    def list_recurring_expenses(
        self,
        account_id: int,
        variable_only: bool = False,
    ) -> list[RecurringExpense]:
        expenses = self._load(self._client.get_expenses_sheet, self._row_to_expense)
        return [
            e for e in expenses
            if e.account_id == account_id and (e.is_variable or not variable_only)
        ]

    def get_recurring_expense(self, expense_id: int) -> Optional[RecurringExpense]:
        for expense in self._load(self._client.get_expenses_sheet, self._row_to_expense):
            if expense.id == expense_id:
                return expense
        return None

    def _filter_transactions(
        self,
        predicate: Callable[[Transaction], bool],
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> list[Transaction]:
        transactions = self._load(
            self._client.get_transactions_sheet,
            self._row_to_transaction,
        )
        matches = []
        for txn in transactions:
            if not predicate(txn):
                continue
            if date_from and txn.date < date_from:
                continue
            if date_to and txn.date > date_to:
                continue
            matches.append(txn)
        matches.sort(key=lambda t: t.date)
        return matches

    def list_transactions(
        self,
        account_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        return self._filter_transactions(
            lambda t: t.account_id == account_id, date_from, date_to
        )

    def list_expense_transactions(
        self,
        expense_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        return self._filter_transactions(
            lambda t: t.recurring_expense_id == expense_id, date_from, date_to
        )

    def list_daily_averages(self, expense_id: int) -> list[DailySpendingAverage]:
        averages = self._load(
            self._client.get_daily_averages_sheet,
            self._row_to_daily_average,
        )
        return [a for a in averages if a.recurring_expense_id == expense_id]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging should not break the forecast
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

    @_READ_RETRY
    def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _read_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, ValidationError):
                continue
        return events

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
