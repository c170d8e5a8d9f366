"""
Storage Services Package

Provides the abstract data-access contract and concrete implementations.
Google Sheets is the production backend; the in-memory store backs tests.
"""

from cashflow.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ForecastStoreInterface,
    NotFoundError,
    StorageError,
)
from cashflow.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryForecastStore,
)
from cashflow.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsForecastStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ForecastStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryForecastStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsForecastStore",
]
