"""Services package."""

from cashflow.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    ForecastStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsForecastStore,
    InMemoryAuditStorage,
    InMemoryForecastStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "ForecastStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsForecastStore",
    "InMemoryAuditStorage",
    "InMemoryForecastStore",
    "NotFoundError",
    "StorageError",
]
