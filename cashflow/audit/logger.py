"""
Audit Logger

DESIGN DECISION: Every forecasting request leaves a trail.
This provides:
1. Traceability of which fallbacks produced a number
2. Debugging capability
3. A history the user can inspect next to their ledger

The audit logger:
- Gracefully handles failures (doesn't break a forecast if logging fails)
- Supports correlation IDs to trace all events of one request
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cashflow.models.audit import AuditEvent, AuditEventBuilder
from cashflow.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Module-level structured logger."""
    return structlog.get_logger(name)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("cashflow.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_forecast_generated(
        self,
        account_id: int,
        year: int,
        month: int,
        days: int,
        min_balance: float,
        days_below_safe_min: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a completed month simulation."""
        self.log(AuditEventBuilder.forecast_generated(
            account_id=account_id,
            year=year,
            month=month,
            days=days,
            min_balance=min_balance,
            days_below_safe_min=days_below_safe_min,
            correlation_id=correlation_id,
        ))

    def log_chain_truncated(
        self,
        account_id: int,
        requested: str,
        chain_start: str,
        max_chain_months: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the date-floor guard kicking in."""
        self.log(AuditEventBuilder.forecast_chain_truncated(
            account_id=account_id,
            requested=requested,
            chain_start=chain_start,
            max_chain_months=max_chain_months,
            correlation_id=correlation_id,
        ))

    def log_opening_balance_fallback(
        self,
        account_id: int,
        year: int,
        month: int,
        starting_balance: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a month opened with the starting balance instead of a carried one."""
        self.log(AuditEventBuilder.opening_balance_fallback(
            account_id=account_id,
            year=year,
            month=month,
            starting_balance=starting_balance,
            correlation_id=correlation_id,
        ))

    def log_six_month_forecast(
        self,
        account_id: int,
        start: str,
        lowest_balance: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.six_month_forecast_generated(
            account_id=account_id,
            start=start,
            lowest_balance=lowest_balance,
            correlation_id=correlation_id,
        ))

    def log_estimates_computed(
        self,
        account_id: int,
        year: int,
        month: int,
        estimates: dict[int, float],
        fallbacks: list[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log variable expense estimates, including insufficient-history fallbacks."""
        self.log(AuditEventBuilder.estimates_computed(
            account_id=account_id,
            year=year,
            month=month,
            estimates=estimates,
            fallbacks=fallbacks,
            correlation_id=correlation_id,
        ))

    def log_period_trend(
        self,
        expense_id: int,
        trend_label: str,
        trend_ratio: float,
        predicted_full_period_spend: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.period_trend_computed(
            expense_id=expense_id,
            trend_label=trend_label,
            trend_ratio=trend_ratio,
            predicted_full_period_spend=predicted_full_period_spend,
            correlation_id=correlation_id,
        ))

    def log_trends_analyzed(
        self,
        account_id: int,
        alerts: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.trends_analyzed(
            account_id=account_id,
            alerts=alerts,
            correlation_id=correlation_id,
        ))

    def log_recommendations(
        self,
        account_id: int,
        suggestion_count: int,
        adjustment_needed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.recommendations_generated(
            account_id=account_id,
            suggestion_count=suggestion_count,
            adjustment_needed=adjustment_needed,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a request rejected before computation."""
        self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_not_found(
        self,
        entity_type: str,
        entity_id: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entity_not_found(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a forecasting request and pass it
    through all subsequent operations.
    """
    return uuid4()
