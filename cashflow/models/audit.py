"""
Audit Models for Cashflow Forecast

Every forecast computation leaves a trail: which month was simulated,
which fallbacks kicked in, what was rejected and why.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Fallbacks that are *not* errors (insufficient history, opening balance
taken from the starting balance) are still recorded, because they are
the usual explanation for a surprising number.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Balance forecasting
    FORECAST_GENERATED = "forecast_generated"
    FORECAST_CHAIN_TRUNCATED = "forecast_chain_truncated"
    OPENING_BALANCE_FALLBACK = "opening_balance_fallback"
    SIX_MONTH_FORECAST_GENERATED = "six_month_forecast_generated"

    # Estimation
    ESTIMATES_COMPUTED = "estimates_computed"
    PERIOD_TREND_COMPUTED = "period_trend_computed"

    # Analysis
    TRENDS_ANALYZED = "trends_analyzed"
    RECOMMENDATIONS_GENERATED = "recommendations_generated"

    # Rejections
    VALIDATION_FAILED = "validation_failed"
    ENTITY_NOT_FOUND = "entity_not_found"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'expense')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events of one forecasting request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.forecast_generated(account_id, 2025, 1, ...)
    """

    @staticmethod
    def forecast_generated(
        account_id: int,
        year: int,
        month: int,
        days: int,
        min_balance: float,
        days_below_safe_min: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_GENERATED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Forecast generated for {year}-{month:02d}",
            details={
                "year": year,
                "month": month,
                "days": days,
                "min_balance": min_balance,
                "days_below_safe_min": days_below_safe_min,
            },
        )

    @staticmethod
    def forecast_chain_truncated(
        account_id: int,
        requested: str,
        chain_start: str,
        max_chain_months: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_CHAIN_TRUNCATED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=(
                f"Balance chain for {requested} exceeds {max_chain_months} months; "
                f"restarting from starting balance at {chain_start}"
            ),
            details={
                "requested": requested,
                "chain_start": chain_start,
                "max_chain_months": max_chain_months,
            },
        )

    @staticmethod
    def opening_balance_fallback(
        account_id: int,
        year: int,
        month: int,
        starting_balance: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPENING_BALANCE_FALLBACK,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=(
                f"{year}-{month:02d} precedes the account start; "
                "opening with the starting balance"
            ),
            details={
                "year": year,
                "month": month,
                "starting_balance": starting_balance,
            },
        )

    @staticmethod
    def six_month_forecast_generated(
        account_id: int,
        start: str,
        lowest_balance: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIX_MONTH_FORECAST_GENERATED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Six-month forecast generated from {start}",
            details={
                "start": start,
                "lowest_balance": lowest_balance,
            },
        )

    @staticmethod
    def estimates_computed(
        account_id: int,
        year: int,
        month: int,
        estimates: dict[int, float],
        fallbacks: list[int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ESTIMATES_COMPUTED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=(
                f"Estimated {len(estimates)} variable expenses for {year}-{month:02d}"
            ),
            details={
                "estimates": {str(k): v for k, v in estimates.items()},
                "insufficient_history": fallbacks,
            },
        )

    @staticmethod
    def period_trend_computed(
        expense_id: int,
        trend_label: str,
        trend_ratio: float,
        predicted_full_period_spend: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_TREND_COMPUTED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Period trend computed: {trend_label}",
            details={
                "trend_ratio": trend_ratio,
                "predicted_full_period_spend": predicted_full_period_spend,
            },
        )

    @staticmethod
    def trends_analyzed(
        account_id: int,
        alerts: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRENDS_ANALYZED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Expense trends analyzed with {alerts} alerts",
            details={"alerts": alerts},
        )

    @staticmethod
    def recommendations_generated(
        account_id: int,
        suggestion_count: int,
        adjustment_needed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATIONS_GENERATED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Generated {suggestion_count} suggestions",
            details={
                "suggestion_count": suggestion_count,
                "adjustment_needed": adjustment_needed,
            },
        )

    @staticmethod
    def validation_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected {operation} request",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def entity_not_found(
        entity_type: str,
        entity_id: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {entity_id} not found",
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
