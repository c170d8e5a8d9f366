"""
Forecast Service

Facade exposing the public forecasting operations:
1. Month balance forecast
2. Variable expense estimates (and the signals behind one)
3. Period trend forecast for a billing cycle
4. Six-month outlook, trends, recommendations
5. Variance and budget-goal analysis

DESIGN DECISION: Every call is one request scope.
- A fresh ForecastContext is built per call, so ledger reads are
  shared within the call and never across calls
- Every call gets a correlation id that ties its audit events together
- Failures are audited by kind, then raised; no partial result is
  returned
"""

from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional
from uuid import UUID

from cashflow.analysis import (
    analyze_budget,
    analyze_trends,
    analyze_variance,
    generate_recommendations,
    generate_six_month_forecast,
)
from cashflow.audit import AuditLogger, configure_logging, create_correlation_id, get_logger
from cashflow.config import ForecastSettings, get_settings
from cashflow.forecasting import (
    BalanceSimulator,
    ForecastContext,
    calculate_period_trend_forecast,
    explain_estimate,
    get_variable_expense_estimates,
)
from cashflow.models.analysis import (
    BudgetAnalysis,
    RecommendationOverview,
    SixMonthForecast,
    TrendAnalysis,
    VarianceAnalysis,
)
from cashflow.models.forecast import EstimationResult, ForecastResult, PeriodTrendForecast
from cashflow.services.storage import (
    ForecastStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsForecastStore,
    InMemoryForecastStore,
    NotFoundError,
    StorageError,
)
from cashflow.validation import ForecastRequestValidator, InvalidInputError

logger = get_logger(__name__)


class ForecastService:
    """
    Entry point for callers (API handlers, CLI, notebooks).

    Usage:
        service = ForecastService(store, AuditLogger())
        forecast = service.generate_forecast(account_id=1, year=2025, month=1)
    """

    def __init__(
        self,
        store: ForecastStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[ForecastSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().forecast

    def _new_context(self) -> ForecastContext:
        return ForecastContext(self._store, self._settings)

    @contextmanager
    def _audited(self, operation: str, correlation_id: UUID) -> Iterator[None]:
        """Audit any failure of an operation, then re-raise."""
        try:
            yield
        except InvalidInputError as e:
            if self._audit_logger:
                self._audit_logger.log_validation_failed(
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except NotFoundError as e:
            if self._audit_logger:
                self._audit_logger.log_not_found(
                    entity_type=e.entity_type or "entity",
                    entity_id=e.entity_id,
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_storage_error(
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except Exception as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation},
                    correlation_id=correlation_id,
                )
            raise

    # -------------------------------------------------------------------------
    # Balance forecast
    # -------------------------------------------------------------------------

    def generate_forecast(
        self,
        account_id: int,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> ForecastResult:
        """
        Day-by-day balance forecast for one month.

        Raises:
            NotFoundError: If the account does not exist
            InvalidInputError: If the month is out of range
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("generate_forecast", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            simulator = BalanceSimulator(self._new_context(), self._audit_logger, correlation_id)
            result = simulator.forecast(account_id, year, month)

        if self._audit_logger:
            self._audit_logger.log_forecast_generated(
                account_id=account_id,
                year=year,
                month=month,
                days=len(result.days),
                min_balance=result.overall_status.min_balance,
                days_below_safe_min=result.overall_status.days_below_safe_min,
                correlation_id=correlation_id,
            )
        return result

    # -------------------------------------------------------------------------
    # Estimation
    # -------------------------------------------------------------------------

    def get_variable_expense_estimates(
        self,
        account_id: int,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> dict[int, float]:
        """
        Predicted amount of every variable expense of an account.

        Expenses with fewer than 3 months of history get their nominal amount.
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("get_variable_expense_estimates", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            context = self._new_context()
            context.account(account_id)
            estimates = get_variable_expense_estimates(context, account_id, year, month)

        if self._audit_logger:
            fallbacks = [
                key[0] for key, result in context.estimates.items() if not result.used_history
            ]
            self._audit_logger.log_estimates_computed(
                account_id=account_id,
                year=year,
                month=month,
                estimates=estimates,
                fallbacks=fallbacks,
                correlation_id=correlation_id,
            )
        return estimates

    def explain_variable_expense_estimate(
        self,
        expense_id: int,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> EstimationResult:
        """Estimate of one expense together with its seasonal, recency and trend signals."""
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("explain_variable_expense_estimate", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            context = self._new_context()
            expense = context.expense(expense_id)
            return explain_estimate(context, expense, year, month)

    def calculate_period_trend_forecast(
        self,
        expense_id: int,
        period_start: date,
        period_end: date,
        current_balance: float,
        as_of_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PeriodTrendForecast:
        """
        In-progress forecast of a variable expense over a billing period.

        Raises:
            InvalidInputError: start >= end, as-of before start, or fixed expense
            NotFoundError: If the expense does not exist
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("calculate_period_trend_forecast", correlation_id):
            ForecastRequestValidator.validate_period(period_start, period_end, as_of_date)
            context = self._new_context()
            expense = context.expense(expense_id)
            result = calculate_period_trend_forecast(
                context,
                expense,
                period_start,
                period_end,
                current_balance,
                as_of_date,
            )

        if self._audit_logger:
            self._audit_logger.log_period_trend(
                expense_id=expense_id,
                trend_label=result.trend_label.value,
                trend_ratio=result.trend_ratio,
                predicted_full_period_spend=result.predicted_full_period_spend,
                correlation_id=correlation_id,
            )
        return result

    # -------------------------------------------------------------------------
    # Aggregators
    # -------------------------------------------------------------------------

    def generate_six_month_forecast(
        self,
        account_id: int,
        start_year: int,
        start_month: int,
        correlation_id: Optional[UUID] = None,
    ) -> SixMonthForecast:
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("generate_six_month_forecast", correlation_id):
            ForecastRequestValidator.validate_month(start_year, start_month)
            context = self._new_context()
            account = context.account(account_id)
            simulator = BalanceSimulator(context, self._audit_logger, correlation_id)
            result = generate_six_month_forecast(simulator, account, start_year, start_month)

        if self._audit_logger:
            self._audit_logger.log_six_month_forecast(
                account_id=account_id,
                start=f"{start_year}-{start_month:02d}",
                lowest_balance=result.overall_status.lowest_balance,
                correlation_id=correlation_id,
            )
        return result

    def analyze_trends(
        self,
        account_id: int,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> TrendAnalysis:
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("analyze_trends", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            context = self._new_context()
            context.account(account_id)
            result = analyze_trends(context, account_id, year, month)

        if self._audit_logger:
            self._audit_logger.log_trends_analyzed(
                account_id=account_id,
                alerts=result.summary.total_alerts,
                correlation_id=correlation_id,
            )
        return result

    def generate_recommendations(
        self,
        account_id: int,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> RecommendationOverview:
        """Six-month outlook, trends and ranked suggestions in one call."""
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("generate_recommendations", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            context = self._new_context()
            account = context.account(account_id)
            simulator = BalanceSimulator(context, self._audit_logger, correlation_id)
            result = generate_recommendations(
                account,
                context.income_rules(account_id),
                generate_six_month_forecast(simulator, account, year, month),
                analyze_trends(context, account_id, year, month),
                year,
                month,
            )

        if self._audit_logger:
            self._audit_logger.log_recommendations(
                account_id=account_id,
                suggestion_count=len(result.suggestions),
                adjustment_needed=result.contribution_analysis.adjustment_needed,
                correlation_id=correlation_id,
            )
        return result

    def analyze_variance(
        self,
        account_id: int,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> VarianceAnalysis:
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("analyze_variance", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            context = self._new_context()
            context.account(account_id)
            return analyze_variance(context, account_id, year, month)

    def analyze_budget(
        self,
        account_id: int,
        year: int,
        month: int,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[BudgetAnalysis]:
        correlation_id = correlation_id or create_correlation_id()

        with self._audited("analyze_budget", correlation_id):
            ForecastRequestValidator.validate_month(year, month)
            context = self._new_context()
            context.account(account_id)
            return analyze_budget(context, account_id, year, month, as_of)


def create_app_components(
    use_storage: bool = True,
) -> tuple[ForecastService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for an empty in-memory ledger.

    Returns:
        (forecast_service, sheets_client)
    """
    configure_logging(get_settings().app.log_level)

    sheets_client = None
    store: ForecastStoreInterface
    audit_logger: AuditLogger

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsForecastStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = InMemoryForecastStore()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        store = InMemoryForecastStore()
        audit_logger = AuditLogger()  # Local-only logging

    return ForecastService(store, audit_logger), sheets_client
