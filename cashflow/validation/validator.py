"""
Request Validation

DESIGN DECISION: Invalid input is rejected BEFORE any computation.
A forecast request either passes every check or fails with a single
InvalidInputError naming the first problem.

What counts as invalid:
- Month outside 1..12
- Period start on or after period end
- As-of date before period start
- Period trend requested for a non-variable expense

What does NOT count as invalid:
- Insufficient history (fewer than 3 months): the estimator falls
  back to the configured nominal amount
- A month before the account start: simulated from the starting balance

IMPORTANT: Validation NEVER silently fixes input.
"""

from datetime import date
from typing import Optional

from cashflow.models.ledger import RecurringExpense


class InvalidInputError(ValueError):
    """Request rejected before computation."""
    pass


class ForecastRequestValidator:
    """
    Checks the arguments of the public forecasting operations.

    Stateless; methods raise InvalidInputError and return nothing.
    """

    @staticmethod
    def validate_month(year: int, month: int) -> None:
        if not 1 <= month <= 12:
            raise InvalidInputError(f"Month must be between 1 and 12, got {month}")
        if not 1 <= year <= 9999:
            raise InvalidInputError(f"Year out of range: {year}")

    @staticmethod
    def validate_period(
        period_start: date,
        period_end: date,
        as_of_date: Optional[date] = None,
    ) -> None:
        """
        Validate a billing period.

        Checks:
        - start strictly before end
        - as-of date (when given) not before start
        """
        if period_start >= period_end:
            raise InvalidInputError("Period start must be before period end")

        if as_of_date is not None and as_of_date < period_start:
            raise InvalidInputError("As-of date cannot be before period start")

    @staticmethod
    def validate_variable_expense(expense: RecurringExpense) -> None:
        if not expense.is_variable:
            raise InvalidInputError(
                f"Period trend forecast is only applicable to variable expenses "
                f"(expense {expense.id} is fixed)"
            )
