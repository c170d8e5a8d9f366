"""Validation package."""

from cashflow.validation.validator import ForecastRequestValidator, InvalidInputError

__all__ = ["ForecastRequestValidator", "InvalidInputError"]
