"""
Exceptions for calendarfilter_lite.

Parsing never raises: malformed feeds degrade to fewer recognized events.
The only core failure is an invalid filter rule supplied by the caller, which
is reported while the rule set is being built, before any event is looked at.
Fetch errors are defined next to the fetcher in ``lite_fetcher``.
"""

from typing import Any, Optional


class CalendarFilterError(Exception):
    """Base exception for all calendarfilter errors.

    Args:
        message: Human-readable error description
        details: Optional dictionary containing additional error context

    Example:
        >>> raise CalendarFilterError("Filtering failed", {"stage": "rules"})
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class FilterRuleError(CalendarFilterError):
    """Raised when a filter rule cannot be built, e.g. a malformed regex.

    Args:
        message: Human-readable validation error description
        field_name: Name of the rule list that failed validation
        field_value: The invalid value that caused the error
        validation_errors: List of specific validation error messages
        details: Additional context about the validation failure

    Example:
        >>> raise FilterRuleError(
        ...     "Invalid filter pattern",
        ...     field_name="include_patterns",
        ...     field_value="[unclosed",
        ...     validation_errors=["unterminated character set at position 0"]
        ... )
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        validation_errors: Optional[list[str]] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.field_name = field_name
        self.field_value = field_value
        self.validation_errors = validation_errors or []

        error_details = details or {}
        if field_name:
            error_details["field_name"] = field_name
        if field_value is not None:
            error_details["field_value"] = str(field_value)
        if self.validation_errors:
            error_details["validation_errors"] = self.validation_errors

        super().__init__(message, error_details)
