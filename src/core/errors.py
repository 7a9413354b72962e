"""Errors raised by the analytics core for structurally invalid input."""

from __future__ import annotations

from datetime import date


class InputValidationError(ValueError):
    """Raised when analysis input is malformed (e.g. a negative allocation)."""

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"Invalid {field}: {detail}")


class InvalidRangeError(InputValidationError):
    """Raised when a date range starts after it ends."""

    def __init__(self, start_date: date, end_date: date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            "date range",
            f"start date {start_date.isoformat()} is after end date {end_date.isoformat()}",
        )


def validate_range(start_date: date, end_date: date) -> None:
    """Raise :class:`InvalidRangeError` if *start_date* is after *end_date*."""
    if start_date > end_date:
        raise InvalidRangeError(start_date, end_date)
