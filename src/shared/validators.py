"""Validation utilities for the expense tracker application."""

import re
from typing import Any, Optional, Tuple
from datetime import datetime, date, time
from decimal import Decimal, InvalidOperation

from .exceptions import ValidationError


# Suggested expense categories; any non-blank category is accepted
EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Education",
    "Travel",
    "Groceries",
    "Other"
]

MAX_AMOUNT = Decimal('1000000')

MONTH_PATTERN = re.compile(r'^(\d{4})-(0[1-9]|1[0-2])$')


def parse_datetime(value: Any) -> datetime:
    """
    Parse a date-like value into a naive local datetime.

    Accepts datetime, date and ISO-8601 strings ("2024-03-15",
    "2024-03-15T10:30:00", "2024-03-15T10:30:00Z"). Timezone-aware values
    are converted to local time.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid date value: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)

    return parsed


def validate_amount(amount: Any) -> Decimal:
    """
    Validate monetary amount.

    Args:
        amount: Amount to validate

    Returns:
        Validated amount as Decimal

    Raises:
        ValidationError: If amount is invalid
    """
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        raise ValidationError("Amount is required")

    if isinstance(amount, bool):
        raise ValidationError("Invalid amount format")

    try:
        decimal_amount = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount format")

    if not decimal_amount.is_finite():
        raise ValidationError("Invalid amount format")

    if decimal_amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    if decimal_amount > MAX_AMOUNT:
        raise ValidationError("Amount cannot exceed 1,000,000")

    # Ensure at most 2 decimal places
    if decimal_amount.as_tuple().exponent < -2:
        raise ValidationError("Amount can have at most 2 decimal places")

    return decimal_amount


def validate_date(value: Any) -> datetime:
    """
    Validate an expense date.

    Args:
        value: datetime, date or ISO-8601 string

    Returns:
        Validated naive local datetime

    Raises:
        ValidationError: If date is missing or invalid
    """
    if value is None or value == '':
        raise ValidationError("Date is required")

    try:
        return parse_datetime(value)
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")


def validate_category(category: Optional[str]) -> str:
    """
    Validate expense category.

    Args:
        category: Category to validate

    Returns:
        Validated category

    Raises:
        ValidationError: If category is missing
    """
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("Please select a category")

    return category.strip()


def validate_month(month: Optional[str]) -> str:
    """
    Validate a budget month key.

    Args:
        month: Month in YYYY-MM format

    Returns:
        Validated month

    Raises:
        ValidationError: If month is missing or malformed
    """
    if not month:
        raise ValidationError("Month is required")

    if not isinstance(month, str) or not MONTH_PATTERN.match(month):
        raise ValidationError("Invalid month format. Use YYYY-MM")

    return month


def validate_date_range(start: Any, end: Any) -> Tuple[datetime, datetime]:
    """
    Validate an inclusive date range.

    A bare date as the end bound covers the whole of that day.

    Args:
        start: Range start
        end: Range end

    Returns:
        (start, end) as naive local datetimes

    Raises:
        ValidationError: If a bound is missing or start is after end
    """
    if start is None or end is None:
        raise ValidationError("Date range requires both a start and an end")

    try:
        start_dt = parse_datetime(start)
        end_dt = parse_datetime(end)
    except ValueError:
        raise ValidationError("Invalid date range. Use YYYY-MM-DD")

    if _is_whole_day(end):
        end_dt = datetime.combine(end_dt.date(), time.max)

    if start_dt > end_dt:
        raise ValidationError("Date range start must not be after its end")

    return start_dt, end_dt


def _is_whole_day(value: Any) -> bool:
    """Check whether a range bound names a day rather than an instant."""
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return isinstance(value, str) and len(value.strip()) == 10


def sanitize_string(value: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize string input.

    Args:
        value: String to sanitize
        max_length: Optional maximum length

    Returns:
        Sanitized string

    Raises:
        ValidationError: If string is invalid
    """
    if not isinstance(value, str):
        raise ValidationError("Value must be a string")

    # Remove leading/trailing whitespace
    value = value.strip()

    if max_length and len(value) > max_length:
        raise ValidationError(f"Value exceeds maximum length of {max_length}")

    return value
