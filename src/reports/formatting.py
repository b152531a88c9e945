"""Currency definitions and display formatting."""

from typing import List
from pydantic import BaseModel

from shared.exceptions import ValidationError


class Currency(BaseModel):
    """Display rules for one currency."""

    code: str
    name: str
    symbol: str
    symbol_position: str = 'before'
    decimal_places: int = 2
    decimal_separator: str = '.'
    thousands_separator: str = ','


SUPPORTED_CURRENCIES: List[Currency] = [
    Currency(code='USD', name='US Dollar', symbol='$'),
    Currency(code='EUR', name='Euro', symbol='€'),
    Currency(code='GBP', name='British Pound', symbol='£'),
    Currency(code='JPY', name='Japanese Yen', symbol='¥', decimal_places=0),
    Currency(code='CAD', name='Canadian Dollar', symbol='C$'),
    Currency(code='AUD', name='Australian Dollar', symbol='A$'),
    Currency(code='INR', name='Indian Rupee', symbol='₹'),
]


def get_currency(code: str) -> Currency:
    """
    Look up a supported currency by code.

    Raises:
        ValidationError: If the currency is not supported
    """
    for currency in SUPPORTED_CURRENCIES:
        if currency.code == (code or '').upper():
            return currency

    codes = ', '.join(c.code for c in SUPPORTED_CURRENCIES)
    raise ValidationError(f"Unsupported currency. Must be one of: {codes}")


def round_amount(value: float, places: int = 2) -> float:
    """Round a computed value for display. Never round before aggregating."""
    return round(value, places)


def format_amount(amount: float, currency: Currency) -> str:
    """
    Format an amount for display, e.g. "$1,234.50" or "¥1,235".

    Args:
        amount: Amount to format
        currency: Display rules

    Returns:
        Formatted string
    """
    sign = '-' if round(amount, currency.decimal_places) < 0 else ''
    fixed = f"{abs(amount):,.{currency.decimal_places}f}"
    integer, _, decimal = fixed.partition('.')

    integer = integer.replace(',', currency.thousands_separator)
    number = f"{integer}{currency.decimal_separator}{decimal}" if decimal else integer

    if currency.symbol_position == 'before':
        return f"{sign}{currency.symbol}{number}"
    return f"{sign}{number}{currency.symbol}"
