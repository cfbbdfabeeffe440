"""Shared utilities used across the booking configurator."""

import re
from datetime import date, datetime
from typing import Union


def to_whatsapp_number(value: str) -> str:
    """Convert a local or international number to the digits-only wa.me form.

    Examples:
        >>> to_whatsapp_number("0812-3456-7890")
        '6281234567890'
        >>> to_whatsapp_number("+62 812 3456 7890")
        '6281234567890'
    """
    digits = re.sub(r"[^\d]", "", value)
    if digits.startswith("0"):
        return "62" + digits[1:]
    return digits


def format_price(amount: int) -> str:
    """Format an integer amount with dot thousands separators.

    Examples:
        >>> format_price(5000000)
        '5.000.000'
        >>> format_price(-25000)
        '-25.000'
    """
    return f"{amount:,}".replace(",", ".")


def format_long_date(value: Union[str, date]) -> str:
    """Render an ISO date as '15 January 2024'. Unparseable text is returned as-is."""
    if isinstance(value, str):
        try:
            value = datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            return value
    return f"{value.day} {value.strftime('%B')} {value.year}"
