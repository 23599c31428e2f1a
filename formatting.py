#!/usr/bin/env python3
# formatting.py
from datetime import date, datetime, timezone
from typing import Optional

from babel.dates import format_date as babel_format_date
from babel.numbers import format_currency


def money(amount, currency: str = "INR", locale: str = "en_IN") -> str:
    return format_currency(amount or 0, currency, locale=locale)


def parse_api_date(value) -> Optional[date]:
    """API dates arrive as ISO strings or as epoch milliseconds."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc).date()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def nice_date(value, locale: str = "en_IN", fmt: str = "d MMM yyyy") -> str:
    d = parse_api_date(value)
    if d is None:
        return "-" if value in (None, "") else str(value)
    return babel_format_date(d, fmt, locale=locale)
