"""
Display helpers for listings: money in cents, availability windows, titles.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
RANGE_SEPARATOR = " – "

DateLike = Union[date, datetime, str]


def price_to_cents(price: Union[str, int, float, Decimal]) -> int:
    """Convert a price in whole currency units to integer cents, rounding half up"""
    try:
        amount = Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid price: {price!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid price: {price!r}")
    if amount < 0:
        raise ValueError("Price cannot be negative")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_price(cents: int) -> str:
    """Whole-unit display string for a price stored in cents (120050 -> "1201")"""
    units = (Decimal(cents) / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return str(int(units))


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def format_date(value: DateLike, include_year: bool = True, include_month: bool = True) -> str:
    """en-GB short style: "5 Jan 2025" """
    d = _as_date(value)
    parts = [str(d.day)]
    if include_month:
        parts.append(MONTH_ABBR[d.month - 1])
    if include_year:
        parts.append(str(d.year))
    return " ".join(parts)


def format_date_range(available_from: Optional[DateLike], available_to: Optional[DateLike]) -> Optional[str]:
    """
    Collapse repeated month/year in an availability window:
    same month -> "5 – 20 Jan 2025", same year -> "5 Jan – 20 Feb 2025",
    otherwise both dates in full. One-sided windows read "From ..." / "Until ...".
    """
    if available_from and available_to:
        start = _as_date(available_from)
        end = _as_date(available_to)
        if start.year == end.year and start.month == end.month:
            return f"{start.day}{RANGE_SEPARATOR}{format_date(end)}"
        if start.year == end.year:
            return f"{format_date(start, include_year=False)}{RANGE_SEPARATOR}{format_date(end)}"
        return f"{format_date(start)}{RANGE_SEPARATOR}{format_date(end)}"
    if available_from:
        return f"From {format_date(available_from)}"
    if available_to:
        return f"Until {format_date(available_to)}"
    return None


def derive_title(location: str, created: Optional[DateLike] = None) -> str:
    """Display title stored with the row: "<location> - dd/mm/yyyy" """
    d = _as_date(created) if created else date.today()
    return f"{location} - {d.strftime('%d/%m/%Y')}"


def extract_city(location: Optional[str]) -> Optional[str]:
    """First comma-separated part of a free-text address, which is usually the city"""
    if not location or not location.strip():
        return None
    return location.split(",")[0].strip() or None
