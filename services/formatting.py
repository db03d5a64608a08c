"""Brazilian Portuguese display formatting for dashboard and report values.

The locale is fixed: decimal comma, period as thousands separator and an
``R$`` prefix for currency. Rounding is half-up on the decimal representation
of the value, so ``2.675`` renders as ``2,68``.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float, Decimal]

EMPTY_VALUE = "—"
CURRENCY_SYMBOL = "R$"
UP_ARROW = "↑"
DOWN_ARROW = "↓"

MONTH_NAMES = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)

_DATE_PATTERN = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def _quantize(value: Number, places: int) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        return abs(rounded)
    return rounded


def _group_thousands(digits: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return ".".join(groups)


def _render(amount: Decimal, places: int, trim: bool) -> str:
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):.{places}f}"
    whole, _, fraction = text.partition(".")
    if trim:
        fraction = fraction.rstrip("0")
    body = _group_thousands(whole)
    if fraction:
        body = f"{body},{fraction}"
    return f"{sign}{body}"


def format_integer(value: Number) -> str:
    """``1234.5`` -> ``"1.235"``."""
    return _render(_quantize(value, 0), 0, trim=True)


def format_number(value: Number, max_fraction_digits: int = 2) -> str:
    """``94.25`` -> ``"94,25"``, ``80.0`` -> ``"80"``."""
    return _render(_quantize(value, max_fraction_digits), max_fraction_digits, trim=True)


def format_currency(value: Number) -> str:
    amount = _quantize(value, 2)
    body = _render(abs(amount), 2, trim=False)
    if amount < 0:
        return f"-{CURRENCY_SYMBOL} {body}"
    return f"{CURRENCY_SYMBOL} {body}"


def format_percent(value: Optional[Number]) -> str:
    if value is None:
        return EMPTY_VALUE
    return f"{format_number(value)}%"


def percent_delta(current: float, previous: float) -> Optional[float]:
    """Relative change in percent; ``None`` when there is no baseline."""
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def format_delta(delta: Optional[float]) -> str:
    if delta is None:
        return EMPTY_VALUE
    arrow = UP_ARROW if delta >= 0 else DOWN_ARROW
    return f"{arrow} {format_number(abs(delta))}%"


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def bar_width(value: Optional[float]) -> str:
    """CSS width for a progress bar; uses a decimal point, not the locale comma."""
    if value is None:
        return "0%"
    return f"{clamp_percent(value):g}%"


def format_date(value: Union[date, datetime]) -> str:
    return value.strftime("%d/%m/%Y")


def format_month_long(value: Union[date, datetime]) -> str:
    return f"{MONTH_NAMES[value.month - 1]} de {value.year}"


def format_month_short(value: Union[date, datetime]) -> str:
    return MONTH_NAMES[value.month - 1][:3].capitalize()


def parse_currency(text: Optional[str]) -> Optional[float]:
    """Inverse of :func:`format_currency`; ``None`` for blank or non-numeric text."""
    if text is None:
        return None
    candidate = text.replace(CURRENCY_SYMBOL, "").replace("\u00a0", "").replace(" ", "")
    if not candidate:
        return None
    candidate = candidate.replace(".", "").replace(",", ".")
    try:
        return float(candidate)
    except ValueError:
        return None


def parse_date(text: Optional[str]) -> Optional[date]:
    if not text:
        return None
    match = _DATE_PATTERN.match(text.strip())
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None
