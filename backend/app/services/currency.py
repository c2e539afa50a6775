"""Currency helpers — UZS formatting, parsing and totals for reports."""
import math
import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Optional

from app.config import CURRENCY_SUFFIX

_ZERO = f"0 {CURRENCY_SUFFIX}"

# (threshold, suffix), largest first
_COMPACT_UNITS = [
    (Decimal("1e9"), "mlrd"),
    (Decimal("1e6"), "mln"),
    (Decimal("1e3"), "ming"),
]

_STRIP_PATTERN = re.compile(r"(so['ʻ’]m|UZS|₹|,|\s)", re.IGNORECASE)


def _is_blank(value: Optional[float]) -> bool:
    return value is None or not math.isfinite(value)


def _whole(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _group(amount: Decimal) -> str:
    sign = "-" if amount < 0 else ""
    return sign + f"{abs(int(amount)):,}".replace(",", " ")


def format_currency(value: Optional[float]) -> str:
    """1234567.4 → "1 234 567 so'm". None/NaN → "0 so'm"."""
    if _is_blank(value):
        return _ZERO
    return f"{_group(_whole(value))} {CURRENCY_SUFFIX}"


def format_currency_compact(value: Optional[float]) -> str:
    """1234567 → "1 mln so'm", 15400 → "15 ming so'm", 950 → "950 so'm"."""
    if _is_blank(value):
        return _ZERO
    amount = Decimal(str(value))
    for threshold, suffix in _COMPACT_UNITS:
        if abs(amount) >= threshold:
            scaled = (amount / threshold).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            return f"{_group(scaled)} {suffix} {CURRENCY_SUFFIX}"
    return format_currency(value)


def parse_currency(text: Optional[str]) -> float:
    """Strip grouping, currency symbols and suffixes; unparsable input → 0."""
    if not text:
        return 0.0
    cleaned = _STRIP_PATTERN.sub("", text)
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return 0.0
    if not parsed.is_finite():
        return 0.0
    return float(parsed)


def calculate_total(values: Iterable[Optional[float]]) -> float:
    """Sum of ``values``, skipping None and NaN entries."""
    return sum(v for v in values if not _is_blank(v))
