"""
esg_metrics/primitives.py

Safe-arithmetic primitives shared by every ESG metric formula.

Every derived indicator in the disclosure cards has the same shape: a part
over a whole, where the whole may legitimately be zero or unknown.  The
helpers here normalise user-entered values and centralise the division
guard so that no formula ever produces NaN, ±inf, or an exception.

Sentinel
--------
``None`` is the single "no meaningful value" result.  It is distinct from
``0.0`` and is rendered as the display placeholder (``"—"``).
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Iterable, Mapping

PLACEHOLDER = "—"

_SENTINEL = None  # value returned when a metric cannot be computed


def to_number(value: Any) -> float:
    """
    Coerce *value* to a finite float.

    ``None``, non-finite numbers, unparsable strings and any other object
    become ``0.0``.  Numeric strings are parsed; booleans count as 0/1.
    """
    if value is None:
        return 0.0
    if isinstance(value, (bool, int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def is_set(value: Any) -> bool:
    """Return True when *value* is a present, finite number (or numeric string)."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return math.isfinite(float(value))
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def safe_divide(numerator: Any, denominator: Any) -> float | None:
    """
    Guarded division.

    Returns ``numerator / denominator`` when the denominator coerces to a
    finite number greater than zero, otherwise ``None``.  A quotient that
    overflows to infinity is also reported as ``None``.
    """
    whole = to_number(denominator)
    if whole <= 0:
        return _SENTINEL
    quotient = to_number(numerator) / whole
    if not math.isfinite(quotient):
        return _SENTINEL
    return quotient


def scale(value: float | None, factor: float) -> float | None:
    """Multiply a possibly-undefined value, keeping the sentinel intact."""
    if value is None:
        return _SENTINEL
    result = value * factor
    return result if math.isfinite(result) else _SENTINEL


def percentage(part: Any, whole: Any) -> float | None:
    """
    Percentage = part / whole × 100.

    Not clamped: hires may legitimately exceed prior headcount.
    """
    return scale(safe_divide(part, whole), 100.0)


def coverage_ratio(items_with_property: Any, total_items: Any) -> float | None:
    """
    Coverage = qualifying items / total items × 100.

    Used for policy coverage, committee attendance, board composition and
    site-assessment coverage.
    """
    return percentage(items_with_property, total_items)


def sum_fields(*values: Any) -> float:
    """Sum any number of numeric fields, counting unset fields as 0."""
    return math.fsum(to_number(value) for value in values)


def numbers(values: Iterable[Any] | None) -> list[float]:
    """Return the set (present, finite) members of *values* as floats."""
    if not values:
        return []
    return [to_number(value) for value in values if is_set(value)]


def mapping_rows(value: Any) -> list[Mapping[str, Any]]:
    """
    Return the mapping members of a row list.

    Anything that is not a list or tuple yields no rows; blank or malformed
    entries (``None``, scalars) are skipped.
    """
    if not isinstance(value, (list, tuple)):
        return []
    return [row for row in value if isinstance(row, Mapping)]


def mean(values: Iterable[float]) -> float | None:
    items = list(values)
    if not items:
        return _SENTINEL
    return math.fsum(items) / len(items)


def median(values: Iterable[float]) -> float | None:
    items = sorted(values)
    if not items:
        return _SENTINEL
    mid = len(items) // 2
    if len(items) % 2:
        return items[mid]
    return (items[mid - 1] + items[mid]) / 2


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def format_value(
    value: float | None,
    suffix: str = "",
    *,
    digits: int = 2,
    placeholder: str = PLACEHOLDER,
) -> str:
    """
    Render *value* with a fixed number of decimals and an optional suffix.

    The sentinel (and anything non-finite) renders as *placeholder*.
    """
    if value is None or not math.isfinite(value):
        return placeholder
    return f"{value:.{digits}f}{suffix}"


def format_percent(value: float | None, *, digits: int = 1, placeholder: str = PLACEHOLDER) -> str:
    """``12.345`` → ``"12.3%"``; ``None`` → ``"—"``."""
    return format_value(value, "%", digits=digits, placeholder=placeholder)


def format_ratio(value: float | None, *, digits: int = 1, placeholder: str = PLACEHOLDER) -> str:
    """``20.0`` → ``"20.0×"``; ``None`` → ``"—"``."""
    return format_value(value, "×", digits=digits, placeholder=placeholder)
