"""
esg_metrics/validation.py

Advisory cross-field checks for progressive data entry.

Every check returns a boolean "violation" flag that the caller renders as an
inline warning.  Nothing here rejects or blocks data: users fill partial
data, and transient inconsistencies are expected.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from esg_metrics.primitives import is_set, sum_fields, to_number


def validate_breakdown_sum(parts: Iterable[Any], total: Any) -> bool:
    """
    Return True when the breakdown parts sum to more than *total*.

    Unset parts count as 0; an unset total counts as 0.
    """
    return sum_fields(*list(parts or [])) > to_number(total)


def validate_row_constraint(attended: Any, held: Any, fallback_held: Any = None) -> bool:
    """
    Return True when *attended* exceeds *held*.

    *fallback_held* replaces a row-level ``held`` that is unset, mirroring
    per-director rows that inherit the body-wide meeting count.
    """
    effective_held = held if held is not None else fallback_held
    return to_number(attended) > to_number(effective_held)


def attendance_row_exceeds(attended: Any, held: Any, fallback_held: Any = None) -> bool:
    """
    Return True when a meeting-attendance row attended more meetings than were held.

    Rows whose effective held count is not positive are not flagged: the
    meetings-held figure has not been entered yet.
    """
    effective_held = held if held is not None else fallback_held
    if to_number(effective_held) <= 0:
        return False
    return validate_row_constraint(attended, effective_held)


def exceeds_total(part: Any, total: Any) -> bool:
    """
    Return True when both values are set and *part* is greater than *total*.

    Unlike :func:`validate_breakdown_sum`, nothing is flagged until the user
    has entered both sides.
    """
    if not (is_set(part) and is_set(total)):
        return False
    return to_number(part) > to_number(total)


def breakdown_flags(breakdown: Mapping[str, Any] | None, total: Any) -> dict[str, bool]:
    """
    Check each breakdown dimension against *total*.

    *breakdown* maps a dimension name to either a mapping of buckets
    (``{"women": 3, "men": 4}``), a list of rows carrying a ``count`` key
    (regions), or a plain list of numbers.
    """
    flags: dict[str, bool] = {}
    for dimension, buckets in (breakdown or {}).items():
        flags[dimension] = validate_breakdown_sum(_bucket_values(buckets), total)
    return flags


def _bucket_values(buckets: Any) -> list[Any]:
    if isinstance(buckets, Mapping):
        return list(buckets.values())
    if not isinstance(buckets, (list, tuple)):
        return []
    values: list[Any] = []
    for item in buckets:
        if isinstance(item, Mapping):
            values.append(item.get("count"))
        else:
            values.append(item)
    return values


def record_field(record: Any, name: str) -> Any:
    """Read *name* from a mapping row or an attribute record; None when absent."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)
