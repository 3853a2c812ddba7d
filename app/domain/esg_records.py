"""
app/domain/esg_records.py

Value records passed from wizard cards into the metric layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class MoneyAmount:
    """
    A monetary amount with its ISO currency code.

    Two amounts may only be combined when both currency codes are
    non-empty and equal.
    """

    amount: float | None
    currency: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "MoneyAmount":
        data = data or {}
        currency = data.get("currency")
        return cls(
            amount=data.get("amount"),
            currency=currency.strip() if isinstance(currency, str) else "",
        )

    def is_combinable_with(self, other: "MoneyAmount") -> bool:
        return bool(self.currency) and self.currency == other.currency


@dataclass(frozen=True)
class AttendanceRow:
    """
    Meetings attended against meetings held for one person.

    ``held`` is optional; callers pass a body-wide fallback when it is unset.
    """

    attended: float | None
    held: float | None = None
