"""
esg_metrics/money.py

Currency-aware helpers for money amounts.

A money amount is a mapping or record carrying ``amount`` and ``currency``.
Two amounts are combinable only when both currency codes are non-empty
(after trimming) and equal; otherwise they are reported separately, never
summed.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from esg_metrics.primitives import is_set, to_number

_SENTINEL = None  # value returned when amounts cannot be combined


def money_parts(money: Any) -> tuple[Any, str]:
    """
    Return ``(amount, currency)`` from a money record or mapping.

    The currency is trimmed; a missing currency is the empty string.
    """
    if money is None:
        return None, ""
    if isinstance(money, Mapping):
        amount, currency = money.get("amount"), money.get("currency")
    else:
        amount, currency = getattr(money, "amount", None), getattr(money, "currency", None)
    if not isinstance(currency, str):
        currency = ""
    return amount, currency.strip()


def currencies_match(first: Any, second: Any) -> bool:
    """True when both money amounts carry the same non-empty currency code."""
    _, currency_a = money_parts(first)
    _, currency_b = money_parts(second)
    return bool(currency_a) and currency_a == currency_b


def currency_mismatch(first: Any, second: Any) -> bool:
    """
    True when both amounts are set but cannot be combined.
    """
    amount_a, _ = money_parts(first)
    amount_b, _ = money_parts(second)
    if not (is_set(amount_a) and is_set(amount_b)):
        return False
    return not currencies_match(first, second)


def combine_money(first: Any, second: Any) -> dict[str, Any] | None:
    """
    Sum two money amounts into ``{"amount", "currency"}``.

    Returns None when either currency is blank or the currencies differ.
    Unset amounts count as 0.
    """
    if not currencies_match(first, second):
        return _SENTINEL
    amount_a, currency = money_parts(first)
    amount_b, _ = money_parts(second)
    return {"amount": to_number(amount_a) + to_number(amount_b), "currency": currency}


def totals_by_currency(amounts: Iterable[Any]) -> list[dict[str, Any]]:
    """
    Total money amounts per currency, in order of first appearance.

    Amounts without a currency, unset amounts and negative amounts are left
    out.
    """
    totals: dict[str, float] = {}
    for money in amounts or []:
        amount, currency = money_parts(money)
        if not currency or not is_set(amount) or to_number(amount) < 0:
            continue
        totals[currency] = totals.get(currency, 0.0) + to_number(amount)
    return [{"currency": currency, "total": total} for currency, total in totals.items()]
