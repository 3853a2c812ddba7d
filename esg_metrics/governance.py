"""
esg_metrics/governance.py

Governance metric formula implementation.

Expected inputs
---------------
current_year : int
    Reporting year supplied by the caller.  The engine never reads a clock.
executive_remuneration : dict
    ``ceo_pay`` and ``median_pay`` money amounts (``{"amount", "currency"}``)
    and ``esg_metrics`` rows carrying ``weight_pct``.
auditor : dict
    ``external_auditor`` (``initial_year``, ``latest_rotation_year``),
    ``fees`` (``total``, ``non_audit``) and ``critical_concerns``
    (``raised``, ``resolved``).
ownership : dict
    ``top_shareholders`` rows carrying ``pct`` and ``is_listed_equity``.
governance_body : dict
    ``directors`` rows (``independence``, ``gender``, ``tenure_years``,
    ``meetings_held``, ``meetings_attended``) and ``meetings_held_total``.
committees : dict
    One block per committee (``audit``, ``remuneration``, ``nomination``,
    ``esg``) with ``meetings_held`` and ``attendance`` rows
    (``attended``, ``held``).
ethics : dict
    ``policies`` (one ``{"exists": bool}`` per policy topic), ``incidents``
    counts and ``penalties`` (``non_monetary_count``, ``fines_amount``).
related_party : dict
    ``rows`` carrying an ``amount`` money amount, ``arms_length`` and
    ``independent_approval`` (``"yes"`` / ``"no"``).

Formulas
--------
CEO Pay Ratio        = ceo_pay / median_pay            (same currency only)
Auditor Tenure       = current_year - initial_year     (1900 ≤ initial ≤ current)
Non-audit Fee Ratio  = non_audit_fees / total_fees × 100
Resolution Rate      = resolved / raised × 100
Ownership Top-N      = Σ N largest shareholder percentages
Attendance Rate      = Σ min(attended, held) / Σ held × 100
Policy Coverage      = policies present / policy topics × 100
Related-party Total  = Σ amounts per currency            (never across currencies)

Any missing or non-positive denominator returns None for the affected metric.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from esg_metrics.base import BaseMetricFormula
from esg_metrics.primitives import (
    coverage_ratio,
    is_set,
    mapping_rows,
    mean,
    median,
    numbers,
    percentage,
    safe_divide,
    sum_fields,
    to_number,
)
from esg_metrics.money import (
    currencies_match,
    currency_mismatch,
    money_parts,
    totals_by_currency,
)
from esg_metrics.validation import attendance_row_exceeds, exceeds_total, record_field

_SENTINEL = None  # value stored when a metric cannot be computed

MIN_REPORTING_YEAR = 1900
MAJORITY_THRESHOLD_PCT = 50.0
CONCENTRATION_TOP_N = (1, 3, 5, 10)
COMMITTEES = ("audit", "remuneration", "nomination", "esg")
ETHICS_POLICIES = (
    "code_of_conduct",
    "anti_corruption",
    "conflict_of_interest",
    "whistleblowing",
    "related_party",
    "gifts_hospitality",
    "data_privacy",
)
INCIDENT_TYPES = ("corruption", "fraud", "data_privacy", "other")


class GovernanceMetricFormula(BaseMetricFormula):
    """
    Deterministic governance metrics with safe division-by-zero handling.

    All arithmetic is self-contained.  No I/O, no logging, no side effects.
    """

    section = "governance"

    def __init__(self, *, min_year: int = MIN_REPORTING_YEAR) -> None:
        self._min_year = min_year

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute remuneration, audit, ownership, board, committee and ethics
        metrics from a governance section snapshot.

        ``inputs["current_year"]`` must be provided by the caller; year-based
        metrics are None without it.
        """
        current_year = inputs.get("current_year")
        remuneration = _block(inputs, "executive_remuneration")
        auditor = _block(inputs, "auditor")
        ownership = _block(inputs, "ownership")
        body = _block(inputs, "governance_body")
        committees = _block(inputs, "committees")
        ethics = _block(inputs, "ethics")
        related_party = _block(inputs, "related_party")

        result: dict[str, Any] = {}

        ceo_pay = remuneration.get("ceo_pay")
        median_pay = remuneration.get("median_pay")
        result["ceo_pay_ratio"] = ceo_pay_ratio(ceo_pay, median_pay)
        result["ceo_pay_currency_mismatch"] = currency_mismatch(ceo_pay, median_pay)
        weights = [row.get("weight_pct") for row in mapping_rows(remuneration.get("esg_metrics"))]
        result["esg_weighting_total"] = esg_weighting_total(weights)
        result["esg_weighting_exceeds"] = esg_weighting_exceeds_100(weights)

        external = _block(auditor, "external_auditor")
        fees = _block(auditor, "fees")
        concerns = _block(auditor, "critical_concerns")
        initial_year = external.get("initial_year")
        rotation_year = external.get("latest_rotation_year")
        result["auditor_tenure"] = auditor_tenure(
            initial_year, current_year, min_year=self._min_year
        )
        result["auditor_initial_year_invalid"] = is_set(initial_year) and not year_in_range(
            initial_year, current_year, min_year=self._min_year
        )
        result["auditor_rotation_year_invalid"] = is_set(rotation_year) and not year_in_range(
            rotation_year, current_year, min_year=self._min_year
        )
        result["non_audit_fee_ratio"] = non_audit_fee_ratio(fees.get("non_audit"), fees.get("total"))
        result["non_audit_fees_exceed_total"] = non_audit_fees_exceed_total(
            fees.get("non_audit"), fees.get("total")
        )
        result["concerns_resolution_rate"] = resolution_rate(
            concerns.get("resolved"), concerns.get("raised")
        )
        result["concerns_resolved_exceeds_raised"] = resolved_exceeds_raised(
            concerns.get("resolved"), concerns.get("raised")
        )

        percents = [row.get("pct") for row in mapping_rows(ownership.get("top_shareholders"))]
        for top_n in CONCENTRATION_TOP_N:
            result[f"ownership_top{top_n}"] = ownership_concentration(percents, top_n)
        result["majority_owner"] = majority_owner(percents)
        result["shareholding_exceeds_total"] = bool(
            ownership.get("is_listed_equity") is True and shareholding_exceeds_total(percents)
        )

        directors = mapping_rows(body.get("directors"))
        meetings_total = body.get("meetings_held_total")
        composition = board_composition(directors, meetings_total)
        result.update(composition)
        result["director_attendance_exceeds"] = any(
            attendance_row_exceeds(
                d.get("meetings_attended"), d.get("meetings_held"), meetings_total
            )
            for d in directors
        )

        for key in COMMITTEES:
            committee = _block(committees, key)
            rows = mapping_rows(committee.get("attendance"))
            held = committee.get("meetings_held")
            result[f"committee_{key}_attendance_rate"] = attendance_rate(rows, held)
            result[f"committee_{key}_attendance_exceeds"] = any(
                attendance_row_exceeds(row.get("attended"), row.get("held"), held)
                for row in rows
            )

        policies = _block(ethics, "policies")
        result["policy_coverage"] = policy_coverage(
            _block(policies, name).get("exists") for name in ETHICS_POLICIES
        )
        incidents = _block(ethics, "incidents")
        result["total_incidents"] = total_incidents(*(incidents.get(t) for t in INCIDENT_TYPES))
        penalties = _block(ethics, "penalties")
        result["sanctions_count"] = sanctions_count(
            penalties.get("non_monetary_count"), penalties.get("fines_amount")
        )

        related_rows = mapping_rows(related_party.get("rows"))
        result["related_party_totals"] = totals_by_currency(row.get("amount") for row in related_rows)
        result["related_party_red_flags"] = related_party_red_flags(related_rows)

        return result


# ---------------------------------------------------------------------------
# Remuneration
# ---------------------------------------------------------------------------


def ceo_pay_ratio(ceo_pay: Any, median_pay: Any) -> float | None:
    """
    CEO Pay Ratio = ceo_pay / median_pay.

    Returns None when either amount is unset, median_pay ≤ 0, or the
    currencies differ (or are blank).
    """
    ceo_amount, _ = money_parts(ceo_pay)
    median_amount, _ = money_parts(median_pay)
    if not (is_set(ceo_amount) and is_set(median_amount)):
        return _SENTINEL
    if not currencies_match(ceo_pay, median_pay):
        return _SENTINEL
    return safe_divide(ceo_amount, median_amount)


def esg_weighting_total(weights: Iterable[Any]) -> float | None:
    """
    Σ ESG-linked weighting percentages of variable pay.

    Returns None when no ESG metrics are listed.
    """
    items = list(weights or [])
    if not items:
        return _SENTINEL
    return sum_fields(*items)


def esg_weighting_exceeds_100(weights: Iterable[Any]) -> bool:
    total = esg_weighting_total(weights)
    return total is not None and total > 100


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


def year_in_range(year: Any, current_year: Any, *, min_year: int = MIN_REPORTING_YEAR) -> bool:
    """True when *year* is set and lies in ``[min_year, current_year]``."""
    if not (is_set(year) and is_set(current_year)):
        return False
    return min_year <= to_number(year) <= to_number(current_year)


def auditor_tenure(
    initial_year: Any,
    current_year: Any,
    *,
    min_year: int = MIN_REPORTING_YEAR,
) -> float | None:
    """
    Auditor Tenure = current_year - initial_year.

    Returns None when initial_year is unset or outside
    ``[min_year, current_year]``.
    """
    if not year_in_range(initial_year, current_year, min_year=min_year):
        return _SENTINEL
    return to_number(current_year) - to_number(initial_year)


def non_audit_fee_ratio(non_audit_fees: Any, total_fees: Any) -> float | None:
    """
    Non-audit Fee Ratio = non_audit_fees / total_fees × 100.

    Returns None when total_fees is unset or ≤ 0.
    """
    return percentage(non_audit_fees, total_fees)


def non_audit_fees_exceed_total(non_audit_fees: Any, total_fees: Any) -> bool:
    return exceeds_total(non_audit_fees, total_fees)


def resolution_rate(resolved: Any, raised: Any) -> float | None:
    """
    Resolution Rate = resolved / raised × 100.

    Returns None when raised is unset or ≤ 0.
    """
    return percentage(resolved, raised)


def resolved_exceeds_raised(resolved: Any, raised: Any) -> bool:
    return exceeds_total(resolved, raised)


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


def ownership_concentration(shareholder_percents: Iterable[Any], top_n: Any) -> float:
    """
    Σ of the *top_n* largest shareholder percentages.

    Unset percentages count as 0.  *top_n* is coerced like any other field
    and truncated to a whole count; empty input or a count ≤ 0 gives 0.
    """
    count = int(to_number(top_n))
    if count <= 0:
        return 0.0
    ordered = sorted((to_number(p) for p in shareholder_percents or []), reverse=True)
    return sum_fields(*ordered[:count])


def majority_owner(shareholder_percents: Iterable[Any]) -> bool:
    """True when any single holder owns at least 50 %."""
    return max((to_number(p) for p in shareholder_percents or []), default=0.0) >= (
        MAJORITY_THRESHOLD_PCT
    )


def shareholding_exceeds_total(shareholder_percents: Iterable[Any]) -> bool:
    return sum_fields(*(shareholder_percents or [])) > 100.000001


# ---------------------------------------------------------------------------
# Board & committees
# ---------------------------------------------------------------------------


def attendance_rate(rows: Iterable[Any], fallback_held: Any = None) -> float | None:
    """
    Attendance Rate = Σ min(attended, held) / Σ held × 100.

    Each row uses its own ``held`` count, or *fallback_held* when unset.
    Rows whose effective held count is not positive are skipped; attended
    counts are capped at held.  Returns None when no row qualifies.
    """
    total_held = 0.0
    total_attended = 0.0
    for row in rows or []:
        held_value = record_field(row, "held")
        held = to_number(held_value if held_value is not None else fallback_held)
        if held <= 0:
            continue
        total_held += held
        total_attended += min(to_number(record_field(row, "attended")), held)
    return percentage(total_attended, total_held)


def board_composition(
    directors: Iterable[Mapping[str, Any]],
    meetings_held_total: Any = None,
) -> dict[str, float | None]:
    """
    Board size, independence and gender shares, tenure statistics and
    overall meeting attendance for a list of director rows.
    """
    directors = mapping_rows(list(directors or []))
    board_size = len(directors)
    independent = sum(1 for d in directors if d.get("independence") == "independent")
    women = sum(1 for d in directors if d.get("gender") == "woman")
    tenures = [t for t in numbers(d.get("tenure_years") for d in directors) if t >= 0]
    attendance_rows = [
        {"held": d.get("meetings_held"), "attended": d.get("meetings_attended")}
        for d in directors
    ]
    return {
        "board_size": float(board_size),
        "board_independence": coverage_ratio(independent, board_size),
        "board_women_share": coverage_ratio(women, board_size),
        "board_tenure_mean": mean(tenures),
        "board_tenure_median": median(tenures),
        "board_attendance_rate": attendance_rate(attendance_rows, meetings_held_total),
    }


# ---------------------------------------------------------------------------
# Ethics
# ---------------------------------------------------------------------------


def policy_coverage(flags: Iterable[Any]) -> float | None:
    """Share of policy topics with a policy in place, as a percentage."""
    items = [bool(flag) for flag in flags]
    return coverage_ratio(sum(items), len(items))


def total_incidents(*counts: Any) -> float:
    return sum_fields(*counts)


def sanctions_count(non_monetary_count: Any, fines_amount: Any) -> float:
    """Non-monetary sanctions plus one when any fine was paid."""
    return to_number(non_monetary_count) + (1.0 if to_number(fines_amount) > 0 else 0.0)


# ---------------------------------------------------------------------------
# Related parties
# ---------------------------------------------------------------------------


def related_party_red_flags(rows: Iterable[Any]) -> float:
    """Count of transactions not at arm's length or lacking independent approval."""
    return float(
        sum(
            1
            for row in rows or []
            if record_field(row, "arms_length") == "no"
            or record_field(row, "independent_approval") == "no"
        )
    )


def _block(inputs: Mapping[str, Any] | None, key: str) -> Mapping[str, Any]:
    value = (inputs or {}).get(key)
    return value if isinstance(value, Mapping) else {}
