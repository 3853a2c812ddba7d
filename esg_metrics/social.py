"""
esg_metrics/social.py

Social (workforce) metric formula implementation.

Expected inputs
---------------
pay : dict
    ``rows``: list of ``{"group", "country", "avg_women", "avg_men"}``.
ohs : dict
    ``employees`` / ``non_employees``: ``{"hours_worked",
    "recordable_injuries", "high_consequence_injuries", "fatalities"}``.
movement : dict
    ``headcount_start``, ``headcount_end``, ``new_hires_total``,
    ``exits_total``, and optional ``new_hires_breakdown`` /
    ``exits_breakdown`` with ``by_gender``, ``by_age``, ``by_region``.
training : dict
    ``total_training_hours`` and ``by_gender`` hours
    (``{"women", "men", "undisclosed"}``).
workforce : dict
    ``employment_type`` (``full_time``, ``part_time``), ``gender`` counts,
    ``headcount_by_location`` rows carrying ``headcount``.
collective_bargaining : dict
    ``covered_employees``, ``total_employees``.
community : dict
    ``total_sites``, ``sites_with_assessment``, ``cash_donations`` and
    ``in_kind_donations`` money amounts (``{"amount", "currency"}``).
non_employee_workers : dict
    ``counts`` per worker type (``agency``, ``apprentices``, ``contractors``,
    ``home_workers``, ``interns_volunteers``, ``self_employed``).

Formulas
--------
Pay Ratio          = avg_women / avg_men
Pay Gap %          = (avg_men - avg_women) / avg_men × 100
Injury Rate        = incidents / hours_worked × 200,000
Average Headcount  = (headcount_start + headcount_end) / 2
Turnover Rate      = exits / average_headcount × 100
Hire Rate          = hires / headcount_end × 100
Training Hours     = total_training_hours / headcount_end
FTE                = full_time + 0.5 × part_time
Bargaining Cover   = covered_employees / total_employees × 100
Site Coverage      = sites_with_assessment / total_sites × 100
Donations Total    = cash + in-kind    (entered amounts sharing one currency)
Non-employees      = Σ counts per worker type

Any missing or non-positive denominator returns None for the affected metric.
"""

from __future__ import annotations

from typing import Any, Mapping

from esg_metrics.base import BaseMetricFormula
from esg_metrics.money import combine_money, currency_mismatch, money_parts, totals_by_currency
from esg_metrics.primitives import (
    coverage_ratio,
    is_set,
    mapping_rows,
    percentage,
    safe_divide,
    scale,
    sum_fields,
    to_number,
)
from esg_metrics.validation import breakdown_flags, exceeds_total

_SENTINEL = None  # value stored when a metric cannot be computed

OSHA_HOURS_BASE = 200_000.0
PART_TIME_FTE_RATIO = 0.5
GENDER_BUCKETS = ("women", "men", "undisclosed")
NON_EMPLOYEE_TYPES = (
    "agency",
    "apprentices",
    "contractors",
    "home_workers",
    "interns_volunteers",
    "self_employed",
)


class SocialMetricFormula(BaseMetricFormula):
    """
    Deterministic workforce metrics with safe division-by-zero handling.

    All arithmetic is self-contained.  No I/O, no logging, no side effects.
    """

    section = "social"

    def __init__(
        self,
        *,
        hours_base: float = OSHA_HOURS_BASE,
        part_time_ratio: float = PART_TIME_FTE_RATIO,
    ) -> None:
        self._hours_base = hours_base
        self._part_time_ratio = part_time_ratio

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute pay, safety, movement, training, workforce and bargaining
        metrics from a social section snapshot.

        Returns
        -------
        dict
            Flat metric keys (``float | None``), ``*_exceeds`` warning keys
            (``bool``) and ``pay_comparisons`` (one dict per pay row).
        """
        pay = _block(inputs, "pay")
        ohs = _block(inputs, "ohs")
        movement = _block(inputs, "movement")
        training = _block(inputs, "training")
        workforce = _block(inputs, "workforce")
        bargaining = _block(inputs, "collective_bargaining")
        community = _block(inputs, "community")
        non_employees = _block(inputs, "non_employee_workers")

        result: dict[str, Any] = {}

        result["pay_comparisons"] = [
            {
                "group": row.get("group"),
                "country": row.get("country"),
                "pay_ratio": pay_ratio(row.get("avg_women"), row.get("avg_men")),
                "pay_gap_percent": pay_gap_percent(row.get("avg_women"), row.get("avg_men")),
            }
            for row in mapping_rows(pay.get("rows"))
        ]

        for entity in ("employees", "non_employees"):
            block = _block(ohs, entity)
            hours = block.get("hours_worked")
            for incident in ("recordable_injuries", "high_consequence_injuries", "fatalities"):
                result[f"{entity}_{incident}_rate"] = injury_rate(
                    block.get(incident), hours, hours_base=self._hours_base
                )

        headcount_end = movement.get("headcount_end")
        average = average_headcount(movement.get("headcount_start"), headcount_end)
        result["average_headcount"] = average
        result["turnover_rate"] = turnover_rate(movement.get("exits_total"), average)
        result["hire_rate"] = hire_rate(movement.get("new_hires_total"), headcount_end)
        for kind, total_key in (("new_hires", "new_hires_total"), ("exits", "exits_total")):
            flags = breakdown_flags(
                _breakdown_dimensions(movement.get(f"{kind}_breakdown")),
                movement.get(total_key),
            )
            for dimension, flag in flags.items():
                result[f"{kind}_{dimension}_exceeds"] = flag

        gender_counts = _block(workforce, "gender")
        result["training_hours_per_employee"] = training_hours_per_employee(
            training.get("total_training_hours"), headcount_end
        )
        for bucket, value in average_training_hours_by_group(
            _block(training, "by_gender"), gender_counts
        ).items():
            result[f"training_hours_{bucket}"] = value

        employment = _block(workforce, "employment_type")
        result["fte_total"] = fte_total(
            employment.get("full_time"),
            employment.get("part_time"),
            part_time_ratio=self._part_time_ratio,
        )
        total_headcount = workforce_total(workforce)
        result["total_headcount"] = total_headcount
        for bucket in GENDER_BUCKETS:
            result[f"headcount_{bucket}_share"] = headcount_share(
                gender_counts.get(bucket), total_headcount
            )

        covered = bargaining.get("covered_employees")
        total_employees = bargaining.get("total_employees")
        result["collective_bargaining_coverage"] = collective_bargaining_coverage(
            covered, total_employees
        )
        result["collective_bargaining_exceeds"] = exceeds_total(covered, total_employees)

        total_sites = community.get("total_sites")
        sites_assessed = community.get("sites_with_assessment")
        result["site_assessment_coverage"] = coverage_ratio(sites_assessed, total_sites)
        result["site_assessment_coverage_invalid"] = site_assessment_coverage_invalid(
            sites_assessed, total_sites
        )
        cash = community.get("cash_donations")
        in_kind = community.get("in_kind_donations")
        result["donations_total"] = donations_total(cash, in_kind)
        result["donations_currency_mismatch"] = currency_mismatch(cash, in_kind)
        result["donations_by_currency"] = totals_by_currency([cash, in_kind])

        result["non_employee_total"] = non_employee_total(_block(non_employees, "counts"))

        return result


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def pay_ratio(avg_group_a: Any, avg_group_b: Any) -> float | None:
    """
    Pay Ratio = avg_group_a / avg_group_b.

    Returns None when avg_group_b is unset or ≤ 0.
    """
    return safe_divide(avg_group_a, avg_group_b)


def pay_gap_percent(avg_group_a: Any, avg_group_b: Any) -> float | None:
    """
    Pay Gap % = (avg_group_b - avg_group_a) / avg_group_b × 100.

    Group B is the reference (higher-paid) group.  Negative values mean
    group A earns more.  Returns None when avg_group_b is unset or ≤ 0.
    """
    reference = to_number(avg_group_b)
    return percentage(reference - to_number(avg_group_a), reference)


def injury_rate(
    incident_count: Any,
    hours_worked: Any,
    *,
    hours_base: float = OSHA_HOURS_BASE,
) -> float | None:
    """
    Injury Rate = incident_count / hours_worked × 200,000.

    OSHA-equivalent rate per 100 full-time workers.  Returns None when
    hours_worked is unset or ≤ 0.
    """
    return scale(safe_divide(incident_count, hours_worked), hours_base)


def average_headcount(headcount_start: Any, headcount_end: Any) -> float | None:
    """
    Average Headcount = (headcount_start + headcount_end) / 2.

    Returns None when both ends are zero or unset.
    """
    start = to_number(headcount_start)
    end = to_number(headcount_end)
    if start == 0 and end == 0:
        return _SENTINEL
    return (start + end) / 2


def turnover_rate(exits: Any, avg_headcount: Any) -> float | None:
    """
    Turnover Rate = exits / average_headcount × 100.

    Returns None when the average headcount is unset or ≤ 0.
    """
    return percentage(exits, avg_headcount)


def hire_rate(hires: Any, end_headcount: Any) -> float | None:
    """
    Hire Rate = hires / end_headcount × 100.

    Returns None when end_headcount is unset or ≤ 0.
    """
    return percentage(hires, end_headcount)


def training_hours_per_employee(total_hours: Any, headcount: Any) -> float | None:
    """Average training hours per employee; None when headcount ≤ 0."""
    return safe_divide(total_hours, headcount)


def average_training_hours_by_group(
    hours_by_group: Mapping[str, Any] | None,
    counts_by_group: Mapping[str, Any] | None,
) -> dict[str, float | None]:
    """
    Average hours per head for each group present in *hours_by_group*.

    Groups default to the gender buckets so every key is always reported.
    """
    hours_by_group = hours_by_group or {}
    counts_by_group = counts_by_group or {}
    groups = list(GENDER_BUCKETS) + [g for g in hours_by_group if g not in GENDER_BUCKETS]
    return {
        group: safe_divide(hours_by_group.get(group), counts_by_group.get(group))
        for group in groups
    }


def fte_total(
    full_time: Any,
    part_time: Any,
    *,
    part_time_ratio: float = PART_TIME_FTE_RATIO,
) -> float | None:
    """
    FTE = full_time + part_time_ratio × part_time.

    Returns None when the result is not positive.
    """
    fte = to_number(full_time) + part_time_ratio * to_number(part_time)
    return fte if fte > 0 else _SENTINEL


def workforce_total(workforce: Mapping[str, Any]) -> float:
    """
    Total headcount from location rows, falling back to gender counts.
    """
    rows = mapping_rows(workforce.get("headcount_by_location"))
    from_locations = sum_fields(*(row.get("headcount") for row in rows))
    if from_locations > 0:
        return from_locations
    gender = _block(workforce, "gender")
    return sum_fields(*(gender.get(bucket) for bucket in GENDER_BUCKETS))


def headcount_share(part: Any, total: Any) -> float | None:
    """Share of *total* headcount in one bucket, as a percentage."""
    return percentage(part, total)


def collective_bargaining_coverage(covered: Any, total: Any) -> float | None:
    """
    Bargaining Coverage = covered_employees / total_employees × 100.

    Returns None when total_employees is unset or ≤ 0.
    """
    return percentage(covered, total)


def site_assessment_coverage_invalid(sites_assessed: Any, total_sites: Any) -> bool:
    """True when more sites are assessed than exist (once a site total is entered)."""
    total = to_number(total_sites)
    return total > 0 and to_number(sites_assessed) > total


def donations_total(cash: Any, in_kind: Any) -> float | None:
    """
    Cash + in-kind donations.

    Only amounts with both a value and a currency take part.  A single entered
    amount is its own total; None when nothing is entered or the currencies
    differ.
    """
    entered = [
        money
        for money in (cash, in_kind)
        if is_set(money_parts(money)[0]) and money_parts(money)[1]
    ]
    if not entered:
        return _SENTINEL
    total = {"amount": to_number(money_parts(entered[0])[0]), "currency": money_parts(entered[0])[1]}
    for money in entered[1:]:
        total = combine_money(total, money)
        if total is None:
            return _SENTINEL
    return total["amount"]


def non_employee_total(counts: Mapping[str, Any] | None) -> float:
    """Σ non-employee workers over every worker type; unset counts are 0."""
    counts = counts or {}
    return sum_fields(*(counts.get(kind) for kind in NON_EMPLOYEE_TYPES))


def _block(inputs: Mapping[str, Any] | None, key: str) -> Mapping[str, Any]:
    value = (inputs or {}).get(key)
    return value if isinstance(value, Mapping) else {}


def _breakdown_dimensions(breakdown: Any) -> dict[str, Any]:
    if not isinstance(breakdown, Mapping):
        breakdown = {}
    return {
        "gender": breakdown.get("by_gender"),
        "age": breakdown.get("by_age"),
        "region": breakdown.get("by_region"),
    }
