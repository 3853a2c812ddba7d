"""
app/services/metrics_service.py

Typed, single-metric entry points over the ESG metric formulas.

Every method accepts a frozen input dataclass populated by the caller from
the wizard form state and returns a :class:`MetricResult`.  The arithmetic
itself lives in :mod:`esg_metrics`; this layer adds the metric name, unit,
display string and a short reason when the value is undefined.

No method raises for numeric edge cases.  An undefined metric is reported as
``value=None`` with ``error`` populated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from app.config import MetricsSettings, get_metrics_settings
from app.domain.esg_records import AttendanceRow, MoneyAmount
from esg_metrics import governance, social
from esg_metrics.primitives import coverage_ratio, format_value, is_set
from esg_metrics.validation import attendance_row_exceeds, record_field, validate_breakdown_sum

logger = logging.getLogger(__name__)

_UNIT_SUFFIX: dict[str, str] = {
    "percent": "%",
    "multiple": "×",
    "years": " years",
}


# ---------------------------------------------------------------------------
# Input dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayGapInput:
    """
    Average pay of two groups for one employee group and country row.

    ``avg_group_b`` is the reference group (men in the gender pay gap).
    """

    avg_group_a: float | None
    avg_group_b: float | None


@dataclass(frozen=True)
class InjuryRateInput:
    incident_count: float | None
    hours_worked: float | None


@dataclass(frozen=True)
class TurnoverInput:
    """
    Headcount movement over the reporting period.
    """

    exits: float | None
    headcount_start: float | None
    headcount_end: float | None


@dataclass(frozen=True)
class HireRateInput:
    hires: float | None
    headcount_end: float | None


@dataclass(frozen=True)
class CEOPayRatioInput:
    ceo_pay: MoneyAmount
    median_pay: MoneyAmount


@dataclass(frozen=True)
class AuditorTenureInput:
    """
    Engagement start year of the external auditor.

    ``current_year`` is supplied by the caller so results never depend on
    the wall clock.
    """

    initial_year: int | None
    current_year: int


@dataclass(frozen=True)
class NonAuditFeeInput:
    non_audit_fees: float | None
    total_fees: float | None


@dataclass(frozen=True)
class ResolutionRateInput:
    resolved: float | None
    raised: float | None


@dataclass(frozen=True)
class OwnershipConcentrationInput:
    shareholder_percents: Sequence[float | None]
    top_n: int


@dataclass(frozen=True)
class AttendanceInput:
    """
    Attendance rows for a board or committee.

    Rows without their own ``held`` count use ``fallback_held``.
    """

    rows: Sequence[AttendanceRow | Mapping[str, Any]]
    fallback_held: float | None = None


@dataclass(frozen=True)
class CoverageInput:
    items_with_property: float | None
    total_items: float | None


@dataclass(frozen=True)
class BreakdownInput:
    parts: Sequence[float | None]
    total: float | None


# ---------------------------------------------------------------------------
# Output dataclass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricResult:
    """
    Structured result returned by every metric method.

    ``value`` is ``None`` when the metric is undefined (e.g. a zero or
    missing denominator).  Inspect ``error`` for the reason.
    """

    metric: str
    """Metric name (e.g. ``"turnover_rate"``)."""

    value: float | None
    """Computed value, or ``None`` if the metric is undefined."""

    unit: str
    """Unit of measurement (``"percent"``, ``"ratio"``, ``"multiple"``, ...)."""

    display: str
    """Display string; the placeholder when ``value`` is ``None``."""

    error: str | None = None
    """Short description of why ``value`` is ``None``."""

    warnings: tuple[str, ...] = field(default_factory=tuple)
    """Soft cross-field warnings; they never block the value."""


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class MetricsService:
    """
    Stateless, deterministic ESG metric service.

    Usage::

        service = MetricsService()
        result = service.calculate_turnover_rate(
            TurnoverInput(exits=11, headcount_start=100, headcount_end=120)
        )
        print(result.display)  # 10.0%
    """

    def __init__(self, settings: MetricsSettings | None = None) -> None:
        self._settings = settings or get_metrics_settings()

    # ------------------------------------------------------------------
    # Social
    # ------------------------------------------------------------------

    def calculate_pay_gap(self, data: PayGapInput) -> MetricResult:
        """
        Pay Gap % = (avg_group_b - avg_group_a) / avg_group_b × 100.
        """
        value = social.pay_gap_percent(data.avg_group_a, data.avg_group_b)
        return self._result(
            "pay_gap_percent",
            value,
            "percent",
            reason="reference group average pay must be > 0.",
        )

    def calculate_pay_ratio(self, data: PayGapInput) -> MetricResult:
        value = social.pay_ratio(data.avg_group_a, data.avg_group_b)
        return self._result(
            "pay_ratio",
            value,
            "ratio",
            reason="reference group average pay must be > 0.",
        )

    def calculate_injury_rate(self, data: InjuryRateInput) -> MetricResult:
        """
        Injury Rate = incident_count / hours_worked × hours base.

        The hours base (200,000 by default) comes from settings.
        """
        value = social.injury_rate(
            data.incident_count,
            data.hours_worked,
            hours_base=self._settings.injury_rate_hours_base,
        )
        return self._result(
            "injury_rate",
            value,
            "rate",
            reason="hours_worked must be > 0.",
        )

    def calculate_turnover_rate(self, data: TurnoverInput) -> MetricResult:
        """
        Turnover Rate = exits / ((headcount_start + headcount_end) / 2) × 100.
        """
        average = social.average_headcount(data.headcount_start, data.headcount_end)
        value = social.turnover_rate(data.exits, average)
        return self._result(
            "turnover_rate",
            value,
            "percent",
            reason="average headcount must be > 0.",
        )

    def calculate_hire_rate(self, data: HireRateInput) -> MetricResult:
        value = social.hire_rate(data.hires, data.headcount_end)
        return self._result(
            "hire_rate",
            value,
            "percent",
            reason="headcount_end must be > 0.",
        )

    # ------------------------------------------------------------------
    # Governance
    # ------------------------------------------------------------------

    def calculate_ceo_pay_ratio(self, data: CEOPayRatioInput) -> MetricResult:
        """
        CEO Pay Ratio = ceo_pay / median_pay, same currency only.

        A currency mismatch is reported as its own error so the card can
        ask the user to align currencies instead of showing a blank chip.
        """
        value = governance.ceo_pay_ratio(data.ceo_pay, data.median_pay)
        if governance.currency_mismatch(data.ceo_pay, data.median_pay):
            reason = (
                f"currency mismatch: {data.ceo_pay.currency or '(none)'} vs "
                f"{data.median_pay.currency or '(none)'}."
            )
        elif not is_set(data.ceo_pay.amount):
            reason = "ceo_pay amount is not set."
        else:
            reason = "median_pay amount must be > 0."
        return self._result("ceo_pay_ratio", value, "multiple", reason=reason)

    def calculate_auditor_tenure(self, data: AuditorTenureInput) -> MetricResult:
        value = governance.auditor_tenure(
            data.initial_year,
            data.current_year,
            min_year=self._settings.min_reporting_year,
        )
        reason = (
            f"initial_year must be between {self._settings.min_reporting_year} "
            f"and {data.current_year}."
        )
        return self._result("auditor_tenure", value, "years", reason=reason, digits=0)

    def calculate_non_audit_fee_ratio(self, data: NonAuditFeeInput) -> MetricResult:
        value = governance.non_audit_fee_ratio(data.non_audit_fees, data.total_fees)
        warnings: list[str] = []
        if governance.non_audit_fees_exceed_total(data.non_audit_fees, data.total_fees):
            warnings.append("Non-audit fees cannot exceed total fees.")
        return self._result(
            "non_audit_fee_ratio",
            value,
            "percent",
            reason="total_fees must be > 0.",
            warnings=warnings,
        )

    def calculate_resolution_rate(self, data: ResolutionRateInput) -> MetricResult:
        value = governance.resolution_rate(data.resolved, data.raised)
        warnings: list[str] = []
        if governance.resolved_exceeds_raised(data.resolved, data.raised):
            warnings.append("Resolved concerns cannot exceed raised concerns.")
        return self._result(
            "resolution_rate",
            value,
            "percent",
            reason="raised must be > 0.",
            warnings=warnings,
        )

    def calculate_ownership_concentration(
        self, data: OwnershipConcentrationInput
    ) -> MetricResult:
        """
        Σ of the ``top_n`` largest holdings.  Always defined (0 when empty).
        """
        value = governance.ownership_concentration(data.shareholder_percents, data.top_n)
        warnings: list[str] = []
        if governance.shareholding_exceeds_total(data.shareholder_percents):
            warnings.append("Shareholdings sum to more than 100%.")
        return self._result(
            f"ownership_top{data.top_n}",
            value,
            "percent",
            warnings=warnings,
        )

    def calculate_attendance_rate(self, data: AttendanceInput) -> MetricResult:
        value = governance.attendance_rate(data.rows, data.fallback_held)
        warnings = [
            f"Row {index + 1}: attended cannot exceed held."
            for index, row in enumerate(data.rows)
            if _row_exceeds(row, data.fallback_held)
        ]
        return self._result(
            "attendance_rate",
            value,
            "percent",
            reason="no row has a meetings-held count > 0.",
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    def calculate_coverage(self, metric: str, data: CoverageInput) -> MetricResult:
        value = coverage_ratio(data.items_with_property, data.total_items)
        warnings: list[str] = []
        if validate_breakdown_sum([data.items_with_property], data.total_items):
            warnings.append(f"{metric}: covered items exceed the total.")
        return self._result(
            metric,
            value,
            "percent",
            reason="total_items must be > 0.",
            warnings=warnings,
        )

    def check_breakdown(self, metric: str, data: BreakdownInput) -> bool:
        """
        Return True when the breakdown exceeds its total.  Logged, never raised.
        """
        exceeds = validate_breakdown_sum(data.parts, data.total)
        if exceeds:
            logger.info(
                "Breakdown %r exceeds its total: parts=%r total=%r",
                metric,
                list(data.parts),
                data.total,
            )
        return exceeds

    def format(self, value: float | None, unit: str, *, digits: int | None = None) -> str:
        """
        Render *value* for display in *unit*; the sentinel becomes the placeholder.
        """
        if digits is None:
            digits = (
                self._settings.percent_digits
                if unit == "percent"
                else self._settings.ratio_digits
            )
        return format_value(
            value,
            _UNIT_SUFFIX.get(unit, ""),
            digits=digits,
            placeholder=self._settings.display_placeholder,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _result(
        self,
        metric: str,
        value: float | None,
        unit: str,
        *,
        reason: str = "",
        warnings: Sequence[str] = (),
        digits: int | None = None,
    ) -> MetricResult:
        if value is None:
            logger.warning("%s undefined: %s", metric, reason)
            return MetricResult(
                metric=metric,
                value=None,
                unit=unit,
                display=self._settings.display_placeholder,
                error=f"Undefined: {reason}" if reason else "Undefined.",
                warnings=tuple(warnings),
            )
        logger.debug("%s computed: %.6f %s", metric, value, unit)
        return MetricResult(
            metric=metric,
            value=value,
            unit=unit,
            display=self.format(value, unit, digits=digits),
            warnings=tuple(warnings),
        )


def _row_exceeds(row: Any, fallback_held: float | None) -> bool:
    return attendance_row_exceeds(
        record_field(row, "attended"), record_field(row, "held"), fallback_held
    )
