"""
app/services/metrics_orchestrator.py

Section metrics orchestrator.

Wires FormState → section formula → SectionMetricsResponse.  No arithmetic
lives here; every layer retains its own responsibility:

    FormState        – nested wizard values, read by section path
    section formula  – deterministic metric calculation (routed by section)
    response schema  – display strings, warnings and per-row tables

Section routing
---------------
section="social"       → SocialMetricFormula
section="governance"   → GovernanceMetricFormula
section="environment"  → EnvironmentMetricFormula

Failure contract
----------------
- Unknown section                      → raises UnknownSectionError immediately
- Governance without a reporting year  → raises ValueError
- Undefined metrics                    → reported with ``defined=False`` and the
                                         display placeholder; the run completes
- Soft cross-field violations          → reported as warning strings; never raised
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from app.config import MetricsSettings, get_metrics_settings
from app.forms.form_state import FormState
from app.logging_utils import log_event
from app.schemas.metrics import MetricValueResponse, SectionMetricsResponse
from app.services.metrics_service import MetricsService
from esg_metrics.base import BaseMetricFormula
from esg_metrics.environment import EnvironmentMetricFormula
from esg_metrics.governance import GovernanceMetricFormula
from esg_metrics.social import SocialMetricFormula

logger = logging.getLogger(__name__)

# Metrics rendered as percentages; everything else uses the ratio format.
_PERCENT_METRIC_MARKERS: tuple[str, ...] = (
    "rate",
    "share",
    "coverage",
    "percent",
    "independence",
    "ownership_top",
    "weighting",
)
_QUANTITY_SUFFIXES: tuple[str, ...] = ("_injuries_rate", "_fatalities_rate", "_tco2e", "_mwh")
_QUANTITY_METRICS: frozenset[str] = frozenset({"donations_total"})
_PERCENT_METRICS: frozenset[str] = frozenset({"non_audit_fee_ratio"})
_COUNT_METRICS: frozenset[str] = frozenset(
    {
        "board_size",
        "total_incidents",
        "sanctions_count",
        "total_headcount",
        "average_headcount",
        "non_employee_total",
        "related_party_red_flags",
    }
)

_WARNING_MESSAGES: dict[str, str] = {
    "collective_bargaining_exceeds": "Covered employees exceed total employees.",
    "ceo_pay_currency_mismatch": "CEO pay and median pay use different currencies.",
    "esg_weighting_exceeds": "ESG-linked weightings sum to more than 100%.",
    "auditor_initial_year_invalid": "Auditor initial year is outside the valid range.",
    "auditor_rotation_year_invalid": "Auditor rotation year is outside the valid range.",
    "non_audit_fees_exceed_total": "Non-audit fees exceed total fees.",
    "concerns_resolved_exceeds_raised": "Resolved concerns exceed raised concerns.",
    "shareholding_exceeds_total": "Listed shareholdings sum to more than 100%.",
    "director_attendance_exceeds": "A director attended more meetings than were held.",
    "target_year_invalid": "Target year must be greater than base year.",
    "site_assessment_coverage_invalid": "Sites with an assessment exceed total sites.",
    "donations_currency_mismatch": (
        "Cash and in-kind donations use different currencies; totals are shown per currency."
    ),
}
_INFO_FLAGS: frozenset[str] = frozenset({"majority_owner"})


class UnknownSectionError(ValueError):
    """
    Raised immediately when an unrecognised wizard section is requested.

    Valid values are the keys of the orchestrator's formula registry.
    """


def build_formula_registry(settings: MetricsSettings) -> dict[str, BaseMetricFormula]:
    """
    Instantiate one formula per wizard section using *settings*.
    """
    formulas: list[BaseMetricFormula] = [
        SocialMetricFormula(
            hours_base=settings.injury_rate_hours_base,
            part_time_ratio=settings.part_time_fte_ratio,
        ),
        GovernanceMetricFormula(min_year=settings.min_reporting_year),
        EnvironmentMetricFormula(),
    ]
    return {formula.section: formula for formula in formulas}


class MetricsOrchestrator:
    """
    Computes the derived metrics for one wizard section of a form snapshot.

    The orchestrator holds no business data between calls; it is safe to
    share one instance and call :meth:`run` on every form change.
    """

    def __init__(
        self,
        *,
        settings: MetricsSettings | None = None,
        registry: Mapping[str, BaseMetricFormula] | None = None,
    ) -> None:
        self._settings = settings or get_metrics_settings()
        self._registry = dict(registry or build_formula_registry(self._settings))
        self._service = MetricsService(self._settings)

    @property
    def sections(self) -> list[str]:
        return sorted(self._registry)

    def run(
        self,
        form_state: FormState,
        section: str,
        *,
        current_year: int | None = None,
    ) -> SectionMetricsResponse:
        """
        Compute all derived metrics for *section* of *form_state*.

        Parameters
        ----------
        form_state:
            Current wizard snapshot.  It is read, never modified.
        section:
            One of :attr:`sections`.
        current_year:
            Reporting year; required for ``"governance"`` (auditor tenure and
            year-range checks).

        Raises
        ------
        UnknownSectionError
            If *section* is not registered.
        ValueError
            If *section* is ``"governance"`` and *current_year* is missing.
        """
        formula = self._registry.get(section)
        if formula is None:
            raise UnknownSectionError(
                f"Unknown section {section!r}. Valid sections: {self.sections}"
            )

        inputs: dict[str, Any] = form_state.section(section)
        if section == "governance":
            if current_year is None:
                raise ValueError("current_year is required for the governance section.")
            inputs["current_year"] = current_year

        raw = formula.calculate(inputs)
        response = self._build_response(section, raw)

        log_event(
            logger,
            logging.INFO,
            "section_metrics_computed",
            section=section,
            metric_count=len(response.metrics),
            undefined_count=response.undefined_count,
            warning_count=len(response.warnings),
        )
        return response

    def run_all(
        self,
        form_state: FormState,
        *,
        current_year: int,
    ) -> dict[str, SectionMetricsResponse]:
        """
        Compute every registered section present in *form_state*.
        """
        return {
            section: self.run(form_state, section, current_year=current_year)
            for section in self.sections
            if form_state.get(section) is not None
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_response(self, section: str, raw: Mapping[str, Any]) -> SectionMetricsResponse:
        metrics: list[MetricValueResponse] = []
        warnings: list[str] = []
        flags: dict[str, bool] = {}
        rows: dict[str, list[dict[str, Any]]] = {}

        for name, value in raw.items():
            if isinstance(value, bool):
                if name in _INFO_FLAGS:
                    flags[name] = value
                elif value:
                    warnings.append(_warning_message(name))
                continue
            if isinstance(value, list):
                rows[name] = [self._render_row(row) for row in value]
                continue
            metrics.append(
                MetricValueResponse(
                    metric=name,
                    value=value,
                    display=self._service.format(value, _unit_for(name), digits=_digits_for(name)),
                    defined=value is not None,
                )
            )

        return SectionMetricsResponse(
            section=section,
            metrics=metrics,
            warnings=warnings,
            flags=flags,
            rows=rows,
            undefined_count=sum(1 for m in metrics if not m.defined),
        )

    def _render_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        rendered = dict(row)
        for key, value in row.items():
            if key.endswith("_percent") or key.endswith("_ratio"):
                rendered[f"{key}_display"] = self._service.format(value, _unit_for(key))
        return rendered


def _unit_for(metric: str) -> str:
    if metric.endswith(_QUANTITY_SUFFIXES) or metric in _QUANTITY_METRICS:
        return "quantity"
    if metric in _COUNT_METRICS:
        return "count"
    if metric == "auditor_tenure":
        return "years"
    if metric == "ceo_pay_ratio":
        return "multiple"
    if metric in _PERCENT_METRICS:
        return "percent"
    if any(marker in metric for marker in _PERCENT_METRIC_MARKERS):
        return "percent"
    return "ratio"


def _digits_for(metric: str) -> int | None:
    if metric in _COUNT_METRICS and metric != "average_headcount":
        return 0
    if metric == "auditor_tenure":
        return 0
    return None


def _warning_message(flag: str) -> str:
    if flag in _WARNING_MESSAGES:
        return _WARNING_MESSAGES[flag]
    if flag.endswith("_exceeds"):
        subject = flag[: -len("_exceeds")].replace("_", " ")
        return f"{subject.capitalize()} breakdown exceeds its total."
    return flag.replace("_", " ").capitalize() + "."
