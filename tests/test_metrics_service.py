"""
tests/test_metrics_service.py

Pytest unit tests for MetricsService.

Coverage
--------
- Result shape (metric, value, unit, display, error, warnings)
- Undefined metrics never raise and carry an explanatory error
- Soft warnings are attached without blocking the value
- Display formatting follows MetricsSettings
"""

from __future__ import annotations

import logging

import pytest

from app.config import MetricsSettings
from app.domain.esg_records import AttendanceRow, MoneyAmount
from app.services.metrics_service import (
    AttendanceInput,
    AuditorTenureInput,
    BreakdownInput,
    CEOPayRatioInput,
    CoverageInput,
    HireRateInput,
    InjuryRateInput,
    MetricsService,
    NonAuditFeeInput,
    OwnershipConcentrationInput,
    PayGapInput,
    ResolutionRateInput,
    TurnoverInput,
)
from esg_metrics.governance import GovernanceMetricFormula


@pytest.fixture()
def service() -> MetricsService:
    return MetricsService(MetricsSettings())


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------


class TestSocialMetrics:
    def test_turnover_rate(self, service: MetricsService) -> None:
        result = service.calculate_turnover_rate(
            TurnoverInput(exits=11, headcount_start=100, headcount_end=120)
        )
        assert result.metric == "turnover_rate"
        assert result.value == pytest.approx(10.0)
        assert result.unit == "percent"
        assert result.display == "10.0%"
        assert result.error is None

    def test_turnover_rate_without_headcount(self, service: MetricsService) -> None:
        result = service.calculate_turnover_rate(
            TurnoverInput(exits=5, headcount_start=0, headcount_end=0)
        )
        assert result.value is None
        assert result.display == "—"
        assert result.error is not None and result.error.startswith("Undefined")

    def test_injury_rate_zero_hours(self, service: MetricsService) -> None:
        result = service.calculate_injury_rate(InjuryRateInput(incident_count=3, hours_worked=0))
        assert result.value is None
        assert "hours_worked" in (result.error or "")

    def test_injury_rate(self, service: MetricsService) -> None:
        result = service.calculate_injury_rate(
            InjuryRateInput(incident_count=5, hours_worked=200_000)
        )
        assert result.value == pytest.approx(5.0)
        assert result.display == "5.00"

    def test_hire_rate_above_100(self, service: MetricsService) -> None:
        result = service.calculate_hire_rate(HireRateInput(hires=30, headcount_end=20))
        assert result.value == pytest.approx(150.0)
        assert result.display == "150.0%"

    def test_pay_gap_and_ratio(self, service: MetricsService) -> None:
        data = PayGapInput(avg_group_a=45_000, avg_group_b=50_000)
        assert service.calculate_pay_gap(data).value == pytest.approx(10.0)
        assert service.calculate_pay_ratio(data).display == "0.90"


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------


class TestGovernanceMetrics:
    def test_ceo_pay_ratio(self, service: MetricsService) -> None:
        result = service.calculate_ceo_pay_ratio(
            CEOPayRatioInput(
                ceo_pay=MoneyAmount(1_000_000, "USD"),
                median_pay=MoneyAmount(50_000, "USD"),
            )
        )
        assert result.value == pytest.approx(20.0)
        assert result.display == "20.00×"

    def test_ceo_pay_ratio_currency_mismatch(self, service: MetricsService) -> None:
        result = service.calculate_ceo_pay_ratio(
            CEOPayRatioInput(
                ceo_pay=MoneyAmount(1_000_000, "USD"),
                median_pay=MoneyAmount(50_000, "EUR"),
            )
        )
        assert result.value is None
        assert "currency mismatch" in (result.error or "")

    def test_auditor_tenure(self, service: MetricsService) -> None:
        result = service.calculate_auditor_tenure(
            AuditorTenureInput(initial_year=2015, current_year=2024)
        )
        assert result.value == pytest.approx(9.0)
        assert result.display == "9 years"

    def test_auditor_tenure_future_year(self, service: MetricsService) -> None:
        result = service.calculate_auditor_tenure(
            AuditorTenureInput(initial_year=2030, current_year=2024)
        )
        assert result.value is None

    def test_non_audit_fee_warning(self, service: MetricsService) -> None:
        result = service.calculate_non_audit_fee_ratio(
            NonAuditFeeInput(non_audit_fees=120, total_fees=100)
        )
        assert result.value == pytest.approx(120.0)
        assert result.warnings == ("Non-audit fees cannot exceed total fees.",)

    def test_resolution_rate(self, service: MetricsService) -> None:
        result = service.calculate_resolution_rate(ResolutionRateInput(resolved=0, raised=0))
        assert result.value is None
        assert result.warnings == ()

    def test_ownership_concentration(self, service: MetricsService) -> None:
        result = service.calculate_ownership_concentration(
            OwnershipConcentrationInput(shareholder_percents=[10, 5, 50, 20, 15], top_n=3)
        )
        assert result.metric == "ownership_top3"
        assert result.value == pytest.approx(85.0)
        assert result.warnings == ()

    def test_attendance_rate_flags_rows(self, service: MetricsService) -> None:
        result = service.calculate_attendance_rate(
            AttendanceInput(
                rows=[AttendanceRow(attended=7), AttendanceRow(attended=3, held=4)],
                fallback_held=6,
            )
        )
        # min(7, 6) + min(3, 4) over 6 + 4
        assert result.value == pytest.approx(90.0)
        assert result.warnings == ("Row 1: attended cannot exceed held.",)

    def test_attendance_rate_accepts_mapping_rows(self, service: MetricsService) -> None:
        result = service.calculate_attendance_rate(
            AttendanceInput(rows=[{"attended": 7}, {"attended": 5, "held": 4}], fallback_held=6)
        )
        # min(7, 6) + min(5, 4) over 6 + 4
        assert result.value == pytest.approx(100.0)
        assert result.warnings == (
            "Row 1: attended cannot exceed held.",
            "Row 2: attended cannot exceed held.",
        )

    def test_rows_without_held_count_are_not_flagged(self, service: MetricsService) -> None:
        result = service.calculate_attendance_rate(AttendanceInput(rows=[{"attended": 3}]))
        assert result.value is None
        assert result.warnings == ()

    def test_attendance_warning_matches_section_formula(self, service: MetricsService) -> None:
        rows = [{"attended": 3}, {"attended": 2, "held": 0}]
        section = GovernanceMetricFormula().calculate(
            {"current_year": 2024, "committees": {"audit": {"attendance": rows}}}
        )
        result = service.calculate_attendance_rate(AttendanceInput(rows=rows))
        assert section["committee_audit_attendance_exceeds"] is False
        assert result.warnings == ()

    def test_ownership_concentration_with_float_top_n(self, service: MetricsService) -> None:
        result = service.calculate_ownership_concentration(
            OwnershipConcentrationInput(shareholder_percents=[10, 20, 5], top_n=2.0)
        )
        assert result.value == pytest.approx(30.0)


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


class TestGenericMetrics:
    def test_coverage(self, service: MetricsService) -> None:
        result = service.calculate_coverage(
            "site_assessment_coverage", CoverageInput(items_with_property=3, total_items=4)
        )
        assert result.metric == "site_assessment_coverage"
        assert result.value == pytest.approx(75.0)

    def test_coverage_above_total_warns(self, service: MetricsService) -> None:
        result = service.calculate_coverage(
            "policy_coverage", CoverageInput(items_with_property=5, total_items=4)
        )
        assert result.value == pytest.approx(125.0)
        assert len(result.warnings) == 1

    def test_check_breakdown(
        self, service: MetricsService, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="app.services.metrics_service"):
            assert service.check_breakdown("new_hires_gender", BreakdownInput([30, 40, 40], 100))
        assert "new_hires_gender" in caplog.text
        assert not service.check_breakdown("new_hires_gender", BreakdownInput([30, 40, 30], 100))

    def test_undefined_metric_logs_warning(
        self, service: MetricsService, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="app.services.metrics_service"):
            service.calculate_hire_rate(HireRateInput(hires=3, headcount_end=None))
        assert "hire_rate undefined" in caplog.text


class TestFormatting:
    def test_custom_settings(self) -> None:
        service = MetricsService(
            MetricsSettings(display_placeholder="n/a", percent_digits=2, ratio_digits=1)
        )
        assert service.format(None, "percent") == "n/a"
        assert service.format(12.3456, "percent") == "12.35%"
        assert service.format(3.0, "multiple") == "3.0×"

    def test_explicit_digits(self, service: MetricsService) -> None:
        assert service.format(4.0, "count", digits=0) == "4"
