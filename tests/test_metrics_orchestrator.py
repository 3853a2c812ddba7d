"""
tests/test_metrics_orchestrator.py

Pytest tests for MetricsOrchestrator section routing and response shaping.
"""

from __future__ import annotations

import pytest

from app.config import MetricsSettings
from app.forms.form_state import FormState
from app.services.metrics_orchestrator import MetricsOrchestrator, UnknownSectionError


@pytest.fixture()
def orchestrator() -> MetricsOrchestrator:
    return MetricsOrchestrator(settings=MetricsSettings())


@pytest.fixture()
def form_state() -> FormState:
    return FormState.from_dict(
        {
            "social": {
                "movement": {
                    "headcount_start": 100,
                    "headcount_end": 120,
                    "exits_total": 11,
                    "new_hires_total": 10,
                    "new_hires_breakdown": {"by_gender": {"women": 8, "men": 7}},
                },
                "ohs": {"employees": {"hours_worked": 0, "recordable_injuries": 2}},
                "pay": {"rows": [{"group": "staff", "country": "FR", "avg_women": 40, "avg_men": 50}]},
            },
            "governance": {
                "executive_remuneration": {
                    "ceo_pay": {"amount": 1_000_000, "currency": "USD"},
                    "median_pay": {"amount": 50_000, "currency": "USD"},
                },
                "auditor": {"external_auditor": {"initial_year": 2015}},
                "ownership": {"top_shareholders": [{"pct": 60}, {"pct": 10}]},
            },
        }
    )


class TestRouting:
    def test_sections(self, orchestrator: MetricsOrchestrator) -> None:
        assert orchestrator.sections == ["environment", "governance", "social"]

    def test_unknown_section_raises(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        with pytest.raises(UnknownSectionError):
            orchestrator.run(form_state, "economic")

    def test_unknown_section_is_a_value_error(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        with pytest.raises(ValueError):
            orchestrator.run(form_state, "")

    def test_governance_requires_current_year(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        with pytest.raises(ValueError, match="current_year"):
            orchestrator.run(form_state, "governance")


class TestSocialResponse:
    def test_metrics_and_warnings(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        response = orchestrator.run(form_state, "social")

        assert response.section == "social"
        assert response.value_of("turnover_rate") == pytest.approx(10.0)
        assert response.value_of("employees_recordable_injuries_rate") is None
        assert "New hires gender breakdown exceeds its total." in response.warnings
        assert response.undefined_count > 0

    def test_display_strings(self, orchestrator: MetricsOrchestrator, form_state: FormState) -> None:
        response = orchestrator.run(form_state, "social")
        displays = {m.metric: m.display for m in response.metrics}

        assert displays["turnover_rate"] == "10.0%"
        assert displays["employees_recordable_injuries_rate"] == "—"
        assert displays["total_headcount"] == "0"

    def test_pay_rows_are_rendered(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        row = orchestrator.run(form_state, "social").rows["pay_comparisons"][0]
        assert row["pay_gap_percent"] == pytest.approx(20.0)
        assert row["pay_gap_percent_display"] == "20.0%"
        assert row["pay_ratio_display"] == "0.80"

    def test_form_state_is_not_modified(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        before = form_state.to_dict()
        orchestrator.run(form_state, "social")
        orchestrator.run(form_state, "governance", current_year=2024)
        assert form_state.to_dict() == before


class TestGovernanceResponse:
    def test_metrics_and_flags(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        response = orchestrator.run(form_state, "governance", current_year=2024)
        displays = {m.metric: m.display for m in response.metrics}

        assert response.value_of("ceo_pay_ratio") == pytest.approx(20.0)
        assert displays["ceo_pay_ratio"] == "20.00×"
        assert displays["auditor_tenure"] == "9 years"
        assert response.value_of("ownership_top1") == pytest.approx(60.0)
        assert response.flags == {"majority_owner": True}
        assert response.warnings == []


class TestRunAll:
    def test_only_present_sections(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        responses = orchestrator.run_all(form_state, current_year=2024)
        assert sorted(responses) == ["governance", "social"]

    def test_recomputes_after_patch(
        self, orchestrator: MetricsOrchestrator, form_state: FormState
    ) -> None:
        updated = form_state.patch("social.movement.exits_total", 22)
        assert orchestrator.run(updated, "social").value_of("turnover_rate") == pytest.approx(20.0)
        assert orchestrator.run(form_state, "social").value_of("turnover_rate") == pytest.approx(10.0)


class TestCommunityResponse:
    @pytest.fixture()
    def community_state(self) -> FormState:
        return FormState.from_dict(
            {
                "social": {
                    "community": {
                        "total_sites": 4,
                        "sites_with_assessment": 5,
                        "cash_donations": {"amount": 1_000, "currency": "EUR"},
                        "in_kind_donations": {"amount": 300, "currency": "USD"},
                    },
                    "non_employee_workers": {"counts": {"agency": 12, "contractors": 8}},
                }
            }
        )

    def test_warnings(self, orchestrator: MetricsOrchestrator, community_state: FormState) -> None:
        response = orchestrator.run(community_state, "social")

        assert "Sites with an assessment exceed total sites." in response.warnings
        assert (
            "Cash and in-kind donations use different currencies; totals are shown per currency."
            in response.warnings
        )

    def test_donations_are_shown_per_currency(
        self, orchestrator: MetricsOrchestrator, community_state: FormState
    ) -> None:
        response = orchestrator.run(community_state, "social")
        displays = {m.metric: m.display for m in response.metrics}

        assert response.value_of("donations_total") is None
        assert displays["donations_total"] == "—"
        assert response.rows["donations_by_currency"] == [
            {"currency": "EUR", "total": 1_000.0},
            {"currency": "USD", "total": 300.0},
        ]
        assert displays["non_employee_total"] == "20"
        assert displays["site_assessment_coverage"] == "125.0%"
