"""Unit tests for CompetitorAnalyzer and the landscape policy functions."""

from unittest.mock import AsyncMock

import pytest

from target_triage.data_sources.base_client import DataSourceError
from target_triage.models.model_clinical_trials import (
    FailureCategory,
    OpportunityLevel,
    RiskLevel,
    TrialStatus,
)
from target_triage.services.competitor_analyzer import (
    CompetitorAnalyzer,
    analyze_failure_patterns,
    assess_opportunity,
    build_landscape,
    calculate_competitive_risk,
    categorize_failure,
    identify_competitors,
    unavailable_landscape,
)

from conftest import make_trial

DISEASE_ID = "EFO_0000685"
DISEASE_NAME = "rheumatoid arthritis"


@pytest.fixture
def analyzer(registry) -> CompetitorAnalyzer:
    return CompetitorAnalyzer(registry)


# --- categorize_failure ---


@pytest.mark.parametrize(
    "reason, expected",
    [
        ("discontinued due to elevated liver enzymes", FailureCategory.SAFETY),
        ("Serious adverse events observed", FailureCategory.SAFETY),
        ("Futility at interim analysis", FailureCategory.EFFICACY),
        ("Sponsor decision", FailureCategory.BUSINESS),
        ("Slow enrollment", FailureCategory.OTHER),
        (None, FailureCategory.OTHER),
        ("", FailureCategory.OTHER),
    ],
)
def test_categorize_failure(reason, expected):
    assert categorize_failure(reason) == expected


def test_categorize_failure_safety_beats_business():
    """A reason matching both a safety and a business keyword is a safety failure."""
    assert categorize_failure("Funding withdrawn after toxicity findings") == FailureCategory.SAFETY


def test_categorize_failure_efficacy_beats_business():
    assert categorize_failure("Sponsor stopped: primary endpoint not met") == FailureCategory.EFFICACY


# --- landscape ---


def test_competitive_risk_empty():
    assert calculate_competitive_risk([]) == 0.0


def test_competitive_risk_weights():
    trials = [
        make_trial("NCT1", TrialStatus.RECRUITING, "Phase 3"),
        make_trial("NCT2", TrialStatus.TERMINATED, "Phase 2", failure_reason="toxicity"),
        make_trial("NCT3", TrialStatus.COMPLETED, "Phase 1"),
        make_trial("NCT4", TrialStatus.SUSPENDED, "Phase 4"),
    ]
    # active 2/4, failed 1/4, late-stage 2/4
    assert calculate_competitive_risk(trials) == pytest.approx(0.5 * 0.4 + 0.25 * 0.3 + 0.5 * 0.3)


def test_build_landscape_counts_and_summary():
    trials = [
        make_trial("NCT1", TrialStatus.RECRUITING),
        make_trial("NCT2", TrialStatus.TERMINATED, failure_reason="hepatotoxicity"),
        make_trial("NCT3", TrialStatus.WITHDRAWN, failure_reason="Business reasons"),
        make_trial("NCT4", TrialStatus.COMPLETED),
    ]
    landscape = build_landscape("IL6", DISEASE_ID, DISEASE_NAME, trials)

    assert landscape.total_trials == 4
    assert landscape.active_trials == 1
    assert landscape.completed_trials == 1
    assert landscape.failed_trials == 2
    assert landscape.failure_reasons.safety == 1
    assert landscape.failure_reasons.business == 1
    assert landscape.registry_available is True
    assert landscape.landscape_summary.startswith(
        "4 clinical trials found for IL6 in rheumatoid arthritis. 1 trials are currently active. "
        "2 trials have failed (1 due to safety concerns)."
    )


def test_unavailable_landscape_is_distinguishable_from_empty():
    unavailable = unavailable_landscape("IL6", DISEASE_ID)
    empty = build_landscape("IL6", DISEASE_ID, DISEASE_NAME, [])

    assert unavailable.total_trials == empty.total_trials == 0
    assert unavailable.registry_available is False
    assert empty.registry_available is True


# --- failure patterns, competitors, opportunity ---


def test_failure_patterns_high_risk_from_safety_failures():
    trials = [
        make_trial("NCT1", TrialStatus.TERMINATED, "Phase 2", failure_reason="toxicity"),
        make_trial("NCT2", TrialStatus.TERMINATED, "Phase 3", failure_reason="adverse events"),
        make_trial("NCT3", TrialStatus.TERMINATED, "Phase 2", failure_reason="futility"),
    ]
    analysis = analyze_failure_patterns(trials)

    assert analysis.risk_level == RiskLevel.HIGH
    assert "67% of failures due to safety concerns" in analysis.patterns
    assert "33% of failures due to efficacy issues" in analysis.patterns
    assert "1 late-stage (Phase 3/4) failures" in analysis.patterns


def test_failure_patterns_no_failures():
    analysis = analyze_failure_patterns([make_trial("NCT1")])
    assert analysis.risk_level == RiskLevel.LOW
    assert analysis.patterns == []


def test_identify_competitors_orders_by_activity():
    trials = [
        make_trial("NCT1", sponsor="Beta Bio", phase="Phase 1"),
        make_trial("NCT2", sponsor="Alpha Pharma", phase="Phase 2"),
        make_trial("NCT3", sponsor="Alpha Pharma", phase="Phase 3"),
        make_trial("NCT4", TrialStatus.COMPLETED, sponsor="Gamma"),
        make_trial("NCT5", sponsor=None),
    ]
    competitors = identify_competitors(trials)

    assert [c.sponsor for c in competitors] == ["Alpha Pharma", "Beta Bio"]
    assert competitors[0].trial_count == 2
    assert competitors[0].phases == ["Phase 2", "Phase 3"]


def test_opportunity_open_field():
    trials = [make_trial("NCT1", TrialStatus.COMPLETED)]
    landscape = build_landscape("IL6", DISEASE_ID, DISEASE_NAME, trials)
    opportunity = assess_opportunity(
        landscape, analyze_failure_patterns(trials), identify_competitors(trials)
    )
    # 50 + 20 (no active) + 10 (low failure) + 15 (clean history)
    assert opportunity.score == 95
    assert opportunity.level == OpportunityLevel.HIGH


def test_opportunity_crowded_field():
    trials = [make_trial(f"NCT{i}", phase="Phase 3", sponsor=f"S{i}") for i in range(5)]
    trials += [
        make_trial("NCT10", TrialStatus.TERMINATED, failure_reason="toxicity"),
        make_trial("NCT11", TrialStatus.TERMINATED, failure_reason="adverse events"),
    ]
    landscape = build_landscape("IL6", DISEASE_ID, DISEASE_NAME, trials)
    opportunity = assess_opportunity(
        landscape, analyze_failure_patterns(trials), identify_competitors(trials)
    )
    # 50 - 20 (many active) - 25 (late stage) - 20 (high failure) - 30 (safety)
    assert opportunity.score == -45
    assert opportunity.level == OpportunityLevel.VERY_LOW


def test_opportunity_when_registry_unavailable():
    landscape = unavailable_landscape("IL6", DISEASE_ID)
    opportunity = assess_opportunity(landscape, analyze_failure_patterns([]), [])
    assert opportunity.level == OpportunityLevel.VERY_LOW
    assert opportunity.score == 0


# --- CompetitorAnalyzer ---


@pytest.mark.asyncio
class TestCompetitorAnalyzer:
    async def test_analyze_landscape(self, analyzer, registry):
        registry.trials = [
            make_trial("NCT1", TrialStatus.RECRUITING, "Phase 2", sponsor="Alpha"),
            make_trial("NCT2", TrialStatus.TERMINATED, failure_reason="toxic effects"),
        ]
        analysis = await analyzer.analyze_landscape("IL6", DISEASE_ID, DISEASE_NAME)

        assert analysis.landscape.total_trials == 2
        assert analysis.landscape.failure_reasons.safety == 1
        assert analysis.competitors[0].sponsor == "Alpha"
        assert analysis.narrative.startswith("## Competitive Landscape Analysis for IL6")

    async def test_registry_failure_degrades_to_unavailable(self, analyzer, registry):
        registry.search_trials = AsyncMock(
            side_effect=DataSourceError("clinical_trials", "HTTP 503")
        )
        analysis = await analyzer.analyze_landscape("IL6", DISEASE_ID, DISEASE_NAME)

        assert analysis.landscape.registry_available is False
        assert analysis.landscape.total_trials == 0
        assert analysis.opportunity.level == OpportunityLevel.VERY_LOW

    @pytest.mark.parametrize(
        "statuses, expected",
        [
            ([TrialStatus.TERMINATED] * 3, RiskLevel.HIGH),
            ([TrialStatus.WITHDRAWN], RiskLevel.MODERATE),
            ([TrialStatus.RECRUITING] * 5, RiskLevel.MODERATE),
            ([TrialStatus.RECRUITING, TrialStatus.COMPLETED], RiskLevel.LOW),
        ],
    )
    async def test_quick_competitive_check(self, analyzer, registry, statuses, expected):
        registry.trials = [make_trial(f"NCT{i}", s) for i, s in enumerate(statuses)]
        check = await analyzer.quick_competitive_check("IL6", DISEASE_NAME)
        assert check.risk_level == expected
        assert check.trial_count == len(statuses)

    async def test_failure_reasons(self, analyzer, registry):
        registry.trials = [
            make_trial("NCT1", TrialStatus.TERMINATED, "Phase 3", failure_reason="lack of efficacy"),
            make_trial("NCT2", TrialStatus.COMPLETED),
        ]
        failures = await analyzer.get_failure_reasons("IL6", DISEASE_NAME)

        assert len(failures) == 1
        assert failures[0].category == FailureCategory.EFFICACY
        assert failures[0].phase == "Phase 3"

    async def test_phase_distribution(self, analyzer, registry):
        registry.trials = [
            make_trial("NCT1", phase="Phase 2"),
            make_trial("NCT2", phase="Phase 2"),
            make_trial("NCT3", phase="Phase 3"),
        ]
        distribution = await analyzer.get_phase_distribution("IL6")
        assert distribution["Phase 2"] == 2
        assert distribution["Phase 3"] == 1
