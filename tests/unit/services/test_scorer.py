"""Unit tests for target scoring."""

import math

import pytest

from target_triage.models.model_clinical_trials import CompetitorLandscape
from target_triage.models.model_open_targets import (
    AssociationScore,
    Tractability,
    TractabilityModality,
)
from target_triage.models.model_safety import SafetyEvidence, SafetyEvidenceType, SafetySeverity
from target_triage.models.model_scoring import ScoredTarget
from target_triage.services.scorer import (
    TargetScorer,
    build_scores,
    calculate_competitive_landscape_score,
    calculate_composite_score,
    calculate_genetic_evidence_score,
    calculate_safety_risk_score,
    calculate_tractability_score,
    clamp,
)

from conftest import make_signal, tractable_sm

# --- clamp ---


@pytest.mark.parametrize(
    "value, expected",
    [(None, 0.0), (float("nan"), 0.0), (-0.5, 0.0), (1.7, 1.0), (0.42, 0.42)],
)
def test_clamp(value, expected):
    assert clamp(value) == expected


# --- genetic evidence ---


def test_genetic_evidence_none_is_zero():
    assert calculate_genetic_evidence_score(None) == 0.0


def test_genetic_evidence_weighted_sum():
    association = AssociationScore(
        genetic_association=0.8,
        somatic_mutation=0.4,
        literature=0.2,
        animal_model=0.5,
        affected_pathway=0.1,
    )
    expected = 0.8 * 0.5 + 0.4 * 0.15 + 0.2 * 0.15 + 0.5 * 0.1 + 0.1 * 0.1
    assert calculate_genetic_evidence_score(association) == pytest.approx(expected)


def test_genetic_evidence_clamps_out_of_range_inputs():
    association = AssociationScore(genetic_association=3.0, literature=-1.0)
    assert calculate_genetic_evidence_score(association) == pytest.approx(0.5)


# --- tractability ---


def test_tractability_none_is_zero():
    assert calculate_tractability_score(None) == 0.0


def test_tractability_unassessed_is_zero():
    tractability = Tractability(
        small_molecule=TractabilityModality(modality="SM", is_assessed=False, buckets=["x"])
    )
    assert calculate_tractability_score(tractability) == 0.0


def test_tractability_full_small_molecule():
    assert calculate_tractability_score(tractable_sm()) == pytest.approx(0.5)


def test_tractability_all_modalities_capped_at_one():
    tractability = Tractability(
        small_molecule=TractabilityModality(
            modality="SM", is_assessed=True, buckets=["a", "b", "c", "d"]
        ),
        antibody=TractabilityModality(modality="AB", is_assessed=True, buckets=["a"]),
        protac=TractabilityModality(modality="PR", is_assessed=True),
        other_modalities=[
            TractabilityModality(modality="OC", is_assessed=True),
            TractabilityModality(modality="ON", is_assessed=False),
        ],
    )
    expected = 0.5 + 0.3 * 0.5 + 0.1 + 0.1 * 0.5
    assert calculate_tractability_score(tractability) == pytest.approx(expected)


# --- safety risk ---


def test_safety_risk_empty_is_zero():
    assert calculate_safety_risk_score([]) == 0.0


def test_safety_risk_applies_evidence_and_investigation_multipliers():
    evidence = SafetyEvidence(
        evidence_type=SafetyEvidenceType.LITERATURE, source="PubMed", description="x"
    )
    signal = make_signal(
        SafetySeverity.HIGH, evidence=[evidence], investigation_summary="done"
    )
    assert calculate_safety_risk_score([signal]) == pytest.approx(0.25 * 1.10 * 1.05)


def test_safety_risk_caps_at_one():
    signals = [make_signal(SafetySeverity.CRITICAL) for _ in range(5)]
    assert calculate_safety_risk_score(signals) == 1.0


# --- competitive landscape ---


def test_competitive_landscape_without_trials_is_zero():
    landscape = CompetitorLandscape(
        target_id="IL6", disease_id="EFO_1", competitive_risk_score=0.9
    )
    assert calculate_competitive_landscape_score(landscape) == 0.0
    assert calculate_competitive_landscape_score(None) == 0.0


def test_competitive_landscape_uses_risk_score():
    landscape = CompetitorLandscape(
        target_id="IL6", disease_id="EFO_1", total_trials=4, competitive_risk_score=0.35
    )
    assert calculate_competitive_landscape_score(landscape) == pytest.approx(0.35)


# --- composite ---


def test_composite_best_and_worst_cases():
    assert calculate_composite_score(1, 1, 0, 0) == pytest.approx(1.0)
    assert calculate_composite_score(0, 0, 1, 1) == pytest.approx(0.0)


@pytest.mark.parametrize(
    "g, t, s, c",
    [
        (0.0, 0.0, 0.0, 0.0),
        (0.3, 0.7, 0.2, 0.9),
        (1.0, 1.0, 1.0, 1.0),
        (0.5, 0.5, 0.5, 0.5),
    ],
)
def test_composite_in_range_and_monotonic(g, t, s, c):
    base = calculate_composite_score(g, t, s, c)
    step = 0.1
    assert 0.0 <= base <= 1.0
    assert calculate_composite_score(min(g + step, 1), t, s, c) >= base
    assert calculate_composite_score(g, min(t + step, 1), s, c) >= base
    assert calculate_composite_score(g, t, min(s + step, 1), c) <= base
    assert calculate_composite_score(g, t, s, min(c + step, 1)) <= base


def test_composite_never_nan():
    assert not math.isnan(calculate_composite_score(float("nan"), 0.5, 0.5, 0.5))


def test_build_scores_derives_composite():
    scores = build_scores(0.4, 0.0, 0.0, 0.0)
    assert scores.composite_score == pytest.approx(0.54)


# --- TargetScorer ---


class TestTargetScorer:
    def test_scenario_strong_genetics_nothing_else(self):
        """Genetic association 0.8 only, no tractability, signals or trials."""
        scores = TargetScorer().score(
            AssociationScore(genetic_association=0.8), None, [], None
        )
        assert scores.genetic_evidence == pytest.approx(0.40)
        assert scores.tractability == 0.0
        assert scores.safety_risk == 0.0
        assert scores.competitive_landscape == 0.0
        assert scores.composite_score == pytest.approx(0.54)

    def test_scoring_is_deterministic(self):
        scorer = TargetScorer()
        args = (
            AssociationScore(genetic_association=0.6, literature=0.3),
            tractable_sm(),
            [make_signal(SafetySeverity.HIGH)],
            None,
        )
        assert scorer.score(*args) == scorer.score(*args)

    def test_interpret_strong_target(self):
        scores = build_scores(0.8, 0.7, 0.05, 0.1)
        interpretation = TargetScorer().interpret(scores)
        assert interpretation.overall == "EXCELLENT"
        assert "Clean safety profile" in interpretation.strengths
        assert "Favorable competitive landscape" in interpretation.strengths
        assert interpretation.weaknesses == []

    def test_interpret_weak_target(self):
        scores = build_scores(0.1, 0.1, 0.8, 0.7)
        interpretation = TargetScorer().interpret(scores)
        assert interpretation.overall == "POOR"
        assert "Significant safety concerns identified" in interpretation.weaknesses

    def test_compare(self):
        a = ScoredTarget(symbol="IL6", scores=build_scores(0.8, 0.5, 0.1, 0.2))
        b = ScoredTarget(symbol="TNF", scores=build_scores(0.5, 0.7, 0.1, 0.6))
        comparison = TargetScorer().compare(a, b)
        assert comparison.winner == "IL6"
        assert comparison.margin == pytest.approx(
            a.scores.composite_score - b.scores.composite_score
        )
        assert comparison.advantages == {
            "genetic_evidence": "IL6",
            "tractability": "TNF",
            "competition": "IL6",
        }

    def test_compare_tie_goes_to_first(self):
        scores = build_scores(0.5, 0.5, 0.5, 0.5)
        a = ScoredTarget(symbol="A", scores=scores)
        b = ScoredTarget(symbol="B", scores=scores)
        assert TargetScorer().compare(a, b).winner == "A"

    def test_rank(self):
        targets = [
            ScoredTarget(symbol="LOW", scores=build_scores(0, 0, 1, 1)),
            ScoredTarget(symbol="TOP", scores=build_scores(1, 1, 0, 0)),
            ScoredTarget(symbol="MID", scores=build_scores(0.4, 0, 0, 0)),
        ]
        ranked = TargetScorer().rank(targets)
        assert [r.symbol for r in ranked] == ["TOP", "MID", "LOW"]
        assert [r.rank for r in ranked] == [1, 2, 3]
        assert [r.tier for r in ranked] == ["TOP", "MID", "LOW"]
