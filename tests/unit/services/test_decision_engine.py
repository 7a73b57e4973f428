"""Unit tests for the verdict decision engine."""

import pytest

from target_triage.models.model_clinical_trials import CompetitorLandscape, FailureReasons
from target_triage.models.model_safety import SafetySeverity
from target_triage.models.model_scoring import FlagTopic, Verdict
from target_triage.services.decision_engine import (
    DecisionEngine,
    apply_overrides,
    base_verdict,
    check_caution_flags,
    check_investigation_flags,
    check_no_go,
)
from target_triage.services.scorer import build_scores

from conftest import make_signal


@pytest.fixture
def engine() -> DecisionEngine:
    return DecisionEngine()


# --- Automatic NO_GO ---


def test_two_critical_signals_force_no_go(engine):
    """Strong scores do not rescue a target with two CRITICAL signals."""
    scores = build_scores(0.9, 0.9, 0.0, 0.0)
    signals = [make_signal(SafetySeverity.CRITICAL), make_signal(SafetySeverity.CRITICAL)]

    decision = engine.determine_verdict(scores, signals)

    assert decision.verdict == Verdict.NO_GO
    assert any("2 CRITICAL safety signals" in r for r in decision.no_go_reasons)
    assert decision.caution_flags == []
    assert decision.investigation_flags == []


def test_four_high_signals_force_no_go():
    signals = [make_signal(SafetySeverity.HIGH) for _ in range(4)]
    reasons = check_no_go(build_scores(0.9, 0.9, 0.0, 0.0), signals)
    assert reasons == ["4 HIGH severity safety signals identified"]


def test_extreme_safety_risk_and_missing_genetics_are_no_go():
    reasons = check_no_go(build_scores(0.01, 0.5, 0.95, 0.0), [])
    assert "Extreme safety risk profile" in reasons
    assert "No meaningful genetic evidence for target-disease link" in reasons


# --- Flags ---


def test_caution_flags_for_single_critical_and_competition():
    scores = build_scores(0.5, 0.5, 0.1, 0.55)
    landscape = CompetitorLandscape(
        target_id="IL6",
        disease_id="EFO_1",
        total_trials=10,
        active_trials=6,
        failure_reasons=FailureReasons(safety=2),
    )

    flags = check_caution_flags(scores, [make_signal(SafetySeverity.CRITICAL)], landscape)
    messages = [f.message for f in flags]

    assert "One CRITICAL safety signal requires attention" in messages
    assert "Significant competitive activity in this space" in messages
    assert "High number of active competitor trials" in messages
    competitor_safety = next(f for f in flags if "competitor safety failures" in f.message)
    assert set(competitor_safety.topics) == {FlagTopic.SAFETY, FlagTopic.COMPETITION}


def test_investigation_flags():
    scores = build_scores(0.7, 0.7, 0.55, 0.65)
    signals = [make_signal(SafetySeverity.HIGH)]
    flags = check_investigation_flags(scores, signals)
    messages = [f.message for f in flags]

    assert "1 high-severity safety signals need deeper investigation" in messages
    assert "Strong genetics but elevated safety risk - investigate tradeoff" in messages
    assert any("differentiation strategy" in m for m in messages)


def test_investigated_high_signal_needs_no_investigation_flag():
    signal = make_signal(SafetySeverity.HIGH, investigation_summary="Reviewed")
    assert check_investigation_flags(build_scores(0.5, 0.5, 0.0, 0.0), [signal]) == []


# --- Base verdict and overrides ---


@pytest.mark.parametrize(
    "composite, caution, investigation, expected",
    [
        (0.70, False, False, Verdict.GO),
        (0.70, True, False, Verdict.GO_WITH_CAUTION),
        (0.50, False, True, Verdict.INVESTIGATE_FURTHER),
        (0.50, False, False, Verdict.GO_WITH_CAUTION),
        (0.30, False, False, Verdict.INVESTIGATE_FURTHER),
        (0.10, False, True, Verdict.INVESTIGATE_FURTHER),
        (0.10, False, False, Verdict.NO_GO),
    ],
)
def test_base_verdict_bands(composite, caution, investigation, expected):
    from target_triage.models.model_scoring import DecisionFlag

    flag = [DecisionFlag(message="x")]
    assert (
        base_verdict(composite, flag if caution else [], flag if investigation else [])
        == expected
    )


def test_override_safety_risk_caps_go():
    scores = build_scores(0.9, 0.9, 0.5, 0.0)
    assert apply_overrides(Verdict.GO, scores, []) == Verdict.GO_WITH_CAUTION


def test_override_many_investigation_flags_downgrade_caution():
    from target_triage.models.model_scoring import DecisionFlag

    flags = [DecisionFlag(message=str(i)) for i in range(3)]
    scores = build_scores(0.5, 0.5, 0.0, 0.0)
    assert apply_overrides(Verdict.GO_WITH_CAUTION, scores, flags) == Verdict.INVESTIGATE_FURTHER


# --- End to end through the engine ---


def test_mid_band_without_flags_is_go_with_caution(engine):
    """Genetic 0.40, nothing else: composite 0.54 with no flags."""
    scores = build_scores(0.40, 0.0, 0.0, 0.0)
    decision = engine.determine_verdict(scores, [], None)

    assert decision.verdict == Verdict.GO_WITH_CAUTION
    assert decision.caution_flags == []
    assert decision.investigation_flags == []
    assert decision.recommendations[0] == "Proceed with defined risk mitigation strategy"


def test_clean_strong_target_is_go(engine):
    scores = build_scores(0.8, 0.7, 0.0, 0.1)
    decision = engine.determine_verdict(scores, [], None)

    assert decision.verdict == Verdict.GO
    assert "Proceed with target development" in decision.recommendations
    assert "Strong genetic validation supports investment" in decision.recommendations


def test_caution_recommendations_follow_flag_topics(engine):
    scores = build_scores(0.8, 0.7, 0.1, 0.1)
    signals = [make_signal(SafetySeverity.CRITICAL, organ_system="liver")]
    decision = engine.determine_verdict(scores, signals, None)

    assert decision.verdict == Verdict.GO_WITH_CAUTION
    assert "Implement robust safety monitoring from early development" in decision.recommendations
    assert "Prioritize liver safety assays" in decision.recommendations
    assert len(decision.recommendations) == len(set(decision.recommendations))


def test_determine_verdict_is_pure(engine):
    scores = build_scores(0.5, 0.2, 0.45, 0.5)
    signals = [make_signal(SafetySeverity.HIGH), make_signal(SafetySeverity.HIGH)]
    assert engine.determine_verdict(scores, signals) == engine.determine_verdict(
        scores, signals
    )


def test_generate_summary(engine):
    scores = build_scores(0.8, 0.7, 0.0, 0.1)
    decision = engine.determine_verdict(scores, [])
    summary = engine.generate_summary("IL6", "rheumatoid arthritis", decision, scores)

    assert summary.startswith("## Target Assessment: IL6 for rheumatoid arthritis")
    assert "### Verdict: GO" in summary
    assert "### NO-GO Reasons" not in summary


@pytest.mark.parametrize(
    "scores, expected",
    [
        (build_scores(0.9, 0.9, 0.85, 0.0), Verdict.NO_GO),
        (build_scores(0.05, 0.9, 0.0, 0.0), Verdict.NO_GO),
        (build_scores(0.8, 0.8, 0.0, 0.0), Verdict.GO),
        (build_scores(0.4, 0.0, 0.0, 0.0), Verdict.GO_WITH_CAUTION),
    ],
)
def test_quick_verdict(engine, scores, expected):
    assert engine.quick_verdict(scores) == expected


def test_explain_verdict(engine):
    explanation = engine.explain_verdict(Verdict.GO)
    assert explanation.title == "Proceed with Development"
    assert explanation.next_steps
