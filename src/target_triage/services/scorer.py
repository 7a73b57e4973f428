"""
Target scoring.

Four independent components in [0, 1] plus a composite:

    composite = genetic * 0.35 + tractability * 0.25
                + (1 - safety_risk) * 0.25 + (1 - competitive) * 0.15

Safety risk and competition are inverted because lower is better. Every
function clamps its inputs and its output, so malformed provider values
degrade the score instead of raising.
"""

import math

from target_triage.constants import (
    GENETIC_EVIDENCE_WEIGHTS,
    INTERPRETATION_CUTOFFS,
    SAFETY_EVIDENCE_MULTIPLIER,
    SAFETY_INVESTIGATED_MULTIPLIER,
    SAFETY_SEVERITY_WEIGHTS,
    SCORE_WEIGHTS,
    TIER_CUTOFFS,
    TRACTABILITY_WEIGHTS,
)
from target_triage.models.model_clinical_trials import CompetitorLandscape
from target_triage.models.model_open_targets import (
    AssociationScore,
    Tractability,
    TractabilityModality,
)
from target_triage.models.model_safety import SafetySignal
from target_triage.models.model_scoring import (
    RankedTarget,
    ScoredTarget,
    ScoreInterpretation,
    TargetComparison,
    TargetScores,
)


def clamp(value: float | None) -> float:
    """Clamp to [0, 1]. None and NaN count as 0."""
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def calculate_genetic_evidence_score(association: AssociationScore | None) -> float:
    if association is None:
        return 0.0
    score = sum(
        clamp(getattr(association, field)) * weight
        for field, weight in GENETIC_EVIDENCE_WEIGHTS.items()
    )
    return clamp(score)


def _modality_fraction(modality: TractabilityModality | None, cap: int) -> float:
    if modality is None or not modality.is_assessed:
        return 0.0
    return min(1.0, len(modality.buckets) / cap)


def calculate_tractability_score(tractability: Tractability | None) -> float:
    """Small molecule first, then antibody, PROTAC and other modalities."""
    if tractability is None:
        return 0.0

    sm_weight, sm_cap = TRACTABILITY_WEIGHTS["small_molecule"]
    ab_weight, ab_cap = TRACTABILITY_WEIGHTS["antibody"]
    pr_weight, _ = TRACTABILITY_WEIGHTS["protac"]
    other_weight, other_cap = TRACTABILITY_WEIGHTS["other"]

    score = sm_weight * _modality_fraction(tractability.small_molecule, sm_cap)
    score += ab_weight * _modality_fraction(tractability.antibody, ab_cap)
    if tractability.protac is not None and tractability.protac.is_assessed:
        score += pr_weight
    assessed_other = sum(1 for m in tractability.other_modalities if m.is_assessed)
    score += other_weight * min(1.0, assessed_other / other_cap)
    return clamp(score)


def calculate_safety_risk_score(signals: list[SafetySignal]) -> float:
    total = 0.0
    for signal in signals:
        risk = SAFETY_SEVERITY_WEIGHTS[signal.severity.value]
        if signal.evidence:
            risk *= SAFETY_EVIDENCE_MULTIPLIER
        if signal.investigation_summary:
            risk *= SAFETY_INVESTIGATED_MULTIPLIER
        total += risk
    return clamp(total)


def calculate_competitive_landscape_score(
    landscape: CompetitorLandscape | None,
) -> float:
    if landscape is None or landscape.total_trials == 0:
        return 0.0
    return clamp(landscape.competitive_risk_score)


def calculate_composite_score(
    genetic_evidence: float,
    tractability: float,
    safety_risk: float,
    competitive_landscape: float,
) -> float:
    composite = (
        clamp(genetic_evidence) * SCORE_WEIGHTS["genetic_evidence"]
        + clamp(tractability) * SCORE_WEIGHTS["tractability"]
        + (1 - clamp(safety_risk)) * SCORE_WEIGHTS["safety_risk"]
        + (1 - clamp(competitive_landscape)) * SCORE_WEIGHTS["competitive_landscape"]
    )
    return clamp(composite)


def build_scores(
    genetic_evidence: float,
    tractability: float,
    safety_risk: float,
    competitive_landscape: float,
) -> TargetScores:
    """TargetScores from raw components; the composite is always derived here."""
    components = {
        "genetic_evidence": clamp(genetic_evidence),
        "tractability": clamp(tractability),
        "safety_risk": clamp(safety_risk),
        "competitive_landscape": clamp(competitive_landscape),
    }
    return TargetScores(
        **components, composite_score=calculate_composite_score(**components)
    )


def _cutoff_label(value: float, cutoffs: tuple[tuple[float, str], ...], default: str) -> str:
    for cutoff, label in cutoffs:
        if value >= cutoff:
            return label
    return default


class TargetScorer:
    """Stateless scoring engine."""

    def score(
        self,
        association: AssociationScore | None,
        tractability: Tractability | None,
        safety_signals: list[SafetySignal],
        landscape: CompetitorLandscape | None,
    ) -> TargetScores:
        return build_scores(
            calculate_genetic_evidence_score(association),
            calculate_tractability_score(tractability),
            calculate_safety_risk_score(safety_signals),
            calculate_competitive_landscape_score(landscape),
        )

    def interpret(self, scores: TargetScores) -> ScoreInterpretation:
        strengths: list[str] = []
        weaknesses: list[str] = []

        if scores.genetic_evidence >= 0.7:
            strengths.append("Strong genetic evidence supporting target-disease link")
        elif scores.genetic_evidence >= 0.4:
            strengths.append("Moderate genetic evidence")
        elif scores.genetic_evidence < 0.2:
            weaknesses.append("Weak genetic evidence for target-disease association")

        if scores.tractability >= 0.6:
            strengths.append("High druggability across multiple modalities")
        elif scores.tractability >= 0.3:
            strengths.append("Tractable by at least one modality")
        elif scores.tractability < 0.2:
            weaknesses.append("Limited druggability options")

        if scores.safety_risk >= 0.6:
            weaknesses.append("Significant safety concerns identified")
        elif scores.safety_risk >= 0.3:
            weaknesses.append("Some safety signals require attention")
        elif scores.safety_risk < 0.1:
            strengths.append("Clean safety profile")

        if scores.competitive_landscape >= 0.6:
            weaknesses.append("High competitive activity in this space")
        elif scores.competitive_landscape >= 0.3:
            weaknesses.append("Moderate competitive landscape")
        elif scores.competitive_landscape < 0.2:
            strengths.append("Favorable competitive landscape")

        return ScoreInterpretation(
            overall=_cutoff_label(scores.composite_score, INTERPRETATION_CUTOFFS, "POOR"),
            strengths=strengths,
            weaknesses=weaknesses,
        )

    def compare(self, first: ScoredTarget, second: ScoredTarget) -> TargetComparison:
        """Head-to-head comparison. Ties on composite go to the first target."""
        diff = first.scores.composite_score - second.scores.composite_score
        advantages: dict[str, str] = {}

        for field, label, higher_is_better in (
            ("genetic_evidence", "genetic_evidence", True),
            ("tractability", "tractability", True),
            ("safety_risk", "safety", False),
            ("competitive_landscape", "competition", False),
        ):
            a = getattr(first.scores, field)
            b = getattr(second.scores, field)
            if a == b:
                continue
            first_wins = a > b if higher_is_better else a < b
            advantages[label] = first.symbol if first_wins else second.symbol

        return TargetComparison(
            winner=first.symbol if diff >= 0 else second.symbol,
            margin=abs(diff),
            advantages=advantages,
        )

    def rank(self, targets: list[ScoredTarget]) -> list[RankedTarget]:
        ordered = sorted(targets, key=lambda t: t.scores.composite_score, reverse=True)
        return [
            RankedTarget(
                rank=i,
                symbol=t.symbol,
                composite_score=t.scores.composite_score,
                tier=_cutoff_label(t.scores.composite_score, TIER_CUTOFFS, "LOW"),
            )
            for i, t in enumerate(ordered, start=1)
        ]
