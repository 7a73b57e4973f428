"""
Verdict decision engine.

An ordered rule pipeline over scores, safety signals and the competitive
landscape:

  1. automatic NO_GO (short-circuits; no flags are computed)
  2. caution and investigation flags
  3. base verdict from composite-score bands
  4. overrides (safety risk caps GO, many investigation flags cap caution)
  5. recommendations from the final verdict and the flags' topics

The engine holds no state; identical inputs give identical decisions.
"""

from target_triage.constants import (
    CAUTION_SCORE,
    GO_SCORE,
    INVESTIGATE_SCORE,
    MAX_SAFETY_RISK,
    MIN_GENETIC_EVIDENCE,
    MIN_TRACTABILITY,
    NO_GO_CRITICAL_SIGNALS,
    NO_GO_GENETIC_EVIDENCE,
    NO_GO_HIGH_SIGNALS,
    NO_GO_SAFETY_RISK,
    OVERRIDE_INVESTIGATION_FLAGS,
    OVERRIDE_SAFETY_RISK,
    QUICK_NO_GO_GENETIC_EVIDENCE,
    QUICK_NO_GO_SAFETY_RISK,
)
from target_triage.models.model_clinical_trials import CompetitorLandscape
from target_triage.models.model_safety import SafetySeverity, SafetySignal
from target_triage.models.model_scoring import (
    Decision,
    DecisionFlag,
    FlagTopic,
    TargetScores,
    Verdict,
    VerdictExplanation,
)


_EXPLANATIONS: dict[Verdict, VerdictExplanation] = {
    Verdict.GO: VerdictExplanation(
        title="Proceed with Development",
        description=(
            "This target shows strong evidence for disease association, favorable "
            "tractability, acceptable safety profile, and manageable competitive landscape."
        ),
        next_steps=[
            "Initiate lead identification/optimization",
            "Begin target engagement assays",
            "Plan biomarker strategy",
            "Prepare disease model validation",
        ],
    ),
    Verdict.GO_WITH_CAUTION: VerdictExplanation(
        title="Proceed with Risk Mitigation",
        description=(
            "This target shows promise but has identified risks that require active "
            "management during development."
        ),
        next_steps=[
            "Define risk mitigation strategy",
            "Establish early safety monitoring",
            "Create decision criteria for stage gates",
            "Plan differentiation studies if competitive concerns",
        ],
    ),
    Verdict.INVESTIGATE_FURTHER: VerdictExplanation(
        title="More Data Needed",
        description=(
            "Current evidence is insufficient to make a confident go/no-go decision. "
            "Additional investigation is recommended."
        ),
        next_steps=[
            "Complete outstanding safety investigations",
            "Gather additional genetic validation",
            "Conduct competitive intelligence",
            "Set timeline for re-evaluation",
        ],
    ),
    Verdict.NO_GO: VerdictExplanation(
        title="Do Not Pursue",
        description=(
            "Significant concerns have been identified that make this target "
            "unsuitable for development at this time."
        ),
        next_steps=[
            "Document decision rationale",
            "Archive findings for future reference",
            "Consider related targets with better profiles",
            "Monitor for new data that might change assessment",
        ],
    ),
}


def _count(signals: list[SafetySignal], severity: SafetySeverity) -> int:
    return sum(1 for s in signals if s.severity == severity)


# ------------------------------------------------------------------
# Rules
# ------------------------------------------------------------------


def check_no_go(scores: TargetScores, signals: list[SafetySignal]) -> list[str]:
    """Reasons for an automatic NO_GO; empty when none apply."""
    reasons = []
    critical = _count(signals, SafetySeverity.CRITICAL)
    high = _count(signals, SafetySeverity.HIGH)

    if critical >= NO_GO_CRITICAL_SIGNALS:
        reasons.append(f"{critical} CRITICAL safety signals identified")
    if high >= NO_GO_HIGH_SIGNALS:
        reasons.append(f"{high} HIGH severity safety signals identified")
    if scores.safety_risk >= NO_GO_SAFETY_RISK:
        reasons.append("Extreme safety risk profile")
    if scores.genetic_evidence < NO_GO_GENETIC_EVIDENCE:
        reasons.append("No meaningful genetic evidence for target-disease link")
    return reasons


def check_caution_flags(
    scores: TargetScores,
    signals: list[SafetySignal],
    landscape: CompetitorLandscape | None,
) -> list[DecisionFlag]:
    flags = []
    critical = _count(signals, SafetySeverity.CRITICAL)
    high = _count(signals, SafetySeverity.HIGH)

    if critical == 1:
        flags.append(
            DecisionFlag(
                message="One CRITICAL safety signal requires attention",
                topics=(FlagTopic.SAFETY,),
            )
        )
    if 2 <= high < NO_GO_HIGH_SIGNALS:
        flags.append(
            DecisionFlag(
                message=f"{high} HIGH severity safety signals present",
                topics=(FlagTopic.SAFETY,),
            )
        )
    if 0.4 <= scores.safety_risk < MAX_SAFETY_RISK:
        flags.append(
            DecisionFlag(
                message="Elevated safety risk requires monitoring",
                topics=(FlagTopic.SAFETY,),
            )
        )

    if scores.competitive_landscape >= 0.5:
        flags.append(
            DecisionFlag(
                message="Significant competitive activity in this space",
                topics=(FlagTopic.COMPETITION,),
            )
        )
    if landscape is not None:
        if landscape.failure_reasons.safety >= 2:
            flags.append(
                DecisionFlag(
                    message="Multiple competitor safety failures - potential target liability",
                    topics=(FlagTopic.SAFETY, FlagTopic.COMPETITION),
                )
            )
        if landscape.active_trials >= 5:
            flags.append(
                DecisionFlag(
                    message="High number of active competitor trials",
                    topics=(FlagTopic.COMPETITION,),
                )
            )

    if MIN_TRACTABILITY <= scores.tractability < 0.3:
        flags.append(
            DecisionFlag(
                message="Limited tractability options available",
                topics=(FlagTopic.TRACTABILITY,),
            )
        )
    if MIN_GENETIC_EVIDENCE <= scores.genetic_evidence < 0.3:
        flags.append(
            DecisionFlag(
                message="Moderate genetic evidence - additional validation recommended",
                topics=(FlagTopic.GENETICS,),
            )
        )
    return flags


def check_investigation_flags(
    scores: TargetScores, signals: list[SafetySignal]
) -> list[DecisionFlag]:
    flags = []

    uninvestigated = [
        s
        for s in signals
        if s.severity >= SafetySeverity.HIGH and not s.is_investigated
    ]
    if uninvestigated:
        flags.append(
            DecisionFlag(
                message=(
                    f"{len(uninvestigated)} high-severity safety signals "
                    "need deeper investigation"
                ),
                topics=(FlagTopic.SAFETY,),
            )
        )
    if 0.4 <= scores.composite_score < 0.5:
        flags.append(
            DecisionFlag(
                message="Borderline composite score - additional data could clarify",
                topics=(FlagTopic.SCORE,),
            )
        )
    if scores.genetic_evidence >= 0.6 and scores.safety_risk >= 0.5:
        flags.append(
            DecisionFlag(
                message="Strong genetics but elevated safety risk - investigate tradeoff",
                topics=(FlagTopic.GENETICS, FlagTopic.SAFETY),
            )
        )
    if scores.tractability >= 0.6 and scores.competitive_landscape >= 0.6:
        flags.append(
            DecisionFlag(
                message=(
                    "Good tractability but high competition - "
                    "assess differentiation strategy"
                ),
                topics=(FlagTopic.TRACTABILITY, FlagTopic.COMPETITION),
            )
        )
    return flags


def base_verdict(
    composite: float,
    caution_flags: list[DecisionFlag],
    investigation_flags: list[DecisionFlag],
) -> Verdict:
    if composite >= GO_SCORE and not caution_flags:
        return Verdict.GO
    if composite >= CAUTION_SCORE:
        if caution_flags:
            return Verdict.GO_WITH_CAUTION
        if investigation_flags:
            return Verdict.INVESTIGATE_FURTHER
        # Mid-band default when no flag fired
        return Verdict.GO_WITH_CAUTION
    if composite >= INVESTIGATE_SCORE:
        return Verdict.INVESTIGATE_FURTHER
    return Verdict.INVESTIGATE_FURTHER if investigation_flags else Verdict.NO_GO


def apply_overrides(
    verdict: Verdict, scores: TargetScores, investigation_flags: list[DecisionFlag]
) -> Verdict:
    if verdict == Verdict.GO and scores.safety_risk >= OVERRIDE_SAFETY_RISK:
        verdict = Verdict.GO_WITH_CAUTION
    if (
        verdict == Verdict.GO_WITH_CAUTION
        and len(investigation_flags) >= OVERRIDE_INVESTIGATION_FLAGS
    ):
        verdict = Verdict.INVESTIGATE_FURTHER
    return verdict


def _has_topic(flags: list[DecisionFlag], topic: FlagTopic) -> bool:
    return any(topic in f.topics for f in flags)


def generate_recommendations(
    verdict: Verdict,
    scores: TargetScores,
    signals: list[SafetySignal],
    landscape: CompetitorLandscape | None,
    caution_flags: list[DecisionFlag],
    investigation_flags: list[DecisionFlag],
) -> list[str]:
    recs: list[str] = []

    if verdict == Verdict.GO:
        recs.append("Proceed with target development")
        if scores.tractability >= 0.6:
            recs.append("Consider small molecule approach given strong tractability")
        if scores.genetic_evidence >= 0.7:
            recs.append("Strong genetic validation supports investment")
        if scores.competitive_landscape < 0.2:
            recs.append("First-mover advantage potential in underexplored space")

    elif verdict == Verdict.GO_WITH_CAUTION:
        recs.append("Proceed with defined risk mitigation strategy")
        if _has_topic(caution_flags, FlagTopic.SAFETY):
            recs.append("Implement robust safety monitoring from early development")
        if _has_topic(caution_flags, FlagTopic.COMPETITION):
            recs.append("Develop clear differentiation strategy from competitors")
        if _has_topic(caution_flags, FlagTopic.TRACTABILITY):
            recs.append("Explore alternative modalities or combination approaches")
        organs = list(dict.fromkeys(s.organ_system for s in signals if s.organ_system))
        if organs:
            recs.append(f"Prioritize {', '.join(organs)} safety assays")

    elif verdict == Verdict.INVESTIGATE_FURTHER:
        recs.append("Gather additional data before committing resources")
        if _has_topic(investigation_flags, FlagTopic.SAFETY):
            recs.append("Complete safety signal investigation")
        if _has_topic(investigation_flags, FlagTopic.GENETICS):
            recs.append("Seek additional genetic validation studies")
        if _has_topic(investigation_flags, FlagTopic.COMPETITION):
            recs.append("Conduct detailed competitive intelligence")
        if scores.genetic_evidence < MIN_GENETIC_EVIDENCE:
            recs.append("Establish stronger target-disease link through functional studies")

    else:
        recs.append("Do not pursue this target at this time")
        recs.append("Document decision rationale for future reference")
        if scores.safety_risk >= QUICK_NO_GO_SAFETY_RISK:
            recs.append("Safety profile incompatible with development")
        if scores.genetic_evidence < QUICK_NO_GO_GENETIC_EVIDENCE:
            recs.append("Insufficient evidence for target-disease association")
        if landscape is not None and landscape.failure_reasons.safety >= 3:
            recs.append(
                "Multiple competitor safety failures suggest target-related liability"
            )

    return list(dict.fromkeys(recs))


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------


class DecisionEngine:
    """Turns scores, signals and landscape into a verdict with rationale."""

    def determine_verdict(
        self,
        scores: TargetScores,
        signals: list[SafetySignal],
        landscape: CompetitorLandscape | None = None,
    ) -> Decision:
        no_go_reasons = check_no_go(scores, signals)
        if no_go_reasons:
            return Decision(
                verdict=Verdict.NO_GO,
                recommendations=generate_recommendations(
                    Verdict.NO_GO, scores, signals, landscape, [], []
                ),
                no_go_reasons=no_go_reasons,
            )

        caution_flags = check_caution_flags(scores, signals, landscape)
        investigation_flags = check_investigation_flags(scores, signals)

        verdict = base_verdict(scores.composite_score, caution_flags, investigation_flags)
        verdict = apply_overrides(verdict, scores, investigation_flags)

        return Decision(
            verdict=verdict,
            recommendations=generate_recommendations(
                verdict, scores, signals, landscape, caution_flags, investigation_flags
            ),
            caution_flags=caution_flags,
            investigation_flags=investigation_flags,
        )

    def generate_summary(
        self,
        symbol: str,
        disease_name: str,
        decision: Decision,
        scores: TargetScores,
    ) -> str:
        """Markdown assessment for a single target."""
        lines = [
            f"## Target Assessment: {symbol} for {disease_name}",
            "",
            f"### Verdict: {decision.verdict.label}",
            "",
            "### Scores",
            f"- **Composite Score:** {scores.composite_score * 100:.0f}%",
            f"- Genetic Evidence: {scores.genetic_evidence * 100:.0f}%",
            f"- Tractability: {scores.tractability * 100:.0f}%",
            f"- Safety Risk: {scores.safety_risk * 100:.0f}%",
            f"- Competitive Landscape: {scores.competitive_landscape * 100:.0f}%",
            "",
        ]
        if decision.no_go_reasons:
            lines.append("### NO-GO Reasons")
            lines += [f"- {r}" for r in decision.no_go_reasons]
            lines.append("")
        lines.append("### Recommendations")
        lines += [f"- {r}" for r in decision.recommendations]
        return "\n".join(lines)

    def quick_verdict(self, scores: TargetScores) -> Verdict:
        """Verdict from scores alone, for screening without signals or landscape."""
        if scores.safety_risk >= QUICK_NO_GO_SAFETY_RISK:
            return Verdict.NO_GO
        if scores.genetic_evidence < QUICK_NO_GO_GENETIC_EVIDENCE:
            return Verdict.NO_GO
        if scores.composite_score >= GO_SCORE:
            return Verdict.GO
        if scores.composite_score >= CAUTION_SCORE:
            return Verdict.GO_WITH_CAUTION
        if scores.composite_score >= INVESTIGATE_SCORE:
            return Verdict.INVESTIGATE_FURTHER
        return Verdict.NO_GO

    def explain_verdict(self, verdict: Verdict) -> VerdictExplanation:
        return _EXPLANATIONS[verdict]
