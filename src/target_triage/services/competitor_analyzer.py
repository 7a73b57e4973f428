"""
Competitive landscape analysis over clinical trial records.

Turns a trial list into failure statistics, a ranked competitor list and a
market-opportunity rating. Everything except the registry fetch is a pure
function so the policy can be tested without a network.
"""

import logging
from collections import Counter

from target_triage.constants import (
    CLINICAL_TRIALS_MAX_RESULTS,
    FAILURE_KEYWORDS,
    LANDSCAPE_ACTIVE_WEIGHT,
    LANDSCAPE_FAILED_WEIGHT,
    LANDSCAPE_LATE_STAGE_WEIGHT,
    LATE_STAGE_PHASES,
    MARKET_CLEAN_HISTORY_BONUS,
    MARKET_FEW_ACTIVE_BONUS,
    MARKET_HIGH_FAILURE_PENALTY,
    MARKET_LATE_STAGE_PENALTY,
    MARKET_LOW_FAILURE_BONUS,
    MARKET_MANY_ACTIVE_PENALTY,
    MARKET_NEUTRAL_SCORE,
    MARKET_NO_ACTIVE_BONUS,
    MARKET_OPPORTUNITY_CUTOFFS,
    MARKET_SAFETY_FAILURE_PENALTY,
)
from target_triage.data_sources.base_client import DataSourceError
from target_triage.data_sources.protocols import TrialRegistrySearch
from target_triage.models.model_clinical_trials import (
    ClinicalTrial,
    Competitor,
    CompetitorLandscape,
    FailureAnalysis,
    FailureCategory,
    FailureReasons,
    LandscapeAnalysis,
    MarketOpportunity,
    OpportunityLevel,
    QuickCompetitiveCheck,
    RiskLevel,
    TrialFailure,
    TrialStatus,
)

logger = logging.getLogger(__name__)

# Statuses counted as ongoing competition in the landscape totals
_ACTIVE_STATUSES = (TrialStatus.RECRUITING, TrialStatus.ACTIVE, TrialStatus.SUSPENDED)


# ------------------------------------------------------------------
# Pure policy
# ------------------------------------------------------------------


def categorize_failure(reason: str | None) -> FailureCategory:
    """Categorize a trial stop reason.

    Keyword lists are checked safety, then efficacy, then business; the
    first match wins, so safety dominates ambiguous text.
    """
    if not reason:
        return FailureCategory.OTHER
    reason_lower = reason.lower()
    for category in (
        FailureCategory.SAFETY,
        FailureCategory.EFFICACY,
        FailureCategory.BUSINESS,
    ):
        if any(k in reason_lower for k in FAILURE_KEYWORDS[category.value]):
            return category
    return FailureCategory.OTHER


def calculate_competitive_risk(trials: list[ClinicalTrial]) -> float:
    """Weighted active / failed / late-stage ratios, clamped to [0, 1]."""
    total = len(trials)
    if total == 0:
        return 0.0
    active = sum(1 for t in trials if t.status in _ACTIVE_STATUSES)
    failed = sum(1 for t in trials if t.is_failed)
    late_stage = sum(1 for t in trials if t.phase in LATE_STAGE_PHASES)
    score = (
        active / total * LANDSCAPE_ACTIVE_WEIGHT
        + failed / total * LANDSCAPE_FAILED_WEIGHT
        + late_stage / total * LANDSCAPE_LATE_STAGE_WEIGHT
    )
    return max(0.0, min(1.0, score))


def build_landscape(
    symbol: str, disease_id: str, disease_name: str, trials: list[ClinicalTrial]
) -> CompetitorLandscape:
    reasons: Counter[FailureCategory] = Counter()
    active = completed = failed = 0
    for trial in trials:
        if trial.status in _ACTIVE_STATUSES:
            active += 1
        elif trial.status == TrialStatus.COMPLETED:
            completed += 1
        elif trial.is_failed:
            failed += 1
            reasons[categorize_failure(trial.failure_reason)] += 1

    risk = calculate_competitive_risk(trials)

    summary = f"{len(trials)} clinical trials found for {symbol} in {disease_name}."
    if active:
        summary += f" {active} trials are currently active."
    if failed:
        summary += f" {failed} trials have failed"
        if reasons[FailureCategory.SAFETY]:
            summary += f" ({reasons[FailureCategory.SAFETY]} due to safety concerns)"
        summary += "."
    if risk > 0.7:
        summary += " HIGH competitive risk."
    elif risk > 0.4:
        summary += " MODERATE competitive risk."
    else:
        summary += " LOW competitive risk."

    return CompetitorLandscape(
        target_id=symbol,
        disease_id=disease_id,
        total_trials=len(trials),
        active_trials=active,
        completed_trials=completed,
        failed_trials=failed,
        trials=trials,
        failure_reasons=FailureReasons(**{c.value: n for c, n in reasons.items()}),
        competitive_risk_score=risk,
        landscape_summary=summary,
    )


def unavailable_landscape(symbol: str, disease_id: str) -> CompetitorLandscape:
    """Zero-trial landscape used when the registry could not be reached."""
    return CompetitorLandscape(
        target_id=symbol,
        disease_id=disease_id,
        landscape_summary="Clinical trial registry unavailable; landscape not assessed.",
        registry_available=False,
    )


def analyze_failure_patterns(trials: list[ClinicalTrial]) -> FailureAnalysis:
    failed = [t for t in trials if t.is_failed]
    if not failed:
        return FailureAnalysis()

    counts = Counter(categorize_failure(t.failure_reason) for t in failed)
    patterns: list[str] = []
    concerns: list[str] = []

    safety_pct = round(counts[FailureCategory.SAFETY] / len(failed) * 100)
    if counts[FailureCategory.SAFETY]:
        patterns.append(f"{safety_pct}% of failures due to safety concerns")
        if safety_pct > 30:
            concerns.append(
                "High rate of safety-related failures suggests target-related toxicity risk"
            )

    efficacy_pct = round(counts[FailureCategory.EFFICACY] / len(failed) * 100)
    if counts[FailureCategory.EFFICACY]:
        patterns.append(f"{efficacy_pct}% of failures due to efficacy issues")
        if efficacy_pct > 40:
            concerns.append(
                "High rate of efficacy failures suggests challenging biology "
                "or patient selection issues"
            )

    late_stage = [t for t in failed if t.phase in LATE_STAGE_PHASES]
    if late_stage:
        patterns.append(f"{len(late_stage)} late-stage (Phase 3/4) failures")
        concerns.append("Late-stage failures indicate significant development risk")

    if counts[FailureCategory.SAFETY] >= 2 or len(late_stage) >= 2 or len(failed) >= 5:
        risk_level = RiskLevel.HIGH
    elif len(failed) >= 2 or counts[FailureCategory.SAFETY] >= 1:
        risk_level = RiskLevel.MODERATE
    else:
        risk_level = RiskLevel.LOW

    return FailureAnalysis(patterns=patterns, concerns=concerns, risk_level=risk_level)


def identify_competitors(trials: list[ClinicalTrial]) -> list[Competitor]:
    """Sponsors of recruiting or active trials, most active first."""
    counts: Counter[str] = Counter()
    phases: dict[str, list[str]] = {}
    for trial in trials:
        if not trial.sponsor or not trial.is_recruiting_or_active:
            continue
        counts[trial.sponsor] += 1
        sponsor_phases = phases.setdefault(trial.sponsor, [])
        if trial.phase not in sponsor_phases:
            sponsor_phases.append(trial.phase)

    # Counter.most_common is stable for ties (first-seen order)
    return [
        Competitor(sponsor=sponsor, trial_count=n, phases=phases[sponsor])
        for sponsor, n in counts.most_common()
    ]


def assess_opportunity(
    landscape: CompetitorLandscape,
    failure_analysis: FailureAnalysis,
    competitors: list[Competitor],
) -> MarketOpportunity:
    """Score market opportunity from a neutral 50 using fixed adjustments."""
    if not landscape.registry_available:
        return MarketOpportunity(
            level=OpportunityLevel.VERY_LOW,
            score=0,
            reasoning=["Clinical trial registry unavailable; opportunity could not be assessed"],
        )

    score = MARKET_NEUTRAL_SCORE
    reasoning: list[str] = []

    if landscape.active_trials == 0:
        score += MARKET_NO_ACTIVE_BONUS
        reasoning.append("No active competitors in clinical development")
    elif landscape.active_trials <= 2:
        score += MARKET_FEW_ACTIVE_BONUS
        reasoning.append("Limited competition with few active trials")
    elif landscape.active_trials >= 5:
        score -= MARKET_MANY_ACTIVE_PENALTY
        reasoning.append("High competition with many active trials")

    late_stage = [
        c for c in competitors if any(p in LATE_STAGE_PHASES for p in c.phases)
    ]
    if late_stage:
        score -= MARKET_LATE_STAGE_PENALTY
        reasoning.append(f"{len(late_stage)} competitor(s) in late-stage development")

    if failure_analysis.risk_level == RiskLevel.HIGH:
        score -= MARKET_HIGH_FAILURE_PENALTY
        reasoning.append("High failure rate suggests challenging target biology")
    elif failure_analysis.risk_level == RiskLevel.LOW and landscape.total_trials > 0:
        score += MARKET_LOW_FAILURE_BONUS
        reasoning.append("Low historical failure rate is encouraging")

    if landscape.failure_reasons.safety >= 2:
        score -= MARKET_SAFETY_FAILURE_PENALTY
        reasoning.append("Multiple safety-related failures indicate target liability")

    if landscape.completed_trials > 0 and landscape.failed_trials == 0:
        score += MARKET_CLEAN_HISTORY_BONUS
        reasoning.append("Previous trials completed without major failures")

    level = OpportunityLevel.VERY_LOW
    for cutoff, name in MARKET_OPPORTUNITY_CUTOFFS:
        if score >= cutoff:
            level = OpportunityLevel(name)
            break

    return MarketOpportunity(level=level, score=score, reasoning=reasoning)


def render_landscape_analysis(
    landscape: CompetitorLandscape,
    failure_analysis: FailureAnalysis,
    competitors: list[Competitor],
) -> str:
    """Markdown narrative of the landscape."""
    lines = [
        f"## Competitive Landscape Analysis for {landscape.target_id}",
        "",
        "### Overview",
        f"- Total trials: {landscape.total_trials}",
        f"- Active trials: {landscape.active_trials}",
        f"- Completed trials: {landscape.completed_trials}",
        f"- Failed trials: {landscape.failed_trials}",
        f"- Competitive risk score: {landscape.competitive_risk_score * 100:.0f}%",
        "",
    ]
    if not landscape.registry_available:
        lines += ["_Trial registry was unavailable; counts are not meaningful._", ""]

    if competitors:
        lines.append("### Key Competitors")
        for c in competitors[:5]:
            lines.append(
                f"- {c.sponsor}: {c.trial_count} active trial(s) in {', '.join(c.phases)}"
            )
        lines.append("")

    if failure_analysis.patterns:
        lines.append("### Failure Patterns")
        lines += [f"- {p}" for p in failure_analysis.patterns]
        lines.append("")

    if failure_analysis.concerns:
        lines.append("### Risk Concerns")
        lines += [f"- {c}" for c in failure_analysis.concerns]
        lines.append("")

    lines.append("### Risk Assessment")
    lines.append(f"Development risk level: **{failure_analysis.risk_level.value}**")
    if failure_analysis.risk_level == RiskLevel.HIGH:
        lines.append(
            "Multiple failed trials and/or safety concerns suggest high development risk."
        )
    elif failure_analysis.risk_level == RiskLevel.MODERATE:
        lines.append(
            "Some failures observed but not a clear pattern of target-related issues."
        )
    else:
        lines.append("Limited failure history; competitive landscape appears favorable.")

    return "\n".join(lines)


# ------------------------------------------------------------------
# Analyzer
# ------------------------------------------------------------------


class CompetitorAnalyzer:
    """Competitive landscape for a target-disease pair, backed by a trial registry."""

    def __init__(self, registry: TrialRegistrySearch):
        self.registry = registry

    async def analyze_landscape(
        self, symbol: str, disease_id: str, disease_name: str
    ) -> LandscapeAnalysis:
        """Never raises for registry failures; an unreachable registry yields an empty landscape."""
        try:
            trials = await self.registry.search_trials(
                symbol, disease_name, max_results=CLINICAL_TRIALS_MAX_RESULTS
            )
        except DataSourceError as e:
            logger.warning(
                "Trial registry unavailable for %s / %s: %s", symbol, disease_name, e
            )
            landscape = unavailable_landscape(symbol, disease_id)
        else:
            landscape = build_landscape(symbol, disease_id, disease_name, trials)

        failure_analysis = analyze_failure_patterns(landscape.trials)
        competitors = identify_competitors(landscape.trials)
        return LandscapeAnalysis(
            landscape=landscape,
            failure_analysis=failure_analysis,
            competitors=competitors,
            opportunity=assess_opportunity(landscape, failure_analysis, competitors),
            narrative=render_landscape_analysis(landscape, failure_analysis, competitors),
        )

    async def quick_competitive_check(
        self, symbol: str, disease_name: str | None = None
    ) -> QuickCompetitiveCheck:
        trials = await self.registry.search_trials(symbol, disease_name, max_results=50)
        active = sum(1 for t in trials if t.is_recruiting_or_active)
        failed = sum(1 for t in trials if t.is_failed)

        if failed >= 3:
            risk_level = RiskLevel.HIGH
        elif failed >= 1 or active >= 5:
            risk_level = RiskLevel.MODERATE
        else:
            risk_level = RiskLevel.LOW

        return QuickCompetitiveCheck(
            has_active_trials=active > 0,
            has_failed_trials=failed > 0,
            trial_count=len(trials),
            risk_level=risk_level,
        )

    async def get_phase_distribution(
        self, symbol: str, disease_name: str | None = None
    ) -> dict[str, int]:
        return await self.registry.get_phase_distribution(symbol, disease_name)

    async def get_failure_reasons(
        self, symbol: str, disease_name: str | None = None
    ) -> list[TrialFailure]:
        failed = await self.registry.get_failed_trials(symbol, disease_name)
        return [
            TrialFailure(
                trial=t, category=categorize_failure(t.failure_reason), phase=t.phase
            )
            for t in failed
        ]

    async def assess_market_opportunity(
        self, symbol: str, disease_id: str, disease_name: str
    ) -> MarketOpportunity:
        analysis = await self.analyze_landscape(symbol, disease_id, disease_name)
        return analysis.opportunity
