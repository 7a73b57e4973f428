"""
Pydantic models for ClinicalTrials.gov data and the competitive landscape
derived from it.

These are the data contracts between the ClinicalTrials.gov client and the
CompetitorAnalyzer; components never see raw API responses.
"""

from enum import Enum

from pydantic import BaseModel

# ------------------------------------------------------------------
# Trial-level models
# ------------------------------------------------------------------


class TrialStatus(str, Enum):
    RECRUITING = "RECRUITING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"
    WITHDRAWN = "WITHDRAWN"
    SUSPENDED = "SUSPENDED"
    UNKNOWN = "UNKNOWN"


class ClinicalTrial(BaseModel):
    """A single clinical trial record from ClinicalTrials.gov."""

    trial_id: str  # NCT ID
    title: str
    phase: str = "Unknown"  # "Phase 1" .. "Phase 4", "Unknown"
    status: TrialStatus = TrialStatus.UNKNOWN
    sponsor: str | None = None
    start_date: str | None = None
    completion_date: str | None = None
    enrollment: int | None = None
    failure_reason: str | None = None  # only for Terminated/Withdrawn
    url: str | None = None

    @property
    def is_failed(self) -> bool:
        return self.status in (TrialStatus.TERMINATED, TrialStatus.WITHDRAWN)

    @property
    def is_recruiting_or_active(self) -> bool:
        return self.status in (TrialStatus.RECRUITING, TrialStatus.ACTIVE)


# ------------------------------------------------------------------
# Competitive landscape
# ------------------------------------------------------------------


class FailureCategory(str, Enum):
    SAFETY = "safety"
    EFFICACY = "efficacy"
    BUSINESS = "business"
    OTHER = "other"


class FailureReasons(BaseModel):
    """Histogram of failed-trial stop reasons."""

    safety: int = 0
    efficacy: int = 0
    business: int = 0
    other: int = 0


class CompetitorLandscape(BaseModel):
    """Trial landscape for one target-disease pair."""

    target_id: str  # gene symbol the registry was searched with
    disease_id: str
    total_trials: int = 0
    active_trials: int = 0
    completed_trials: int = 0
    failed_trials: int = 0
    trials: list[ClinicalTrial] = []
    failure_reasons: FailureReasons = FailureReasons()
    competitive_risk_score: float = 0.0
    landscape_summary: str = ""
    registry_available: bool = True


class RiskLevel(str, Enum):
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"


class FailureAnalysis(BaseModel):
    """Failure patterns across terminated/withdrawn trials."""

    patterns: list[str] = []
    concerns: list[str] = []
    risk_level: RiskLevel = RiskLevel.LOW


class Competitor(BaseModel):
    """A sponsor with currently recruiting or active trials."""

    sponsor: str
    trial_count: int
    phases: list[str] = []


class OpportunityLevel(str, Enum):
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


class MarketOpportunity(BaseModel):
    level: OpportunityLevel
    score: int
    reasoning: list[str] = []


class LandscapeAnalysis(BaseModel):
    """Full output of CompetitorAnalyzer.analyze_landscape."""

    landscape: CompetitorLandscape
    failure_analysis: FailureAnalysis
    competitors: list[Competitor] = []
    opportunity: MarketOpportunity
    narrative: str = ""


class QuickCompetitiveCheck(BaseModel):
    has_active_trials: bool
    has_failed_trials: bool
    trial_count: int
    risk_level: RiskLevel


class TrialFailure(BaseModel):
    """A failed trial paired with its stop-reason category."""

    trial: ClinicalTrial
    category: FailureCategory
    phase: str
