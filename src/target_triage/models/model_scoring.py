"""Pydantic models for target scores and triage decisions."""

from enum import Enum

from pydantic import BaseModel


class TargetScores(BaseModel):
    """Four independent score components plus the derived composite.

    The composite is always produced by the scorer from the four
    components; it is never set independently.
    """

    model_config = {"frozen": True}

    genetic_evidence: float
    tractability: float
    safety_risk: float
    competitive_landscape: float
    composite_score: float


class Verdict(str, Enum):
    GO = "GO"
    GO_WITH_CAUTION = "GO_WITH_CAUTION"
    INVESTIGATE_FURTHER = "INVESTIGATE_FURTHER"
    NO_GO = "NO_GO"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class FlagTopic(str, Enum):
    SAFETY = "safety"
    COMPETITION = "competition"
    TRACTABILITY = "tractability"
    GENETICS = "genetics"
    SCORE = "score"


class DecisionFlag(BaseModel):
    """A caution or investigation flag raised by the decision engine."""

    model_config = {"frozen": True}

    message: str
    topics: tuple[FlagTopic, ...] = ()


class Decision(BaseModel):
    verdict: Verdict
    recommendations: list[str] = []
    caution_flags: list[DecisionFlag] = []
    investigation_flags: list[DecisionFlag] = []
    no_go_reasons: list[str] = []


class VerdictExplanation(BaseModel):
    title: str
    description: str
    next_steps: list[str]


# ------------------------------------------------------------------
# Scorer helpers
# ------------------------------------------------------------------


class ScoreInterpretation(BaseModel):
    overall: str  # EXCELLENT, GOOD, MODERATE, POOR
    strengths: list[str] = []
    weaknesses: list[str] = []


class ScoredTarget(BaseModel):
    symbol: str
    scores: TargetScores


class TargetComparison(BaseModel):
    winner: str
    margin: float
    advantages: dict[str, str] = {}  # dimension → symbol


class RankedTarget(BaseModel):
    rank: int
    symbol: str
    composite_score: float
    tier: str  # TOP, MID, LOW
