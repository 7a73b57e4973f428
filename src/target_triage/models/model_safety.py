"""
Pydantic models for safety signals and their supporting evidence.

Signals originate from Open Targets safety liabilities and are enriched by
the SafetyInvestigator with literature, compound and regulatory evidence.
"""

from enum import Enum

from pydantic import BaseModel


class SafetySeverity(str, Enum):
    """Ordered severity: CRITICAL > HIGH > MODERATE > LOW > INFORMATIONAL."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    INFORMATIONAL = "INFORMATIONAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: "SafetySeverity") -> bool:  # type: ignore[override]
        if not isinstance(other, SafetySeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "SafetySeverity") -> bool:  # type: ignore[override]
        if not isinstance(other, SafetySeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "SafetySeverity") -> bool:  # type: ignore[override]
        if not isinstance(other, SafetySeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "SafetySeverity") -> bool:  # type: ignore[override]
        if not isinstance(other, SafetySeverity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK: dict[SafetySeverity, int] = {
    SafetySeverity.CRITICAL: 4,
    SafetySeverity.HIGH: 3,
    SafetySeverity.MODERATE: 2,
    SafetySeverity.LOW: 1,
    SafetySeverity.INFORMATIONAL: 0,
}


class SafetyEvidenceType(str, Enum):
    LITERATURE = "literature"
    COMPOUND = "compound"
    CLINICAL_TRIAL = "clinical_trial"
    REGULATORY = "regulatory"
    ANIMAL_MODEL = "animal_model"
    IN_VITRO = "in_vitro"


class SafetyEvidence(BaseModel):
    """A single piece of evidence behind a safety signal."""

    evidence_type: SafetyEvidenceType
    source: str  # e.g. "PubMed", "ChEMBL", "ToxCast"
    description: str
    url: str | None = None
    confidence: float | None = None  # 0-1


class SafetySignal(BaseModel):
    """A reported adverse effect associated with modulating a target."""

    signal_type: str  # e.g. "target_safety", "hepatotoxicity"
    organ_system: str | None = None
    severity: SafetySeverity = SafetySeverity.MODERATE
    description: str = ""
    evidence: list[SafetyEvidence] = []
    investigation_summary: str | None = None

    @property
    def is_investigated(self) -> bool:
        return self.investigation_summary is not None


class SafetyProfile(BaseModel):
    """All safety signals for a target plus the aggregate risk."""

    target_id: str
    signals: list[SafetySignal] = []
    overall_risk: SafetySeverity = SafetySeverity.INFORMATIONAL
    critical_signal_count: int = 0
    high_signal_count: int = 0
    moderate_signal_count: int = 0
    low_signal_count: int = 0  # LOW and INFORMATIONAL


class QuickSafetyCheck(BaseModel):
    """Screening result without secondary investigation."""

    has_critical_signals: bool
    signal_count: int
