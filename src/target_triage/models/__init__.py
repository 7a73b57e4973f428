"""Data models for target triage."""

from target_triage.models.model_clinical_trials import (
    ClinicalTrial,
    CompetitorLandscape,
    FailureReasons,
    LandscapeAnalysis,
    TrialStatus,
)
from target_triage.models.model_open_targets import (
    AssociationScore,
    KnownDrug,
    TargetInfo,
    Tractability,
    TractabilityModality,
)
from target_triage.models.model_safety import (
    SafetyEvidence,
    SafetyEvidenceType,
    SafetyProfile,
    SafetySeverity,
    SafetySignal,
)
from target_triage.models.model_scoring import Decision, TargetScores, Verdict
from target_triage.models.model_triage import (
    ReportSummary,
    TargetReport,
    TriageJob,
    TriageReport,
    TriageStatus,
)

__all__ = [
    "AssociationScore",
    "ClinicalTrial",
    "CompetitorLandscape",
    "Decision",
    "FailureReasons",
    "KnownDrug",
    "LandscapeAnalysis",
    "ReportSummary",
    "SafetyEvidence",
    "SafetyEvidenceType",
    "SafetyProfile",
    "SafetySeverity",
    "SafetySignal",
    "TargetInfo",
    "TargetReport",
    "TargetScores",
    "Tractability",
    "TractabilityModality",
    "TrialStatus",
    "TriageJob",
    "TriageReport",
    "TriageStatus",
    "Verdict",
]
