"""
Triage job and report models.

A TriageJob owns its TargetReports and its single TriageReport. Reports are
immutable once created; re-analysis produces a new report.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from target_triage.models.model_clinical_trials import CompetitorLandscape
from target_triage.models.model_open_targets import (
    AssociationScore,
    KnownDrug,
    TargetInfo,
    Tractability,
)
from target_triage.models.model_safety import SafetySignal
from target_triage.models.model_scoring import TargetScores, Verdict


class TriageStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TriageStatus.COMPLETED, TriageStatus.FAILED)


class TriageJob(BaseModel):
    """Batch identity and progress for a multi-target triage run."""

    id: str
    disease_id: str
    disease_name: str
    genes: list[str]
    status: TriageStatus = TriageStatus.PENDING
    progress: int = 0  # 0-100, never decreases
    current_gene: str | None = None
    error: str | None = None
    started_at: datetime
    completed_at: datetime | None = None


class TargetReport(BaseModel):
    """Full evidence snapshot, scores and verdict for one target."""

    model_config = {"frozen": True}

    id: str | None = None  # assigned by the store
    triage_job_id: str | None = None  # None for standalone analysis
    target_info: TargetInfo
    disease_id: str
    disease_name: str
    association_score: AssociationScore | None = None
    tractability: Tractability | None = None
    safety_signals: list[SafetySignal] = []
    competitor_landscape: CompetitorLandscape | None = None
    known_drugs: list[KnownDrug] = []
    scores: TargetScores
    verdict: Verdict
    recommendations: list[str] = []
    created_at: datetime = Field(default_factory=datetime.now)


class ReportSummary(BaseModel):
    total_targets: int = 0
    go_count: int = 0
    caution_count: int = 0
    investigate_count: int = 0
    no_go_count: int = 0
    top_targets: list[str] = []


class TriageReport(BaseModel):
    """Job-level rollup, written once when the job completes."""

    model_config = {"frozen": True}

    id: str | None = None
    triage_job_id: str
    disease_id: str
    disease_name: str
    target_report_ids: list[str] = []
    summary: ReportSummary
    executive_summary: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
