from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from target_triage.db.base import Base


class TriageJobRow(Base):
    __tablename__ = "triage_jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    disease_id: Mapped[str] = mapped_column(Text, nullable=False)
    disease_name: Mapped[str] = mapped_column(Text, nullable=False)
    genes: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_gene: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class TargetReportRow(Base):
    __tablename__ = "target_reports"

    # Insertion order; reports are listed in the order they were completed
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    triage_job_id: Mapped[str | None] = mapped_column(
        ForeignKey("triage_jobs.id"), nullable=True, index=True
    )
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    disease_id: Mapped[str] = mapped_column(Text, nullable=False)
    verdict: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    composite_score: Mapped[float] = mapped_column(Float, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class TriageReportRow(Base):
    __tablename__ = "triage_reports"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    triage_job_id: Mapped[str] = mapped_column(
        ForeignKey("triage_jobs.id"), unique=True, nullable=False
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
