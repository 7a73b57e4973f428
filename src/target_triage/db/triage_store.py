"""
Persistence for triage jobs and reports.

`TriageStore` is the contract the orchestrator and host surfaces rely on;
`SqlTriageStore` implements it on SQLAlchemy. Reports are append-only:
they are written once and never updated.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from target_triage.db.base import Base, make_engine, make_session_factory
from target_triage.models.model_scoring import Verdict
from target_triage.models.model_triage import (
    TargetReport,
    TriageJob,
    TriageReport,
    TriageStatus,
)
from target_triage.sqlalchemy.triage import (
    TargetReportRow,
    TriageJobRow,
    TriageReportRow,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()

_ALLOWED_TRANSITIONS: dict[TriageStatus, set[TriageStatus]] = {
    TriageStatus.PENDING: {TriageStatus.PENDING, TriageStatus.RUNNING, TriageStatus.FAILED},
    TriageStatus.RUNNING: {
        TriageStatus.RUNNING,
        TriageStatus.COMPLETED,
        TriageStatus.FAILED,
    },
    TriageStatus.COMPLETED: set(),
    TriageStatus.FAILED: set(),
}


class StoreError(Exception):
    """Persistence is unavailable or rejected a write."""


class JobStateError(StoreError):
    """An update would break job lifecycle rules."""


class TriageStore(Protocol):
    def create_job(
        self, genes: list[str], disease_id: str, disease_name: str
    ) -> TriageJob: ...

    def get_job(self, job_id: str) -> TriageJob | None: ...

    def list_jobs(self, status: TriageStatus | None = None) -> list[TriageJob]: ...

    def update_job(
        self,
        job_id: str,
        *,
        status: TriageStatus | None = None,
        progress: int | None = None,
        current_gene: str | None = _UNSET,
        error: str | None = None,
    ) -> TriageJob: ...

    def save_target_report(self, report: TargetReport) -> TargetReport: ...

    def get_target_report(self, report_id: str) -> TargetReport | None: ...

    def get_target_reports_by_job(self, job_id: str) -> list[TargetReport]: ...

    def get_target_reports_by_verdict(self, verdict: Verdict) -> list[TargetReport]: ...

    def save_triage_report(self, report: TriageReport) -> TriageReport: ...

    def get_triage_report(self, report_id: str) -> TriageReport | None: ...

    def get_triage_report_by_job(self, job_id: str) -> TriageReport | None: ...

    def list_triage_reports(self) -> list[TriageReport]: ...


def _new_id() -> str:
    return uuid.uuid4().hex


def _job_from_row(row: TriageJobRow) -> TriageJob:
    return TriageJob(
        id=row.id,
        disease_id=row.disease_id,
        disease_name=row.disease_name,
        genes=list(row.genes),
        status=TriageStatus(row.status),
        progress=row.progress,
        current_gene=row.current_gene,
        error=row.error,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


class SqlTriageStore:
    """SQLAlchemy-backed TriageStore. Creates its tables on first use."""

    def __init__(self, database_url: str):
        self.engine = make_engine(database_url)
        self._session_factory = make_session_factory(self.engine)
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not initialise database: {e}") from e

    def _session(self):
        return self._session_factory()

    # -- Jobs -----------------------------------------------------------------

    def create_job(self, genes: list[str], disease_id: str, disease_name: str) -> TriageJob:
        row = TriageJobRow(
            id=_new_id(),
            disease_id=disease_id,
            disease_name=disease_name,
            genes=list(genes),
            status=TriageStatus.PENDING.value,
            progress=0,
            started_at=datetime.now(),
        )
        try:
            with self._session() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not create job: {e}") from e
        logger.info("Created triage job %s for %d genes", row.id, len(genes))
        return _job_from_row(row)

    def get_job(self, job_id: str) -> TriageJob | None:
        try:
            with self._session() as session:
                row = session.get(TriageJobRow, job_id)
                return _job_from_row(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read job {job_id}: {e}") from e

    def list_jobs(self, status: TriageStatus | None = None) -> list[TriageJob]:
        stmt = select(TriageJobRow).order_by(TriageJobRow.started_at.desc())
        if status is not None:
            stmt = stmt.where(TriageJobRow.status == status.value)
        try:
            with self._session() as session:
                return [_job_from_row(r) for r in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list jobs: {e}") from e

    def update_job(
        self,
        job_id: str,
        *,
        status: TriageStatus | None = None,
        progress: int | None = None,
        current_gene: str | None = _UNSET,
        error: str | None = None,
    ) -> TriageJob:
        """Apply a partial update.

        Raises JobStateError if the job is already terminal, the status
        change is not a legal transition, or progress would go backwards.
        """
        try:
            with self._session() as session, session.begin():
                row = session.get(TriageJobRow, job_id)
                if row is None:
                    raise StoreError(f"Job {job_id} not found")

                current = TriageStatus(row.status)
                if current.is_terminal:
                    raise JobStateError(f"Job {job_id} is already {current.value}")
                if status is not None and status not in _ALLOWED_TRANSITIONS[current]:
                    raise JobStateError(
                        f"Job {job_id} cannot move from {current.value} to {status.value}"
                    )
                if progress is not None:
                    if progress < row.progress:
                        raise JobStateError(
                            f"Job {job_id} progress cannot decrease "
                            f"({row.progress} -> {progress})"
                        )
                    row.progress = min(progress, 100)

                if status is not None:
                    row.status = status.value
                    if status.is_terminal:
                        row.completed_at = datetime.now()
                if current_gene is not _UNSET:
                    row.current_gene = current_gene
                if error is not None:
                    row.error = error

                return _job_from_row(row)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not update job {job_id}: {e}") from e

    # -- Target reports ---------------------------------------------------------

    def save_target_report(self, report: TargetReport) -> TargetReport:
        saved = report.model_copy(update={"id": _new_id()})
        row = TargetReportRow(
            id=saved.id,
            triage_job_id=saved.triage_job_id,
            symbol=saved.target_info.symbol,
            disease_id=saved.disease_id,
            verdict=saved.verdict.value,
            composite_score=saved.scores.composite_score,
            payload=saved.model_dump(mode="json"),
            created_at=saved.created_at,
        )
        try:
            with self._session() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not save report for {row.symbol}: {e}") from e
        return saved

    def get_target_report(self, report_id: str) -> TargetReport | None:
        stmt = select(TargetReportRow).where(TargetReportRow.id == report_id)
        rows = self._target_reports(stmt)
        return rows[0] if rows else None

    def get_target_reports_by_job(self, job_id: str) -> list[TargetReport]:
        stmt = (
            select(TargetReportRow)
            .where(TargetReportRow.triage_job_id == job_id)
            .order_by(TargetReportRow.seq)
        )
        return self._target_reports(stmt)

    def get_target_reports_by_verdict(self, verdict: Verdict) -> list[TargetReport]:
        stmt = (
            select(TargetReportRow)
            .where(TargetReportRow.verdict == verdict.value)
            .order_by(TargetReportRow.seq)
        )
        return self._target_reports(stmt)

    def _target_reports(self, stmt) -> list[TargetReport]:
        try:
            with self._session() as session:
                return [
                    TargetReport.model_validate(r.payload) for r in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read target reports: {e}") from e

    # -- Triage reports ---------------------------------------------------------

    def save_triage_report(self, report: TriageReport) -> TriageReport:
        saved = report.model_copy(update={"id": _new_id()})
        row = TriageReportRow(
            id=saved.id,
            triage_job_id=saved.triage_job_id,
            payload=saved.model_dump(mode="json"),
            created_at=saved.created_at,
        )
        try:
            with self._session() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise StoreError(
                f"Could not save triage report for job {saved.triage_job_id}: {e}"
            ) from e
        return saved

    def get_triage_report(self, report_id: str) -> TriageReport | None:
        return self._one_triage_report(
            select(TriageReportRow).where(TriageReportRow.id == report_id)
        )

    def get_triage_report_by_job(self, job_id: str) -> TriageReport | None:
        return self._one_triage_report(
            select(TriageReportRow).where(TriageReportRow.triage_job_id == job_id)
        )

    def list_triage_reports(self) -> list[TriageReport]:
        stmt = select(TriageReportRow).order_by(TriageReportRow.created_at.desc())
        try:
            with self._session() as session:
                return [
                    TriageReport.model_validate(r.payload) for r in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list triage reports: {e}") from e

    def _one_triage_report(self, stmt) -> TriageReport | None:
        try:
            with self._session() as session:
                row = session.scalars(stmt).first()
                return TriageReport.model_validate(row.payload) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read triage report: {e}") from e
