"""FastAPI application."""

from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from target_triage import __version__
from target_triage.agents.orchestrator import TargetResolutionError, TriageOrchestrator
from target_triage.config import configure_logging
from target_triage.models.model_triage import (
    TargetReport,
    TriageJob,
    TriageReport,
    TriageStatus,
)

configure_logging()

app = FastAPI(
    title="TargetTriage API",
    description="API for drug target triage against a disease",
    version=__version__,
)


class TriageRequest(BaseModel):
    genes: list[str] = Field(min_length=1)
    disease_id: str
    disease_name: str


class TriageJobCreated(BaseModel):
    job_id: str


class TargetTriageRequest(BaseModel):
    symbol: str
    disease_id: str
    disease_name: str


@lru_cache
def get_orchestrator() -> TriageOrchestrator:
    """Process-wide orchestrator wired from settings."""
    return TriageOrchestrator.from_settings()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.post("/triage", status_code=202)
async def start_triage(
    request: TriageRequest,
    orchestrator: TriageOrchestrator = Depends(get_orchestrator),
) -> TriageJobCreated:
    """Start a batch triage job. Poll /jobs/{job_id} for progress."""
    job_id = await orchestrator.run_batch_triage(
        request.genes, request.disease_id, request.disease_name
    )
    return TriageJobCreated(job_id=job_id)


@app.get("/jobs")
async def list_jobs(
    status: TriageStatus | None = None,
    orchestrator: TriageOrchestrator = Depends(get_orchestrator),
) -> list[TriageJob]:
    return orchestrator.list_jobs(status)


@app.get("/jobs/{job_id}")
async def get_job(
    job_id: str, orchestrator: TriageOrchestrator = Depends(get_orchestrator)
) -> TriageJob:
    job = orchestrator.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job


@app.get("/jobs/{job_id}/reports")
async def get_job_reports(
    job_id: str, orchestrator: TriageOrchestrator = Depends(get_orchestrator)
) -> list[TargetReport]:
    if orchestrator.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return orchestrator.get_target_reports(job_id)


@app.get("/jobs/{job_id}/triage-report")
async def get_job_triage_report(
    job_id: str, orchestrator: TriageOrchestrator = Depends(get_orchestrator)
) -> TriageReport:
    report = orchestrator.get_triage_report(job_id)
    if report is None:
        raise HTTPException(
            status_code=404, detail=f"No triage report for job {job_id}"
        )
    return report


@app.get("/reports/{report_id}")
async def get_report(
    report_id: str, orchestrator: TriageOrchestrator = Depends(get_orchestrator)
) -> TargetReport:
    report = orchestrator.get_target_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"Report {report_id} not found")
    return report


@app.post("/targets/triage")
async def triage_target(
    request: TargetTriageRequest,
    orchestrator: TriageOrchestrator = Depends(get_orchestrator),
) -> TargetReport:
    """Analyze a single target outside of any job."""
    try:
        return await orchestrator.triage_single_target(
            request.symbol, request.disease_id, request.disease_name
        )
    except TargetResolutionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
