"""
Triage orchestrator.

Drives a batch of candidate genes through evidence gathering, scoring and
the decision engine, persisting one TargetReport per analyzed gene and a
single TriageReport when the batch finishes.

Genes are processed one at a time in request order. Within a gene the five
evidence fetches run concurrently and each falls back to an empty default
on failure. A gene that cannot be resolved, fails, or times out is logged
and skipped; only persistence failures fail the job.
"""

import asyncio
import logging
from typing import Any, Awaitable

from target_triage.agents.base import BaseAgent
from target_triage.config import Settings, get_settings
from target_triage.constants import TOP_TARGETS_IN_SUMMARY
from target_triage.data_sources.base_client import (
    CacheConfig,
    ClientConfig,
    DataSourceError,
    TokenBucketRateLimiter,
)
from target_triage.data_sources.chembl import ChEMBLClient
from target_triage.data_sources.clinical_trials import ClinicalTrialsClient
from target_triage.data_sources.open_targets import OpenTargetsClient
from target_triage.data_sources.protocols import (
    AssociationLookup,
    CompoundLookup,
    LiteratureSearch,
    TrialRegistrySearch,
)
from target_triage.data_sources.pubmed import PubMedClient
from target_triage.db.triage_store import SqlTriageStore, StoreError, TriageStore
from target_triage.models.model_clinical_trials import LandscapeAnalysis
from target_triage.models.model_open_targets import DiseaseHit, TargetHit, TargetInfo
from target_triage.models.model_safety import SafetyProfile
from target_triage.models.model_scoring import Verdict
from target_triage.models.model_triage import (
    ReportSummary,
    TargetReport,
    TriageJob,
    TriageReport,
    TriageStatus,
)
from target_triage.services.competitor_analyzer import CompetitorAnalyzer
from target_triage.services.decision_engine import DecisionEngine
from target_triage.services.safety_investigator import SafetyInvestigator, build_profile
from target_triage.services.scorer import TargetScorer

logger = logging.getLogger(__name__)


class TargetResolutionError(Exception):
    """A gene symbol could not be mapped to a target, or the target could not be analyzed."""


def build_report_summary(reports: list[TargetReport]) -> ReportSummary:
    """Verdict counts plus the best GO / GO_WITH_CAUTION targets by composite score."""
    verdicts = [r.verdict for r in reports]
    recommended = sorted(
        (r for r in reports if r.verdict in (Verdict.GO, Verdict.GO_WITH_CAUTION)),
        key=lambda r: r.scores.composite_score,
        reverse=True,
    )
    return ReportSummary(
        total_targets=len(reports),
        go_count=verdicts.count(Verdict.GO),
        caution_count=verdicts.count(Verdict.GO_WITH_CAUTION),
        investigate_count=verdicts.count(Verdict.INVESTIGATE_FURTHER),
        no_go_count=verdicts.count(Verdict.NO_GO),
        top_targets=[r.target_info.symbol for r in recommended[:TOP_TARGETS_IN_SUMMARY]],
    )


def render_executive_summary(
    disease_name: str, summary: ReportSummary, reports: list[TargetReport]
) -> str:
    """Markdown narrative for a finished batch."""
    lines = [
        f"# Target Triage Report for {disease_name}",
        "",
        "## Executive Summary",
        "",
        f"Analyzed **{summary.total_targets}** candidate targets.",
        "",
        "### Verdict Distribution",
        f"- {Verdict.GO.label}: {summary.go_count}",
        f"- {Verdict.GO_WITH_CAUTION.label}: {summary.caution_count}",
        f"- {Verdict.INVESTIGATE_FURTHER.label}: {summary.investigate_count}",
        f"- {Verdict.NO_GO.label}: {summary.no_go_count}",
    ]

    ranked = sorted(reports, key=lambda r: r.scores.composite_score, reverse=True)
    if ranked:
        lines += ["", "### Top Targets"]
        for report in ranked[:TOP_TARGETS_IN_SUMMARY]:
            lines.append(
                f"- **{report.target_info.symbol}** - {report.verdict.label} "
                f"(Score: {report.scores.composite_score * 100:.0f}%)"
            )
    return "\n".join(lines)


class TriageOrchestrator(BaseAgent):
    """Runs triage jobs against the four evidence providers and a TriageStore."""

    def __init__(
        self,
        associations: AssociationLookup,
        compounds: CompoundLookup,
        literature: LiteratureSearch,
        registry: TrialRegistrySearch,
        store: TriageStore,
        gene_timeout_seconds: float | None = None,
        scorer: TargetScorer | None = None,
        engine: DecisionEngine | None = None,
    ):
        self.associations = associations
        self.compounds = compounds
        self.literature = literature
        self.registry = registry
        self.store = store
        self.gene_timeout_seconds = (
            gene_timeout_seconds
            if gene_timeout_seconds is not None
            else get_settings().gene_timeout_seconds
        )
        self.scorer = scorer or TargetScorer()
        self.engine = engine or DecisionEngine()
        self.safety = SafetyInvestigator(associations, compounds, literature)
        self.competitors = CompetitorAnalyzer(registry)
        self._tasks: dict[str, asyncio.Task] = {}

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TriageOrchestrator":
        """Wire the live provider clients and a SQL store from settings."""
        settings = settings or get_settings()
        config = ClientConfig(
            cache=CacheConfig(enabled=settings.cache_enabled, directory=settings.cache_dir)
        )
        return cls(
            associations=OpenTargetsClient(config),
            compounds=ChEMBLClient(config),
            literature=PubMedClient(
                config,
                rate_limiter=TokenBucketRateLimiter.per_second(
                    settings.pubmed_requests_per_second
                ),
                api_key=settings.ncbi_api_key,
            ),
            registry=ClinicalTrialsClient(config),
            store=SqlTriageStore(settings.database_url),
            gene_timeout_seconds=settings.gene_timeout_seconds,
        )

    async def close(self) -> None:
        """Wait for scheduled jobs, then close any provider sessions."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
        for client in (self.associations, self.compounds, self.literature, self.registry):
            close = getattr(client, "close", None)
            if close is not None:
                await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Host entry points -----------------------------------------------------

    async def run(self, input_data: dict[str, Any]) -> dict[str, Any]:
        """Run a batch to completion and return the job and its summary."""
        job_id = await self.run_batch_triage(
            input_data["genes"], input_data["disease_id"], input_data["disease_name"]
        )
        job = await self.wait_for_job(job_id)
        report = self.store.get_triage_report_by_job(job_id)
        return {
            "job_id": job_id,
            "status": job.status.value,
            "summary": report.summary.model_dump() if report else None,
        }

    async def run_batch_triage(
        self, genes: list[str], disease_id: str, disease_name: str
    ) -> str:
        """Create a job and schedule it in the background. Returns the job id."""
        job = self.store.create_job(genes, disease_id, disease_name)
        task = asyncio.create_task(self.execute_job(job.id))
        self._tasks[job.id] = task
        # Finished jobs drop out whether or not anyone waits on them.
        task.add_done_callback(lambda _: self._tasks.pop(job.id, None))
        return job.id

    async def wait_for_job(self, job_id: str) -> TriageJob:
        task = self._tasks.get(job_id)
        if task is not None:
            await task
        job = self.store.get_job(job_id)
        if job is None:
            raise StoreError(f"Job {job_id} not found")
        return job

    async def execute_job(self, job_id: str) -> None:
        """Process every gene of a job. Never raises for job-level failures; marks the job FAILED instead."""
        try:
            job = self.store.get_job(job_id)
            if job is None:
                raise StoreError(f"Job {job_id} not found")
            await self._process_job(job)
        except asyncio.CancelledError:
            self._mark_failed(job_id, "Job cancelled")
            raise
        except Exception as e:
            logger.exception("Triage job %s failed", job_id)
            self._mark_failed(job_id, str(e))

    def _mark_failed(self, job_id: str, error: str) -> None:
        try:
            self.store.update_job(job_id, status=TriageStatus.FAILED, error=error)
        except StoreError:
            logger.exception("Could not mark job %s as failed", job_id)

    async def _process_job(self, job: TriageJob) -> None:
        self.store.update_job(job.id, status=TriageStatus.RUNNING, progress=0)
        logger.info(
            "Starting triage job %s: %d genes for %s",
            job.id,
            len(job.genes),
            job.disease_name,
        )

        reports: list[TargetReport] = []
        total = len(job.genes)
        for i, symbol in enumerate(job.genes):
            self.store.update_job(job.id, progress=i * 100 // total, current_gene=symbol)
            report = await self._analyze_with_timeout(
                symbol, job.disease_id, job.disease_name
            )
            if report is None:
                continue
            reports.append(
                self.store.save_target_report(
                    report.model_copy(update={"triage_job_id": job.id})
                )
            )

        summary = build_report_summary(reports)
        self.store.save_triage_report(
            TriageReport(
                triage_job_id=job.id,
                disease_id=job.disease_id,
                disease_name=job.disease_name,
                target_report_ids=[r.id for r in reports],
                summary=summary,
                executive_summary=render_executive_summary(
                    job.disease_name, summary, reports
                ),
            )
        )
        self.store.update_job(
            job.id, status=TriageStatus.COMPLETED, progress=100, current_gene=None
        )
        logger.info(
            "Triage job %s completed: %d of %d genes analyzed",
            job.id,
            len(reports),
            total,
        )

    async def _analyze_with_timeout(
        self, symbol: str, disease_id: str, disease_name: str
    ) -> TargetReport | None:
        """Analyze one gene of a batch, or None if it has to be skipped."""
        try:
            return await asyncio.wait_for(
                self.analyze_target(symbol, disease_id, disease_name),
                timeout=self.gene_timeout_seconds,
            )
        except TargetResolutionError as e:
            logger.error("Skipping %s: %s", symbol, e)
        except asyncio.TimeoutError:
            logger.error(
                "Skipping %s: analysis timed out after %.0fs",
                symbol,
                self.gene_timeout_seconds,
            )
        except Exception:
            logger.exception("Skipping %s: analysis failed", symbol)
        return None

    async def triage_single_target(
        self, symbol: str, disease_id: str, disease_name: str
    ) -> TargetReport:
        """Analyze and persist one target outside of any job."""
        report = await self.analyze_target(symbol, disease_id, disease_name)
        return self.store.save_target_report(report)

    # -- Per-target analysis ---------------------------------------------------

    async def resolve_target(self, symbol: str) -> TargetInfo:
        try:
            hit = await self.associations.search_target(symbol)
        except DataSourceError as e:
            raise TargetResolutionError(f"Could not resolve gene {symbol}: {e}") from e
        if hit is None:
            raise TargetResolutionError(f"Could not resolve gene {symbol}")

        try:
            info = await self.associations.get_target_info(hit.id)
        except DataSourceError as e:
            raise TargetResolutionError(
                f"Could not get target info for {hit.id}: {e}"
            ) from e
        if info is None:
            raise TargetResolutionError(f"Could not get target info for {hit.id}")
        return info

    async def analyze_target(
        self, symbol: str, disease_id: str, disease_name: str
    ) -> TargetReport:
        """Gather evidence, score and decide for one target. Does not persist."""
        target = await self.resolve_target(symbol)
        ensembl_id = target.ensembl_id

        branches: list[tuple[str, Awaitable[Any], Any]] = [
            (
                "association score",
                self.associations.get_association_score(ensembl_id, disease_id),
                None,
            ),
            ("tractability", self.associations.get_tractability(ensembl_id), None),
            (
                "safety profile",
                self.safety.investigate(ensembl_id, symbol),
                build_profile(ensembl_id, []),
            ),
            (
                "competitor landscape",
                self.competitors.analyze_landscape(symbol, disease_id, disease_name),
                None,
            ),
            ("known drugs", self.associations.get_known_drugs(ensembl_id), []),
        ]
        results = await asyncio.gather(
            *(coro for _, coro, _ in branches), return_exceptions=True
        )

        values: list[Any] = []
        for (name, _, default), result in zip(branches, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Error getting %s for %s: %s", name, symbol, result)
                values.append(default)
            else:
                values.append(result)

        association, tractability, safety_profile, landscape_analysis, known_drugs = values
        landscape = landscape_analysis.landscape if landscape_analysis else None

        scores = self.scorer.score(
            association, tractability, safety_profile.signals, landscape
        )
        decision = self.engine.determine_verdict(
            scores, safety_profile.signals, landscape
        )
        logger.info(
            "%s for %s: %s (composite %.2f)",
            target.symbol,
            disease_name,
            decision.verdict.value,
            scores.composite_score,
        )

        return TargetReport(
            target_info=target,
            disease_id=disease_id,
            disease_name=disease_name,
            association_score=association,
            tractability=tractability,
            safety_signals=safety_profile.signals,
            competitor_landscape=landscape,
            known_drugs=known_drugs,
            scores=scores,
            verdict=decision.verdict,
            recommendations=decision.recommendations,
        )

    # -- Read accessors ----------------------------------------------------------

    def get_job(self, job_id: str) -> TriageJob | None:
        return self.store.get_job(job_id)

    def list_jobs(self, status: TriageStatus | None = None) -> list[TriageJob]:
        return self.store.list_jobs(status)

    def get_target_reports(self, job_id: str) -> list[TargetReport]:
        return self.store.get_target_reports_by_job(job_id)

    def get_target_report(self, report_id: str) -> TargetReport | None:
        return self.store.get_target_report(report_id)

    def get_triage_report(self, job_id: str) -> TriageReport | None:
        return self.store.get_triage_report_by_job(job_id)

    # -- Provider pass-throughs ----------------------------------------------------

    async def search_target(self, symbol: str) -> TargetHit | None:
        return await self.associations.search_target(symbol)

    async def search_disease(self, query: str) -> DiseaseHit | None:
        return await self.associations.search_disease(query)

    async def search_diseases(self, query: str) -> list[DiseaseHit]:
        return await self.associations.search_diseases(query)

    async def get_safety_profile(self, target_id: str, symbol: str) -> SafetyProfile:
        return await self.safety.investigate(target_id, symbol)

    async def analyze_competitors(
        self, symbol: str, disease_id: str, disease_name: str
    ) -> LandscapeAnalysis:
        return await self.competitors.analyze_landscape(symbol, disease_id, disease_name)
