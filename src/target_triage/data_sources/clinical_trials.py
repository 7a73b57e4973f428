"""
ClinicalTrials.gov REST API v2 client.

Four methods:
  1. search_trials          — gene (+ disease) → trial records
  2. get_failed_trials      — terminated / withdrawn subset
  3. has_active_trials      — is anyone recruiting right now?
  4. get_phase_distribution — trial counts per phase
"""

import logging

from target_triage.constants import (
    CLINICAL_TRIALS_BASE_URL,
    CLINICAL_TRIALS_MAX_RESULTS,
    CLINICAL_TRIALS_STUDY_URL,
)
from target_triage.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    DataSourceError,
)
from target_triage.models.model_clinical_trials import ClinicalTrial, TrialStatus

logger = logging.getLogger(__name__)

# Registry overall status → TrialStatus
_STATUS_MAP: dict[str, TrialStatus] = {
    "RECRUITING": TrialStatus.RECRUITING,
    "NOT_YET_RECRUITING": TrialStatus.RECRUITING,
    "ENROLLING_BY_INVITATION": TrialStatus.RECRUITING,
    "ACTIVE": TrialStatus.ACTIVE,
    "ACTIVE_NOT_RECRUITING": TrialStatus.ACTIVE,
    "COMPLETED": TrialStatus.COMPLETED,
    "TERMINATED": TrialStatus.TERMINATED,
    "WITHDRAWN": TrialStatus.WITHDRAWN,
    "SUSPENDED": TrialStatus.SUSPENDED,
}

PHASE_BUCKETS: tuple[str, ...] = ("Phase 1", "Phase 2", "Phase 3", "Phase 4", "Unknown")


def map_trial_status(raw_status: str | None) -> TrialStatus:
    key = (raw_status or "").upper().replace(" ", "_")
    return _STATUS_MAP.get(key, TrialStatus.UNKNOWN)


def normalize_phase(phases: list[str] | None) -> str:
    """First listed phase as "Phase N"; "Unknown" when the study lists none."""
    if not phases:
        return "Unknown"
    phase = phases[0]
    if "EARLY_PHASE1" in phase or "PHASE1" in phase or "Phase 1" in phase:
        return "Phase 1"
    for n in (2, 3, 4):
        if f"PHASE{n}" in phase:
            return f"Phase {n}"
    return phase


class ClinicalTrialsClient(BaseClient):
    BASE_URL = CLINICAL_TRIALS_BASE_URL

    def __init__(self, config: ClientConfig | None = None) -> None:
        super().__init__(config)

    @property
    def _source_name(self) -> str:
        return "clinical_trials"

    async def search_trials(
        self,
        symbol: str,
        disease_name: str | None = None,
        max_results: int = 100,
    ) -> list[ClinicalTrial]:
        """Search trials mentioning the gene, optionally scoped to a disease."""
        query = f"{symbol} AND {disease_name}" if disease_name else symbol
        params = {"query.term": query, "pageSize": max_results, "format": "json"}

        result = await self._rest_get(
            self.BASE_URL,
            params,
            cache_namespace="ct_search_trials",
            context=self._ctx("search_trials", query=query),
        )
        data = self._require(result, "trials")
        if not isinstance(data, dict):
            raise DataSourceError(self._source_name, "Unexpected response shape")

        return [self._parse_trial(s) for s in data.get("studies") or []]

    async def get_failed_trials(
        self, symbol: str, disease_name: str | None = None
    ) -> list[ClinicalTrial]:
        trials = await self.search_trials(
            symbol, disease_name, max_results=CLINICAL_TRIALS_MAX_RESULTS
        )
        return [t for t in trials if t.is_failed]

    async def has_active_trials(
        self, symbol: str, disease_name: str | None = None
    ) -> bool:
        trials = await self.search_trials(symbol, disease_name, max_results=50)
        return any(t.is_recruiting_or_active for t in trials)

    async def get_phase_distribution(
        self, symbol: str, disease_name: str | None = None
    ) -> dict[str, int]:
        trials = await self.search_trials(
            symbol, disease_name, max_results=CLINICAL_TRIALS_MAX_RESULTS
        )
        return phase_distribution(trials)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse_trial(self, study: dict) -> ClinicalTrial:
        proto = study.get("protocolSection", {})
        ident = proto.get("identificationModule", {})
        status_mod = proto.get("statusModule", {})
        design = proto.get("designModule", {})
        sponsor_mod = proto.get("sponsorCollaboratorsModule", {})

        nct_id = ident.get("nctId", "")
        status = map_trial_status(status_mod.get("overallStatus"))
        enrollment = (design.get("enrollmentInfo") or {}).get("count")

        return ClinicalTrial(
            trial_id=nct_id,
            title=ident.get("briefTitle", ""),
            phase=normalize_phase(design.get("phases")),
            status=status,
            sponsor=(sponsor_mod.get("leadSponsor") or {}).get("name"),
            start_date=(status_mod.get("startDateStruct") or {}).get("date"),
            completion_date=(status_mod.get("completionDateStruct") or {}).get("date"),
            enrollment=enrollment,
            failure_reason=(
                status_mod.get("whyStopped")
                if status in (TrialStatus.TERMINATED, TrialStatus.WITHDRAWN)
                else None
            ),
            url=f"{CLINICAL_TRIALS_STUDY_URL}/{nct_id}",
        )


def phase_distribution(trials: list[ClinicalTrial]) -> dict[str, int]:
    """Count trials per phase bucket; unrecognised phases count as Unknown."""
    distribution = {bucket: 0 for bucket in PHASE_BUCKETS}
    for trial in trials:
        key = trial.phase if trial.phase in distribution else "Unknown"
        distribution[key] += 1
    return distribution
