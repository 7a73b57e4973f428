"""Pytest configuration and fixtures.

The fake providers below implement the four capability protocols in memory
so services and the orchestrator can be exercised without network access.
"""

import pytest

from target_triage.agents.orchestrator import TriageOrchestrator
from target_triage.data_sources.clinical_trials import phase_distribution
from target_triage.db.triage_store import SqlTriageStore
from target_triage.models.model_clinical_trials import ClinicalTrial, TrialStatus
from target_triage.models.model_open_targets import (
    AssociationScore,
    DiseaseHit,
    TargetHit,
    TargetInfo,
    Tractability,
    TractabilityModality,
)
from target_triage.models.model_safety import SafetySeverity, SafetySignal


class FakeAssociations:
    """In-memory AssociationLookup keyed by gene symbol / Ensembl ID."""

    def __init__(self):
        self.targets: dict[str, TargetInfo] = {}
        self.associations: dict[str, AssociationScore] = {}
        self.tractability: dict[str, Tractability] = {}
        self.liabilities: dict[str, list[SafetySignal]] = {}
        self.known_drugs: dict[str, list] = {}
        self.diseases: list[DiseaseHit] = []

    def add_target(self, symbol: str, ensembl_id: str, **evidence) -> TargetInfo:
        info = TargetInfo(ensembl_id=ensembl_id, symbol=symbol, name=f"{symbol} protein")
        self.targets[symbol] = info
        if "association" in evidence:
            self.associations[ensembl_id] = evidence["association"]
        if "tractability" in evidence:
            self.tractability[ensembl_id] = evidence["tractability"]
        if "liabilities" in evidence:
            self.liabilities[ensembl_id] = evidence["liabilities"]
        return info

    async def search_target(self, symbol: str) -> TargetHit | None:
        info = self.targets.get(symbol)
        return TargetHit(id=info.ensembl_id, name=info.name) if info else None

    async def get_target_info(self, ensembl_id: str) -> TargetInfo | None:
        return next(
            (t for t in self.targets.values() if t.ensembl_id == ensembl_id), None
        )

    async def get_association_score(self, ensembl_id: str, disease_id: str):
        return self.associations.get(ensembl_id)

    async def get_tractability(self, ensembl_id: str):
        return self.tractability.get(ensembl_id)

    async def get_safety_liabilities(self, ensembl_id: str) -> list[SafetySignal]:
        return list(self.liabilities.get(ensembl_id, []))

    async def get_known_drugs(self, ensembl_id: str) -> list:
        return list(self.known_drugs.get(ensembl_id, []))

    async def search_disease(self, query: str) -> DiseaseHit | None:
        return self.diseases[0] if self.diseases else None

    async def search_diseases(self, query: str) -> list[DiseaseHit]:
        return list(self.diseases)


class FakeCompounds:
    def __init__(self):
        self.withdrawn: list = []
        self.adverse_effects: list = []

    async def search_target_by_gene(self, symbol: str):
        return None

    async def get_mechanisms_for_target(self, target_chembl_id: str) -> list:
        return []

    async def get_withdrawn_drugs_for_target(self, symbol: str) -> list:
        return list(self.withdrawn)

    async def search_adverse_effects(self, symbol: str, organ_system: str) -> list:
        return list(self.adverse_effects)


class FakeLiterature:
    def __init__(self):
        self.toxicity: list = []
        self.organ: list = []
        self.clinical: list = []
        self.animal: list = []

    async def search(self, query: str, max_results: int = 20) -> list[str]:
        return []

    async def get_article_details(self, pmids: list[str]) -> list:
        return []

    async def search_toxicity_papers(self, symbol, toxicity_type=None, max_results=10):
        return list(self.toxicity)

    async def search_organ_toxicity_papers(self, symbol, organ_system, max_results=5):
        return list(self.organ)

    async def search_clinical_safety_papers(self, symbol, max_results=10):
        return list(self.clinical)

    async def search_animal_model_papers(self, symbol, max_results=5):
        return list(self.animal)


class FakeRegistry:
    def __init__(self):
        self.trials: list[ClinicalTrial] = []

    async def search_trials(self, symbol, disease_name=None, max_results=100):
        return list(self.trials[:max_results])

    async def get_failed_trials(self, symbol, disease_name=None):
        return [t for t in self.trials if t.is_failed]

    async def get_phase_distribution(self, symbol, disease_name=None):
        return phase_distribution(self.trials)


def make_signal(
    severity: SafetySeverity = SafetySeverity.MODERATE,
    signal_type: str = "target_safety",
    organ_system: str | None = None,
    **kwargs,
) -> SafetySignal:
    return SafetySignal(
        signal_type=signal_type,
        organ_system=organ_system,
        severity=severity,
        description=kwargs.pop("description", "Adverse event"),
        **kwargs,
    )


def make_trial(
    trial_id: str,
    status: TrialStatus = TrialStatus.RECRUITING,
    phase: str = "Phase 2",
    sponsor: str | None = "Acme Pharma",
    failure_reason: str | None = None,
) -> ClinicalTrial:
    return ClinicalTrial(
        trial_id=trial_id,
        title=f"Study {trial_id}",
        phase=phase,
        status=status,
        sponsor=sponsor,
        failure_reason=failure_reason,
    )


def tractable_sm() -> Tractability:
    """Small molecule assessed with three supporting buckets."""
    return Tractability(
        small_molecule=TractabilityModality(
            modality="SM",
            is_assessed=True,
            top_category="Approved Drug",
            buckets=["Approved Drug", "Advanced Clinical", "High-Quality Ligand"],
        )
    )


@pytest.fixture
def associations() -> FakeAssociations:
    return FakeAssociations()


@pytest.fixture
def compounds() -> FakeCompounds:
    return FakeCompounds()


@pytest.fixture
def literature() -> FakeLiterature:
    return FakeLiterature()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def store() -> SqlTriageStore:
    """Fresh in-memory SQLite store per test."""
    return SqlTriageStore("sqlite://")


@pytest.fixture
def orchestrator(associations, compounds, literature, registry, store):
    return TriageOrchestrator(
        associations=associations,
        compounds=compounds,
        literature=literature,
        registry=registry,
        store=store,
        gene_timeout_seconds=5.0,
    )
