"""
Capability interfaces consumed by the triage core.

The SafetyInvestigator, CompetitorAnalyzer and TriageOrchestrator depend
on these protocols rather than on concrete clients, so any of the four
providers can be swapped for a fake in tests.
"""

from typing import Protocol

from target_triage.models.model_chembl import ChEMBLTarget, Mechanism, WithdrawnDrug
from target_triage.models.model_clinical_trials import ClinicalTrial
from target_triage.models.model_open_targets import (
    AssociationScore,
    DiseaseHit,
    KnownDrug,
    TargetHit,
    TargetInfo,
    Tractability,
)
from target_triage.models.model_pubmed import PubMedArticle
from target_triage.models.model_safety import SafetyEvidence, SafetySignal


class AssociationLookup(Protocol):
    """Target identity, association, tractability and safety liabilities."""

    async def get_target_info(self, ensembl_id: str) -> TargetInfo | None: ...

    async def get_association_score(
        self, ensembl_id: str, disease_id: str
    ) -> AssociationScore | None: ...

    async def get_tractability(self, ensembl_id: str) -> Tractability | None: ...

    async def get_safety_liabilities(self, ensembl_id: str) -> list[SafetySignal]: ...

    async def get_known_drugs(self, ensembl_id: str) -> list[KnownDrug]: ...

    async def search_target(self, symbol: str) -> TargetHit | None: ...

    async def search_disease(self, query: str) -> DiseaseHit | None: ...

    async def search_diseases(self, query: str) -> list[DiseaseHit]: ...


class CompoundLookup(Protocol):
    """Compound and mechanism data keyed by gene symbol."""

    async def search_target_by_gene(self, symbol: str) -> ChEMBLTarget | None: ...

    async def get_mechanisms_for_target(
        self, target_chembl_id: str
    ) -> list[Mechanism]: ...

    async def get_withdrawn_drugs_for_target(self, symbol: str) -> list[WithdrawnDrug]: ...

    async def search_adverse_effects(
        self, symbol: str, organ_system: str
    ) -> list[SafetyEvidence]: ...


class LiteratureSearch(Protocol):
    """Keyword literature search plus safety-focused variants."""

    async def search(self, query: str, max_results: int = 20) -> list[str]: ...

    async def get_article_details(self, pmids: list[str]) -> list[PubMedArticle]: ...

    async def search_toxicity_papers(
        self, symbol: str, toxicity_type: str | None = None, max_results: int = 10
    ) -> list[SafetyEvidence]: ...

    async def search_organ_toxicity_papers(
        self, symbol: str, organ_system: str, max_results: int = 5
    ) -> list[SafetyEvidence]: ...

    async def search_clinical_safety_papers(
        self, symbol: str, max_results: int = 10
    ) -> list[SafetyEvidence]: ...

    async def search_animal_model_papers(
        self, symbol: str, max_results: int = 5
    ) -> list[SafetyEvidence]: ...


class TrialRegistrySearch(Protocol):
    """Clinical trial registry queries."""

    async def search_trials(
        self, symbol: str, disease_name: str | None = None, max_results: int = 100
    ) -> list[ClinicalTrial]: ...

    async def get_failed_trials(
        self, symbol: str, disease_name: str | None = None
    ) -> list[ClinicalTrial]: ...

    async def get_phase_distribution(
        self, symbol: str, disease_name: str | None = None
    ) -> dict[str, int]: ...
