"""ChEMBL API client."""

import logging

from target_triage.constants import (
    CHEMBL_BASE_URL,
    CHEMBL_COMPOUND_URL,
    CHEMBL_TOXICITY_MOLECULE_LIMIT,
    CHEMBL_WITHDRAWN_MOLECULE_LIMIT,
    ORGAN_ADVERSE_EFFECT_TERMS,
)
from target_triage.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    DataSourceError,
)
from target_triage.models.model_chembl import (
    ChEMBLTarget,
    Mechanism,
    Molecule,
    WithdrawnDrug,
)
from target_triage.models.model_safety import SafetyEvidence, SafetyEvidenceType

logger = logging.getLogger(__name__)

# Withdrawal-reason fragments that always count as toxicity
_TOXICITY_FRAGMENTS = ("hepat", "cardio", "toxic")


class ChEMBLClient(BaseClient):
    """Client for querying ChEMBL targets, mechanisms and molecules."""

    def __init__(self, config: ClientConfig | None = None) -> None:
        super().__init__(config)

    @property
    def _source_name(self) -> str:
        return "chembl"

    async def _get(self, endpoint: str, method: str, **params) -> dict:
        url = f"{CHEMBL_BASE_URL}/{endpoint}.json"
        result = await self._rest_get(
            url,
            params,
            cache_namespace=f"chembl_{method}",
            context=self._ctx(method, **params),
        )
        data = self._require(result, method)
        if not isinstance(data, dict):
            raise DataSourceError(
                self._source_name, f"Unexpected response shape for '{endpoint}'"
            )
        return data

    async def search_target_by_gene(self, symbol: str) -> ChEMBLTarget | None:
        """Find the ChEMBL target for a gene symbol.

        Prefers a human target whose name contains the symbol or which is a
        SINGLE PROTEIN; falls back to the first hit.
        """
        data = await self._get("target/search", "search_target_by_gene", q=symbol, limit=10)
        targets = data.get("targets") or []
        if not targets:
            return None

        def is_preferred(t: dict) -> bool:
            return t.get("organism") == "Homo sapiens" and (
                symbol.upper() in (t.get("pref_name") or "").upper()
                or t.get("target_type") == "SINGLE PROTEIN"
            )

        raw = next((t for t in targets if is_preferred(t)), targets[0])
        return ChEMBLTarget(
            target_chembl_id=raw["target_chembl_id"],
            name=raw.get("pref_name") or "",
            target_type=raw.get("target_type") or "",
            organism=raw.get("organism") or "",
        )

    async def get_mechanisms_for_target(self, target_chembl_id: str) -> list[Mechanism]:
        data = await self._get(
            "mechanism",
            "get_mechanisms_for_target",
            target_chembl_id=target_chembl_id,
            limit=100,
        )
        return [
            Mechanism(
                molecule_chembl_id=m["molecule_chembl_id"],
                mechanism_of_action=m.get("mechanism_of_action") or "",
                action_type=m.get("action_type") or "",
            )
            for m in data.get("mechanisms") or []
            if m.get("molecule_chembl_id")
        ]

    async def get_molecule(self, chembl_id: str) -> Molecule | None:
        """Fetch molecule data by ChEMBL ID. Returns None if ChEMBL has no such molecule."""
        try:
            data = await self._get(f"molecule/{chembl_id}", "get_molecule")
        except DataSourceError as e:
            if e.status_code == 404:
                return None
            raise
        return Molecule.model_validate(data)

    async def _target_molecules(self, symbol: str, limit: int) -> list[Molecule]:
        """Molecules acting on the gene's ChEMBL target, in mechanism order."""
        target = await self.search_target_by_gene(symbol)
        if target is None:
            return []
        mechanisms = await self.get_mechanisms_for_target(target.target_chembl_id)

        molecules = []
        for mechanism in mechanisms[:limit]:
            molecule = await self.get_molecule(mechanism.molecule_chembl_id)
            if molecule is not None:
                molecules.append(molecule)
        return molecules

    async def get_withdrawn_drugs_for_target(self, symbol: str) -> list[WithdrawnDrug]:
        molecules = await self._target_molecules(symbol, CHEMBL_WITHDRAWN_MOLECULE_LIMIT)
        return [
            WithdrawnDrug(
                drug_name=m.display_name,
                chembl_id=m.molecule_chembl_id,
                withdrawn_reason=m.withdrawn_reason or "Unknown reason",
                max_phase=m.max_phase,
            )
            for m in molecules
            if m.withdrawn_flag
        ]

    async def search_compounds_with_toxicity(
        self, symbol: str, toxicity_type: str
    ) -> list[SafetyEvidence]:
        molecules = await self._target_molecules(symbol, CHEMBL_TOXICITY_MOLECULE_LIMIT)
        return self._toxicity_evidence(molecules, toxicity_type)

    async def search_adverse_effects(
        self, symbol: str, organ_system: str
    ) -> list[SafetyEvidence]:
        """Withdrawn-compound evidence for an organ system, deduplicated."""
        terms = ORGAN_ADVERSE_EFFECT_TERMS.get(organ_system.lower(), [organ_system])
        molecules = await self._target_molecules(symbol, CHEMBL_TOXICITY_MOLECULE_LIMIT)

        seen: set[tuple[str, str]] = set()
        evidence = []
        for term in terms:
            for item in self._toxicity_evidence(molecules, term):
                key = (item.source, item.description)
                if key in seen:
                    continue
                seen.add(key)
                evidence.append(item)
        return evidence

    @staticmethod
    def _toxicity_evidence(
        molecules: list[Molecule], toxicity_type: str
    ) -> list[SafetyEvidence]:
        toxicity_lower = toxicity_type.lower()
        evidence = []
        for molecule in molecules:
            if not (molecule.withdrawn_flag and molecule.withdrawn_reason):
                continue
            reason = molecule.withdrawn_reason.lower()
            if toxicity_lower in reason or any(f in reason for f in _TOXICITY_FRAGMENTS):
                evidence.append(
                    SafetyEvidence(
                        evidence_type=SafetyEvidenceType.COMPOUND,
                        source="ChEMBL",
                        description=(
                            f"{molecule.display_name}: Withdrawn - "
                            f"{molecule.withdrawn_reason}"
                        ),
                        url=f"{CHEMBL_COMPOUND_URL}/{molecule.molecule_chembl_id}/",
                        confidence=0.9,
                    )
                )
        return evidence
