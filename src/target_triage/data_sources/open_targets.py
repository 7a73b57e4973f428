"""
Open Targets Platform GraphQL client.

Covers target identity, target-disease association, tractability, safety
liabilities and known drugs. Every method returns pydantic models; raw
GraphQL payloads never leave this module.
"""

import logging
from typing import Any

from target_triage.constants import (
    CACHE_TTL,
    CRITICAL_EVENT_KEYWORDS,
    DATATYPE_FIELDS,
    HIGH_EVENT_KEYWORDS,
    LOW_EVENT_KEYWORDS,
    OPEN_TARGETS_ASSOCIATION_PAGE_SIZE,
    OPEN_TARGETS_BASE_URL,
)
from target_triage.data_sources.base_client import BaseClient, ClientConfig
from target_triage.models.model_open_targets import (
    AssociationScore,
    DiseaseHit,
    KnownDrug,
    TargetHit,
    TargetInfo,
    Tractability,
    TractabilityModality,
)
from target_triage.models.model_safety import (
    SafetyEvidence,
    SafetyEvidenceType,
    SafetySeverity,
    SafetySignal,
)

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# GraphQL queries
# ------------------------------------------------------------------

TARGET_INFO_QUERY = """
query TargetInfo($ensemblId: String!) {
  target(ensemblId: $ensemblId) {
    id
    approvedSymbol
    approvedName
    biotype
    functionDescriptions
    genomicLocation { chromosome start end }
    symbolSynonyms { label }
  }
}
"""

SEARCH_QUERY = """
query Search($queryString: String!, $entityNames: [String!]) {
  search(queryString: $queryString, entityNames: $entityNames, page: {index: 0, size: 10}) {
    hits { id entity name description }
  }
}
"""

ASSOCIATION_QUERY = """
query AssociationScore($ensemblId: String!, $index: Int!, $size: Int!) {
  target(ensemblId: $ensemblId) {
    id
    associatedDiseases(page: {index: $index, size: $size}) {
      count
      rows {
        disease { id name }
        score
        datatypeScores { id score }
      }
    }
  }
}
"""

TRACTABILITY_QUERY = """
query Tractability($ensemblId: String!) {
  target(ensemblId: $ensemblId) {
    id
    tractability { modality value label }
  }
}
"""

SAFETY_LIABILITIES_QUERY = """
query SafetyLiabilities($ensemblId: String!) {
  target(ensemblId: $ensemblId) {
    id
    approvedSymbol
    safetyLiabilities {
      event
      eventId
      effects { direction dosing }
      biosamples { cellLabel tissueLabel }
      datasource
      literature
      url
    }
  }
}
"""

KNOWN_DRUGS_QUERY = """
query KnownDrugs($ensemblId: String!) {
  target(ensemblId: $ensemblId) {
    id
    knownDrugs {
      count
      rows {
        drugId
        drug { id name maximumClinicalTrialPhase isApproved }
        phase
        status
        mechanismOfAction
      }
    }
  }
}
"""

DISEASE_INFO_QUERY = """
query DiseaseInfo($efoId: String!) {
  disease(efoId: $efoId) {
    id
    name
    description
  }
}
"""

# Tractability modality codes used by Open Targets
_SMALL_MOLECULE = "SM"
_ANTIBODY = "AB"
_PROTAC = "PR"


def classify_event_severity(event: str) -> SafetySeverity:
    """Map a free-text safety event name to a severity.

    Keyword groups are checked in order (critical, high, low); an event
    matching none of them is MODERATE.
    """
    event_lower = (event or "").lower()
    if any(k in event_lower for k in CRITICAL_EVENT_KEYWORDS):
        return SafetySeverity.CRITICAL
    if any(k in event_lower for k in HIGH_EVENT_KEYWORDS):
        return SafetySeverity.HIGH
    if any(k in event_lower for k in LOW_EVENT_KEYWORDS):
        return SafetySeverity.LOW
    return SafetySeverity.MODERATE


class OpenTargetsClient(BaseClient):
    """Client for the Open Targets Platform GraphQL API."""

    BASE_URL = OPEN_TARGETS_BASE_URL
    CACHE_TTL = 5 * CACHE_TTL

    def __init__(self, config: ClientConfig | None = None):
        super().__init__(config)

    @property
    def _source_name(self) -> str:
        return "open_targets"

    async def _query(self, method: str, query: str, variables: dict[str, Any]) -> dict:
        result = await self._graphql(
            self.BASE_URL,
            query,
            variables,
            cache_namespace=f"ot_{method}",
            cache_ttl=self.CACHE_TTL,
            context=self._ctx(method, **variables),
        )
        data = self._require(result, method)
        return (data or {}).get("data") or {}

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    async def get_target_info(self, ensembl_id: str) -> TargetInfo | None:
        data = await self._query(
            "get_target_info", TARGET_INFO_QUERY, {"ensemblId": ensembl_id}
        )
        target = data.get("target")
        if not target:
            return None

        location = target.get("genomicLocation") or {}
        descriptions = target.get("functionDescriptions") or []
        return TargetInfo(
            ensembl_id=target["id"],
            symbol=target.get("approvedSymbol") or "",
            name=target.get("approvedName") or "",
            biotype=target.get("biotype"),
            description=descriptions[0] if descriptions else None,
            chromosome=location.get("chromosome"),
            start=location.get("start"),
            end=location.get("end"),
            synonyms=[s["label"] for s in target.get("symbolSynonyms") or []],
        )

    async def search_target(self, symbol: str) -> TargetHit | None:
        """Resolve a gene symbol to a target hit.

        An exact (case-insensitive) name match wins; otherwise the first
        target hit is returned.
        """
        hits = await self._search(symbol, "target")
        if not hits:
            return None
        for hit in hits:
            if hit["name"].upper() == symbol.upper():
                return self._target_hit(hit)
        return self._target_hit(hits[0])

    async def search_disease(self, query: str) -> DiseaseHit | None:
        hits = await self.search_diseases(query)
        return hits[0] if hits else None

    async def search_diseases(self, query: str) -> list[DiseaseHit]:
        hits = await self._search(query, "disease")
        return [
            DiseaseHit(
                id=h["id"], name=h.get("name") or "", description=h.get("description") or ""
            )
            for h in hits
        ]

    async def get_disease_info(self, disease_id: str) -> DiseaseHit | None:
        data = await self._query(
            "get_disease_info", DISEASE_INFO_QUERY, {"efoId": disease_id}
        )
        disease = data.get("disease")
        if not disease:
            return None
        return DiseaseHit(
            id=disease["id"],
            name=disease.get("name") or "",
            description=disease.get("description") or "",
        )

    async def _search(self, query: str, entity: str) -> list[dict]:
        data = await self._query(
            f"search_{entity}",
            SEARCH_QUERY,
            {"queryString": query, "entityNames": [entity]},
        )
        hits = (data.get("search") or {}).get("hits") or []
        return [h for h in hits if h.get("entity") == entity]

    @staticmethod
    def _target_hit(hit: dict) -> TargetHit:
        return TargetHit(
            id=hit["id"],
            name=hit.get("name") or "",
            description=hit.get("description") or "",
        )

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    async def get_association_score(
        self, ensembl_id: str, disease_id: str
    ) -> AssociationScore | None:
        """Association breakdown for one target-disease pair.

        Returns None when the target is unknown, and an all-zero score when
        the target exists but is not associated with the disease.
        """
        page_size = OPEN_TARGETS_ASSOCIATION_PAGE_SIZE
        page_index = 0
        row = None

        # Walk the target's association pages until the disease turns up.
        while row is None:
            data = await self._query(
                "get_association_score",
                ASSOCIATION_QUERY,
                {"ensemblId": ensembl_id, "index": page_index, "size": page_size},
            )
            target = data.get("target")
            if not target:
                return None

            associated = target.get("associatedDiseases") or {}
            rows = associated.get("rows") or []
            row = next((r for r in rows if r["disease"]["id"] == disease_id), None)

            count = associated.get("count")
            if len(rows) < page_size:
                break
            if count is not None and (page_index + 1) * page_size >= count:
                break
            page_index += 1

        if row is None:
            return AssociationScore()

        datatype_scores = {d["id"]: d["score"] for d in row.get("datatypeScores") or []}
        fields = {
            field: datatype_scores.get(datatype_id) or 0.0
            for datatype_id, field in DATATYPE_FIELDS.items()
        }
        return AssociationScore(overall_score=row.get("score") or 0.0, **fields)

    async def get_tractability(self, ensembl_id: str) -> Tractability | None:
        data = await self._query(
            "get_tractability", TRACTABILITY_QUERY, {"ensemblId": ensembl_id}
        )
        target = data.get("target")
        if not target:
            return None

        groups: dict[str, list[dict]] = {}
        for row in target.get("tractability") or []:
            groups.setdefault(row["modality"], []).append(row)

        def modality(code: str) -> TractabilityModality | None:
            rows = groups.get(code)
            if rows is None:
                return None
            buckets = [r["label"] for r in rows if r.get("value")]
            return TractabilityModality(
                modality=code,
                is_assessed=bool(buckets),
                top_category=buckets[0] if buckets else None,
                buckets=buckets,
            )

        return Tractability(
            small_molecule=modality(_SMALL_MOLECULE),
            antibody=modality(_ANTIBODY),
            protac=modality(_PROTAC),
            other_modalities=[
                modality(code)
                for code in groups
                if code not in (_SMALL_MOLECULE, _ANTIBODY, _PROTAC)
            ],
        )

    async def get_safety_liabilities(self, ensembl_id: str) -> list[SafetySignal]:
        data = await self._query(
            "get_safety_liabilities",
            SAFETY_LIABILITIES_QUERY,
            {"ensemblId": ensembl_id},
        )
        target = data.get("target")
        if not target:
            return []

        signals = []
        for liability in target.get("safetyLiabilities") or []:
            event = liability.get("event") or ""
            tissues = [
                b["tissueLabel"]
                for b in liability.get("biosamples") or []
                if b.get("tissueLabel")
            ]
            effects = ", ".join(
                f"{e.get('direction')} {e.get('dosing')}"
                for e in liability.get("effects") or []
            )
            signals.append(
                SafetySignal(
                    signal_type="target_safety",
                    organ_system=tissues[0] if tissues else None,
                    severity=classify_event_severity(event),
                    description=event,
                    evidence=[
                        SafetyEvidence(
                            evidence_type=SafetyEvidenceType.REGULATORY,
                            source=liability.get("datasource") or "Open Targets",
                            description=f"{event} - {effects}",
                            url=liability.get("url") or None,
                        )
                    ],
                )
            )
        logger.debug("%d safety liabilities for %s", len(signals), ensembl_id)
        return signals

    async def get_known_drugs(self, ensembl_id: str) -> list[KnownDrug]:
        data = await self._query(
            "get_known_drugs", KNOWN_DRUGS_QUERY, {"ensemblId": ensembl_id}
        )
        target = data.get("target")
        if not target or not target.get("knownDrugs"):
            return []

        drugs = []
        for row in target["knownDrugs"].get("rows") or []:
            drug = row.get("drug") or {}
            approved = bool(drug.get("isApproved"))
            if row.get("phase"):
                phase = f"Phase {row['phase']}"
            else:
                phase = "Approved" if approved else "Unknown"
            drugs.append(
                KnownDrug(
                    drug_id=drug.get("id") or row.get("drugId") or "",
                    drug_name=drug.get("name") or "",
                    phase=phase,
                    status=row.get("status") or ("Approved" if approved else None),
                    mechanism_of_action=row.get("mechanismOfAction"),
                )
            )
        return drugs
