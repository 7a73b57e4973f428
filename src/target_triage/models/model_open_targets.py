"""
Pydantic models for Open Targets data.

These are the data contracts between the Open Targets client and the core
components. Components receive these models and never see raw GraphQL
responses.
"""

from pydantic import BaseModel

# ------------------------------------------------------------------
# Target identity
# ------------------------------------------------------------------


class TargetHit(BaseModel):
    """A search hit for a target."""

    id: str  # Ensembl gene ID
    name: str = ""
    description: str = ""


class TargetInfo(BaseModel):
    """Resolved target identity. Immutable for the duration of an analysis."""

    model_config = {"frozen": True}

    ensembl_id: str
    symbol: str
    name: str = ""
    biotype: str | None = None
    description: str | None = None
    chromosome: str | None = None
    start: int | None = None
    end: int | None = None
    synonyms: list[str] = []


class DiseaseHit(BaseModel):
    """A disease search hit or disease record."""

    id: str  # EFO / MONDO ID
    name: str
    description: str = ""


# ------------------------------------------------------------------
# Association and tractability
# ------------------------------------------------------------------


class AssociationScore(BaseModel):
    """Target-disease association broken down by datatype.

    A target with no association to the disease is represented by the
    all-zero default, never by None.
    """

    overall_score: float = 0.0
    genetic_association: float = 0.0
    somatic_mutation: float = 0.0
    known_drug: float = 0.0
    affected_pathway: float = 0.0
    literature: float = 0.0
    rna_expression: float = 0.0
    animal_model: float = 0.0


class TractabilityModality(BaseModel):
    """Tractability assessment for one modality (SM, AB, PR, OC...)."""

    modality: str
    is_assessed: bool = False
    top_category: str | None = None
    buckets: list[str] = []  # labels of supporting categories


class Tractability(BaseModel):
    """Per-modality tractability. A missing modality means 'not assessed'."""

    small_molecule: TractabilityModality | None = None
    antibody: TractabilityModality | None = None
    protac: TractabilityModality | None = None
    other_modalities: list[TractabilityModality] = []


# ------------------------------------------------------------------
# Known drugs
# ------------------------------------------------------------------


class KnownDrug(BaseModel):
    """A drug with a known mechanism on this target."""

    drug_id: str
    drug_name: str
    phase: str | None = None  # "Phase 3", "Approved", "Unknown"
    status: str | None = None
    mechanism_of_action: str | None = None
