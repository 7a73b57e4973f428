"""Project-wide constants."""

from pathlib import Path

# -- Base client defaults ---------------------------------------------------
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_MAX_RETRIES: int = 3

# -- Cache ------------------------------------------------------------------
# Anchored to the project root (two levels above this package's src/ dir) so
# that a single _cache/ directory is used regardless of the working directory
# from which tests or scripts are launched.
_PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
DEFAULT_CACHE_DIR: Path = _PROJECT_ROOT / "_cache"
CACHE_TTL: int = 3600  # 1 hour

# -- Open Targets -----------------------------------------------------------
OPEN_TARGETS_BASE_URL: str = "https://api.platform.opentargets.org/api/v4/graphql"
OPEN_TARGETS_ASSOCIATION_PAGE_SIZE: int = 1000

# Open Targets datatype id → AssociationScore field
DATATYPE_FIELDS: dict[str, str] = {
    "genetic_association": "genetic_association",
    "somatic_mutation": "somatic_mutation",
    "known_drug": "known_drug",
    "affected_pathway": "affected_pathway",
    "literature": "literature",
    "rna_expression": "rna_expression",
    "animal_model": "animal_model",
}

# -- ChEMBL -----------------------------------------------------------------
CHEMBL_BASE_URL: str = "https://www.ebi.ac.uk/chembl/api/data"
CHEMBL_COMPOUND_URL: str = "https://www.ebi.ac.uk/chembl/compound_report_card"
CHEMBL_TOXICITY_MOLECULE_LIMIT: int = 20
CHEMBL_WITHDRAWN_MOLECULE_LIMIT: int = 30

# Organ system → ChEMBL withdrawal-reason search terms
ORGAN_ADVERSE_EFFECT_TERMS: dict[str, list[str]] = {
    "liver": ["hepatotoxicity", "liver toxicity", "hepatic", "ALT", "AST"],
    "heart": ["cardiotoxicity", "cardiac", "QT prolongation", "arrhythmia"],
    "kidney": ["nephrotoxicity", "renal", "kidney"],
    "brain": ["neurotoxicity", "CNS", "neurological"],
    "lung": ["pulmonary toxicity", "respiratory", "lung"],
}

# -- PubMed / NCBI ----------------------------------------------------------
NCBI_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_SEARCH_URL: str = f"{NCBI_BASE_URL}/esearch.fcgi"
PUBMED_SUMMARY_URL: str = f"{NCBI_BASE_URL}/esummary.fcgi"
PUBMED_ARTICLE_URL: str = "https://pubmed.ncbi.nlm.nih.gov"
PUBMED_REQUESTS_PER_SECOND: float = 10.0

# Organ system → PubMed toxicity terms
ORGAN_LITERATURE_TERMS: dict[str, str] = {
    "liver": "hepatotoxicity OR liver toxicity OR hepatic injury",
    "heart": "cardiotoxicity OR cardiac toxicity OR QT prolongation OR arrhythmia",
    "kidney": "nephrotoxicity OR renal toxicity OR kidney injury",
    "brain": "neurotoxicity OR CNS toxicity OR neurological adverse",
    "lung": "pulmonary toxicity OR lung toxicity OR respiratory adverse",
}

# -- ClinicalTrials.gov -----------------------------------------------------
CLINICAL_TRIALS_BASE_URL: str = "https://clinicaltrials.gov/api/v2/studies"
CLINICAL_TRIALS_STUDY_URL: str = "https://clinicaltrials.gov/study"
CLINICAL_TRIALS_MAX_RESULTS: int = 200

# -- Safety investigation ---------------------------------------------------
CRITICAL_ORGAN_SYSTEMS: tuple[str, ...] = ("liver", "heart", "kidney", "brain", "lung")

INVESTIGABLE_SIGNAL_TYPES: tuple[str, ...] = (
    "target_safety",
    "known_safety_risk",
    "toxic_effect",
    "hepatotoxicity",
    "cardiotoxicity",
    "nephrotoxicity",
    "neurotoxicity",
    "hematological_toxicity",
    "reproductive_toxicity",
    "immunotoxicity",
    "genotoxicity",
)

# Event-name keywords → severity, checked in order
CRITICAL_EVENT_KEYWORDS: tuple[str, ...] = ("death", "fatal", "life-threatening")
HIGH_EVENT_KEYWORDS: tuple[str, ...] = (
    "severe",
    "serious",
    "hepatotox",
    "cardiotox",
    "nephrotox",
)
LOW_EVENT_KEYWORDS: tuple[str, ...] = ("mild", "minor")

WITHDRAWN_DRUG_CONFIDENCE: float = 0.95
ESCALATION_CONFIDENCE: float = 0.9
HIGH_CONFIDENCE: float = 0.8
HIGH_SIGNALS_FOR_CRITICAL_RISK: int = 3

# -- Failure categorization (checked safety → efficacy → business) ----------
FAILURE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "safety": (
        "safety",
        "adverse",
        "toxicity",
        "side effect",
        "death",
        "serious",
        "toxic",
        "hepatotoxic",
        "cardiotoxic",
        "liver",
    ),
    "efficacy": (
        "efficacy",
        "endpoint",
        "futility",
        "lack of effect",
        "no benefit",
        "ineffective",
        "failed endpoint",
    ),
    "business": (
        "business",
        "strategic",
        "funding",
        "sponsor",
        "commercial",
        "financial",
        "discontinued",
    ),
}

LATE_STAGE_PHASES: tuple[str, ...] = ("Phase 3", "Phase 4")

# -- Competitive landscape --------------------------------------------------
LANDSCAPE_ACTIVE_WEIGHT: float = 0.4
LANDSCAPE_FAILED_WEIGHT: float = 0.3
LANDSCAPE_LATE_STAGE_WEIGHT: float = 0.3

MARKET_NEUTRAL_SCORE: int = 50
MARKET_NO_ACTIVE_BONUS: int = 20
MARKET_FEW_ACTIVE_BONUS: int = 10
MARKET_MANY_ACTIVE_PENALTY: int = 20
MARKET_LATE_STAGE_PENALTY: int = 25
MARKET_HIGH_FAILURE_PENALTY: int = 20
MARKET_LOW_FAILURE_BONUS: int = 10
MARKET_SAFETY_FAILURE_PENALTY: int = 30
MARKET_CLEAN_HISTORY_BONUS: int = 15
MARKET_OPPORTUNITY_CUTOFFS: tuple[tuple[int, str], ...] = (
    (70, "HIGH"),
    (50, "MODERATE"),
    (30, "LOW"),
)

# -- Scoring ----------------------------------------------------------------
SCORE_WEIGHTS: dict[str, float] = {
    "genetic_evidence": 0.35,
    "tractability": 0.25,
    "safety_risk": 0.25,  # inverted in composite
    "competitive_landscape": 0.15,  # inverted in composite
}

GENETIC_EVIDENCE_WEIGHTS: dict[str, float] = {
    "genetic_association": 0.50,
    "somatic_mutation": 0.15,
    "literature": 0.15,
    "animal_model": 0.10,
    "affected_pathway": 0.10,
}

# modality → (weight, supporting-category cap)
TRACTABILITY_WEIGHTS: dict[str, tuple[float, int]] = {
    "small_molecule": (0.5, 3),
    "antibody": (0.3, 2),
    "protac": (0.1, 1),
    "other": (0.1, 2),
}

SAFETY_SEVERITY_WEIGHTS: dict[str, float] = {
    "CRITICAL": 0.40,
    "HIGH": 0.25,
    "MODERATE": 0.10,
    "LOW": 0.03,
    "INFORMATIONAL": 0.01,
}
SAFETY_EVIDENCE_MULTIPLIER: float = 1.10
SAFETY_INVESTIGATED_MULTIPLIER: float = 1.05

INTERPRETATION_CUTOFFS: tuple[tuple[float, str], ...] = (
    (0.7, "EXCELLENT"),
    (0.5, "GOOD"),
    (0.3, "MODERATE"),
)
TIER_CUTOFFS: tuple[tuple[float, str], ...] = ((0.6, "TOP"), (0.3, "MID"))

# -- Decision thresholds ----------------------------------------------------
GO_SCORE: float = 0.65
CAUTION_SCORE: float = 0.45
INVESTIGATE_SCORE: float = 0.25

MIN_GENETIC_EVIDENCE: float = 0.2
MIN_TRACTABILITY: float = 0.15
MAX_SAFETY_RISK: float = 0.7

NO_GO_CRITICAL_SIGNALS: int = 2
NO_GO_HIGH_SIGNALS: int = 4
NO_GO_SAFETY_RISK: float = 0.9
NO_GO_GENETIC_EVIDENCE: float = 0.05

OVERRIDE_SAFETY_RISK: float = 0.5
OVERRIDE_INVESTIGATION_FLAGS: int = 3

# Score-only verdict (no signals or landscape)
QUICK_NO_GO_SAFETY_RISK: float = 0.8
QUICK_NO_GO_GENETIC_EVIDENCE: float = 0.1

# -- Reports ----------------------------------------------------------------
TOP_TARGETS_IN_SUMMARY: int = 5
