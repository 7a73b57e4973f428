"""Unit tests for SafetyInvestigator and its policy functions."""

from unittest.mock import AsyncMock

import pytest

from target_triage.data_sources.base_client import DataSourceError
from target_triage.models.model_chembl import WithdrawnDrug
from target_triage.models.model_safety import (
    SafetyEvidence,
    SafetyEvidenceType,
    SafetySeverity,
)
from target_triage.services.safety_investigator import (
    SafetyInvestigator,
    build_profile,
    calculate_overall_risk,
    escalate_severity,
    needs_investigation,
    summarize_investigation,
)

from conftest import make_signal

ENSEMBL_ID = "ENSG00000136244"


def _evidence(evidence_type=SafetyEvidenceType.LITERATURE, confidence=0.7, description="x"):
    return SafetyEvidence(
        evidence_type=evidence_type,
        source="PubMed",
        description=description,
        confidence=confidence,
    )


@pytest.fixture
def investigator(associations, compounds, literature) -> SafetyInvestigator:
    return SafetyInvestigator(associations, compounds, literature)


# --- Policy functions ---


@pytest.mark.parametrize(
    "signal, expected",
    [
        (make_signal(SafetySeverity.HIGH, signal_type="other"), True),
        (make_signal(SafetySeverity.LOW, signal_type="other", organ_system="Liver"), True),
        (make_signal(SafetySeverity.LOW, signal_type="hepatotoxicity"), True),
        (make_signal(SafetySeverity.LOW, signal_type="other", organ_system="skin"), False),
    ],
)
def test_needs_investigation(signal, expected):
    assert needs_investigation(signal) is expected


def test_escalate_severity_on_strong_regulatory_evidence():
    signal = make_signal(SafetySeverity.MODERATE)
    evidence = [_evidence(SafetyEvidenceType.REGULATORY, confidence=0.95)]
    assert escalate_severity(signal, evidence) == SafetySeverity.HIGH


def test_escalate_severity_never_lowers():
    signal = make_signal(SafetySeverity.CRITICAL)
    evidence = [_evidence(SafetyEvidenceType.REGULATORY, confidence=0.95)]
    assert escalate_severity(signal, evidence) == SafetySeverity.CRITICAL
    assert escalate_severity(signal, []) == SafetySeverity.CRITICAL


def test_escalate_severity_ignores_weak_or_unscored_regulatory_evidence():
    signal = make_signal(SafetySeverity.LOW)
    evidence = [
        _evidence(SafetyEvidenceType.REGULATORY, confidence=0.9),
        _evidence(SafetyEvidenceType.REGULATORY, confidence=None),
    ]
    assert escalate_severity(signal, evidence) == SafetySeverity.LOW


def test_summarize_investigation():
    signal = make_signal(SafetySeverity.HIGH, signal_type="hepatotoxicity", organ_system="liver")
    evidence = [
        _evidence(SafetyEvidenceType.LITERATURE, 0.7),
        _evidence(SafetyEvidenceType.LITERATURE, 0.7),
        _evidence(SafetyEvidenceType.REGULATORY, 0.95),
    ]
    summary = summarize_investigation(signal, evidence)
    assert summary == (
        "Investigation of hepatotoxicity signal for liver: Found 3 pieces of "
        "supporting evidence. Evidence includes: 1 regulatory actions, "
        "2 literature references. HIGH confidence in safety concern."
    )


def test_overall_risk():
    assert calculate_overall_risk([]) == SafetySeverity.INFORMATIONAL
    assert (
        calculate_overall_risk([make_signal(SafetySeverity.LOW), make_signal(SafetySeverity.HIGH)])
        == SafetySeverity.HIGH
    )
    three_high = [make_signal(SafetySeverity.HIGH) for _ in range(3)]
    assert calculate_overall_risk(three_high) == SafetySeverity.CRITICAL


def test_build_profile_counts_informational_as_low():
    profile = build_profile(
        ENSEMBL_ID,
        [
            make_signal(SafetySeverity.CRITICAL),
            make_signal(SafetySeverity.LOW),
            make_signal(SafetySeverity.INFORMATIONAL),
        ],
    )
    assert profile.critical_signal_count == 1
    assert profile.low_signal_count == 2
    assert profile.overall_risk == SafetySeverity.CRITICAL


# --- SafetyInvestigator ---


@pytest.mark.asyncio
class TestInvestigate:
    async def test_investigates_selected_signals_and_keeps_order(
        self, investigator, associations, literature
    ):
        investigable = make_signal(SafetySeverity.HIGH, organ_system="heart")
        skipped = make_signal(SafetySeverity.LOW, signal_type="rash", organ_system="skin")
        associations.liabilities[ENSEMBL_ID] = [skipped, investigable]
        literature.toxicity = [_evidence(description="tox paper")]

        profile = await investigator.investigate(ENSEMBL_ID, "IL6")

        assert profile.target_id == ENSEMBL_ID
        assert profile.signals[0] == skipped
        assert profile.signals[1].is_investigated
        assert [e.description for e in profile.signals[1].evidence] == ["tox paper"]
        assert profile.high_signal_count == 1

    async def test_does_not_mutate_input_signals(self, investigator, associations, literature):
        original = make_signal(SafetySeverity.HIGH)
        associations.liabilities[ENSEMBL_ID] = [original]
        literature.clinical = [_evidence()]

        await investigator.investigate(ENSEMBL_ID, "IL6")

        assert original.evidence == []
        assert original.investigation_summary is None

    async def test_liabilities_unavailable_gives_empty_profile(self, investigator, associations):
        associations.get_safety_liabilities = AsyncMock(
            side_effect=DataSourceError("open_targets", "HTTP 500")
        )

        profile = await investigator.investigate(ENSEMBL_ID, "IL6")

        assert profile.signals == []
        assert profile.overall_risk == SafetySeverity.INFORMATIONAL

    async def test_withdrawn_drug_escalates_severity(self, investigator, associations, compounds):
        associations.liabilities[ENSEMBL_ID] = [make_signal(SafetySeverity.MODERATE, organ_system="liver")]
        compounds.withdrawn = [
            WithdrawnDrug(drug_name="Troglitazone", chembl_id="CHEMBL408", withdrawn_reason="Hepatotoxicity")
        ]

        profile = await investigator.investigate(ENSEMBL_ID, "PPARG")
        signal = profile.signals[0]

        assert signal.severity == SafetySeverity.HIGH
        regulatory = [e for e in signal.evidence if e.evidence_type == SafetyEvidenceType.REGULATORY]
        assert regulatory[0].description == "Withdrawn drug: Troglitazone - Hepatotoxicity"
        assert regulatory[0].confidence == 0.95

    async def test_reinvestigating_without_new_evidence_is_stable(self, investigator):
        signal = make_signal(SafetySeverity.HIGH)
        first = await investigator.investigate_signal("IL6", signal)
        second = await investigator.investigate_signal("IL6", first)

        assert second.severity == signal.severity
        assert len(second.evidence) == len(signal.evidence)


@pytest.mark.asyncio
class TestGatherEvidence:
    async def test_failed_query_is_skipped(self, investigator, literature, compounds):
        literature.search_toxicity_papers = AsyncMock(
            side_effect=DataSourceError("pubmed", "timeout")
        )
        literature.organ = [_evidence(description="organ paper")]
        compounds.adverse_effects = [_evidence(SafetyEvidenceType.COMPOUND, 0.9, "compound")]

        evidence = await investigator.gather_evidence(
            "IL6", make_signal(SafetySeverity.HIGH, organ_system="liver")
        )

        assert {e.description for e in evidence} == {"organ paper", "compound"}

    async def test_organ_queries_skipped_without_organ(self, investigator, literature, compounds):
        literature.organ = [_evidence(description="organ paper")]
        compounds.adverse_effects = [_evidence(SafetyEvidenceType.COMPOUND, 0.9, "compound")]

        evidence = await investigator.gather_evidence("IL6", make_signal(SafetySeverity.HIGH))

        assert evidence == []

    async def test_cancellation_is_not_swallowed(self, investigator, literature):
        import asyncio

        literature.search_animal_model_papers = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await investigator.gather_evidence("IL6", make_signal(SafetySeverity.HIGH))


@pytest.mark.asyncio
class TestQuickChecks:
    async def test_quick_safety_check(self, investigator, associations):
        associations.liabilities[ENSEMBL_ID] = [
            make_signal(SafetySeverity.LOW),
            make_signal(SafetySeverity.HIGH),
        ]
        check = await investigator.quick_safety_check(ENSEMBL_ID)
        assert check.has_critical_signals is True
        assert check.signal_count == 2

    async def test_investigate_organ_toxicity_with_regulatory_evidence(
        self, investigator, compounds
    ):
        compounds.withdrawn = [
            WithdrawnDrug(drug_name="Rofecoxib", chembl_id="CHEMBL122", withdrawn_reason="Cardiac events")
        ]
        signal = await investigator.investigate_organ_toxicity("PTGS2", "heart")

        assert signal.signal_type == "heart_toxicity"
        assert signal.severity == SafetySeverity.HIGH
        assert signal.is_investigated

    async def test_investigate_organ_toxicity_without_evidence(self, investigator):
        signal = await investigator.investigate_organ_toxicity("PTGS2", "kidney")
        assert signal.severity == SafetySeverity.MODERATE
        assert signal.evidence == []
