"""
Safety signal investigation.

Pulls a target's safety liabilities, picks the ones worth a closer look,
and enriches each with secondary evidence gathered concurrently from
compound and literature sources. A failing evidence query contributes
nothing; it never fails the investigation.
"""

import asyncio
import logging
from collections import Counter
from typing import Awaitable

from target_triage.constants import (
    CHEMBL_COMPOUND_URL,
    CRITICAL_ORGAN_SYSTEMS,
    ESCALATION_CONFIDENCE,
    HIGH_CONFIDENCE,
    HIGH_SIGNALS_FOR_CRITICAL_RISK,
    INVESTIGABLE_SIGNAL_TYPES,
    WITHDRAWN_DRUG_CONFIDENCE,
)
from target_triage.data_sources.base_client import DataSourceError
from target_triage.data_sources.protocols import (
    AssociationLookup,
    CompoundLookup,
    LiteratureSearch,
)
from target_triage.models.model_safety import (
    QuickSafetyCheck,
    SafetyEvidence,
    SafetyEvidenceType,
    SafetyProfile,
    SafetySeverity,
    SafetySignal,
)

logger = logging.getLogger(__name__)

# Summary phrasing per evidence type, in reporting order
_SUMMARY_LABELS: tuple[tuple[SafetyEvidenceType, str], ...] = (
    (SafetyEvidenceType.REGULATORY, "regulatory actions"),
    (SafetyEvidenceType.COMPOUND, "compound-related findings"),
    (SafetyEvidenceType.LITERATURE, "literature references"),
    (SafetyEvidenceType.CLINICAL_TRIAL, "clinical trial findings"),
    (SafetyEvidenceType.ANIMAL_MODEL, "animal model studies"),
    (SafetyEvidenceType.IN_VITRO, "in vitro findings"),
)


# ------------------------------------------------------------------
# Policy functions
# ------------------------------------------------------------------


def needs_investigation(signal: SafetySignal) -> bool:
    """True if the signal is severe, hits a critical organ, or has an investigable type."""
    if signal.severity in (SafetySeverity.CRITICAL, SafetySeverity.HIGH):
        return True
    organ = (signal.organ_system or "").lower()
    if organ and any(o in organ for o in CRITICAL_ORGAN_SYSTEMS):
        return True
    signal_type = signal.signal_type.lower()
    return any(t in signal_type for t in INVESTIGABLE_SIGNAL_TYPES)


def escalate_severity(
    signal: SafetySignal, new_evidence: list[SafetyEvidence]
) -> SafetySeverity:
    """Severity after investigation. Never lower than the signal's current severity.

    High-confidence regulatory evidence lifts anything below HIGH to HIGH.
    """
    strong_regulatory = any(
        e.evidence_type == SafetyEvidenceType.REGULATORY
        and e.confidence is not None
        and e.confidence > ESCALATION_CONFIDENCE
        for e in new_evidence
    )
    if strong_regulatory and signal.severity < SafetySeverity.HIGH:
        return SafetySeverity.HIGH
    return signal.severity


def summarize_investigation(
    signal: SafetySignal, new_evidence: list[SafetyEvidence]
) -> str:
    counts = Counter(e.evidence_type for e in new_evidence)

    summary = f"Investigation of {signal.signal_type} signal"
    if signal.organ_system:
        summary += f" for {signal.organ_system}"
    summary += f": Found {len(new_evidence)} pieces of supporting evidence."

    parts = [f"{counts[t]} {label}" for t, label in _SUMMARY_LABELS if counts[t]]
    if parts:
        summary += f" Evidence includes: {', '.join(parts)}."

    if any(e.confidence is not None and e.confidence > HIGH_CONFIDENCE for e in new_evidence):
        summary += " HIGH confidence in safety concern."
    return summary


def calculate_overall_risk(signals: list[SafetySignal]) -> SafetySeverity:
    """Highest severity present; three or more HIGH signals together count as CRITICAL."""
    if not signals:
        return SafetySeverity.INFORMATIONAL

    overall = max(s.severity for s in signals)
    high_count = sum(1 for s in signals if s.severity == SafetySeverity.HIGH)
    if overall == SafetySeverity.HIGH and high_count >= HIGH_SIGNALS_FOR_CRITICAL_RISK:
        return SafetySeverity.CRITICAL
    return overall


def build_profile(target_id: str, signals: list[SafetySignal]) -> SafetyProfile:
    severities = Counter(s.severity for s in signals)
    return SafetyProfile(
        target_id=target_id,
        signals=signals,
        overall_risk=calculate_overall_risk(signals),
        critical_signal_count=severities[SafetySeverity.CRITICAL],
        high_signal_count=severities[SafetySeverity.HIGH],
        moderate_signal_count=severities[SafetySeverity.MODERATE],
        low_signal_count=severities[SafetySeverity.LOW]
        + severities[SafetySeverity.INFORMATIONAL],
    )


# ------------------------------------------------------------------
# Investigator
# ------------------------------------------------------------------


class SafetyInvestigator:
    """Builds a SafetyProfile for a target, investigating signals that warrant it."""

    def __init__(
        self,
        associations: AssociationLookup,
        compounds: CompoundLookup,
        literature: LiteratureSearch,
    ):
        self.associations = associations
        self.compounds = compounds
        self.literature = literature

    async def investigate(self, target_id: str, symbol: str) -> SafetyProfile:
        """Full safety profile. Returns an empty profile if liabilities cannot be fetched."""
        try:
            signals = await self.associations.get_safety_liabilities(target_id)
        except DataSourceError as e:
            logger.warning("Safety liabilities unavailable for %s: %s", symbol, e)
            return build_profile(target_id, [])

        selected = [i for i, s in enumerate(signals) if needs_investigation(s)]
        logger.info(
            "Investigating %d of %d safety signals for %s",
            len(selected),
            len(signals),
            symbol,
        )

        investigated = await asyncio.gather(
            *(self.investigate_signal(symbol, signals[i]) for i in selected)
        )
        merged = list(signals)
        for i, signal in zip(selected, investigated):
            merged[i] = signal

        return build_profile(target_id, merged)

    async def investigate_signal(self, symbol: str, signal: SafetySignal) -> SafetySignal:
        """Return a new signal carrying the gathered evidence and a summary."""
        new_evidence = await self.gather_evidence(symbol, signal)
        return signal.model_copy(
            update={
                "evidence": [*signal.evidence, *new_evidence],
                "investigation_summary": summarize_investigation(signal, new_evidence),
                "severity": escalate_severity(signal, new_evidence),
            }
        )

    async def gather_evidence(
        self, symbol: str, signal: SafetySignal
    ) -> list[SafetyEvidence]:
        """Run every secondary evidence query for a signal concurrently."""
        queries: list[tuple[str, Awaitable[list[SafetyEvidence]]]] = []
        if signal.organ_system:
            queries.append(
                (
                    "compound_adverse_effects",
                    self.compounds.search_adverse_effects(symbol, signal.organ_system),
                )
            )
        queries.append(
            (
                "toxicity_literature",
                self.literature.search_toxicity_papers(symbol, signal.signal_type, 5),
            )
        )
        if signal.organ_system:
            queries.append(
                (
                    "organ_literature",
                    self.literature.search_organ_toxicity_papers(
                        symbol, signal.organ_system, 3
                    ),
                )
            )
        queries.append(("withdrawn_compounds", self._withdrawn_drug_evidence(symbol)))
        queries.append(
            (
                "clinical_safety_literature",
                self.literature.search_clinical_safety_papers(symbol, 3),
            )
        )
        queries.append(
            (
                "animal_model_literature",
                self.literature.search_animal_model_papers(symbol, 3),
            )
        )

        results = await asyncio.gather(
            *(q for _, q in queries), return_exceptions=True
        )

        evidence: list[SafetyEvidence] = []
        for (name, _), result in zip(queries, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Evidence query %s failed for %s: %s", name, symbol, result)
                continue
            evidence.extend(result)
        return evidence

    async def _withdrawn_drug_evidence(self, symbol: str) -> list[SafetyEvidence]:
        drugs = await self.compounds.get_withdrawn_drugs_for_target(symbol)
        return [
            SafetyEvidence(
                evidence_type=SafetyEvidenceType.REGULATORY,
                source="ChEMBL",
                description=f"Withdrawn drug: {d.drug_name} - {d.withdrawn_reason}",
                url=f"{CHEMBL_COMPOUND_URL}/{d.chembl_id}/",
                confidence=WITHDRAWN_DRUG_CONFIDENCE,
            )
            for d in drugs
        ]

    async def quick_safety_check(self, target_id: str) -> QuickSafetyCheck:
        """Screen raw liabilities without investigating them."""
        try:
            signals = await self.associations.get_safety_liabilities(target_id)
        except DataSourceError as e:
            logger.warning("Safety liabilities unavailable for %s: %s", target_id, e)
            signals = []
        return QuickSafetyCheck(
            has_critical_signals=any(
                s.severity in (SafetySeverity.CRITICAL, SafetySeverity.HIGH)
                for s in signals
            ),
            signal_count=len(signals),
        )

    async def investigate_organ_toxicity(
        self, symbol: str, organ_system: str
    ) -> SafetySignal:
        """Investigate a specific organ system even when no liability names it."""
        signal = SafetySignal(
            signal_type=f"{organ_system}_toxicity",
            organ_system=organ_system,
            severity=SafetySeverity.MODERATE,
            description=f"Investigation of potential {organ_system} toxicity",
        )
        evidence = await self.gather_evidence(symbol, signal)

        has_regulatory = any(
            e.evidence_type == SafetyEvidenceType.REGULATORY for e in evidence
        )
        confident = [
            e for e in evidence if e.confidence is not None and e.confidence > HIGH_CONFIDENCE
        ]
        severity = (
            SafetySeverity.HIGH
            if has_regulatory or len(confident) >= 3
            else SafetySeverity.MODERATE
        )
        return signal.model_copy(
            update={
                "severity": severity,
                "evidence": evidence,
                "investigation_summary": summarize_investigation(signal, evidence),
            }
        )
