"""
PubMed E-utilities client.

Two primitives:
  1. search              — Find PMIDs matching a query, by relevance
  2. get_article_details — Summary metadata for PMIDs (esummary)

and four safety-literature searches built on them, each returning
SafetyEvidence for the SafetyInvestigator.

NCBI throttles aggressively, so every request goes through a
TokenBucketRateLimiter (10 req/s, no burst, by default). The limiter is
passed in so several clients can share one queue. Rate-limit responses
are retried by the base client; when retries are exhausted the search
comes back empty rather than raising.
"""

import logging
from typing import Any

from target_triage.constants import (
    ORGAN_LITERATURE_TERMS,
    PUBMED_ARTICLE_URL,
    PUBMED_REQUESTS_PER_SECOND,
    PUBMED_SEARCH_URL,
    PUBMED_SUMMARY_URL,
)
from target_triage.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    TokenBucketRateLimiter,
)
from target_triage.models.model_pubmed import PubMedArticle
from target_triage.models.model_safety import SafetyEvidence, SafetyEvidenceType

logger = logging.getLogger(__name__)


class PubMedClient(BaseClient):
    """Client for querying PubMed via NCBI E-utilities."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        api_key: str = "",
    ) -> None:
        super().__init__(
            config,
            rate_limiter=rate_limiter
            or TokenBucketRateLimiter.per_second(PUBMED_REQUESTS_PER_SECOND),
        )
        self.api_key = api_key

    @property
    def _source_name(self) -> str:
        return "pubmed"

    async def _eutils(self, url: str, method: str, params: dict[str, Any]) -> dict | None:
        """GET an E-utilities endpoint. Returns None when retries were exhausted."""
        params = {**params, "db": "pubmed", "retmode": "json"}
        if self.api_key:
            params["api_key"] = self.api_key

        result = await self._rest_get(
            url,
            params,
            cache_namespace=f"pubmed_{method}",
            context=self._ctx(method, term=params.get("term"), id=params.get("id")),
        )
        if not result.is_complete:
            logger.warning("PubMed %s unavailable, treating as no results", method)
            return None
        return result.data or {}

    async def search(self, query: str, max_results: int = 20) -> list[str]:
        """Search PubMed and return relevance-ranked PMIDs."""
        data = await self._eutils(
            PUBMED_SEARCH_URL,
            "search",
            {"term": query, "retmax": max_results, "sort": "relevance"},
        )
        if data is None:
            return []
        return data.get("esearchresult", {}).get("idlist", [])

    async def get_article_details(self, pmids: list[str]) -> list[PubMedArticle]:
        """Fetch summary metadata for the given PMIDs, preserving their order."""
        if not pmids:
            return []

        data = await self._eutils(
            PUBMED_SUMMARY_URL, "get_article_details", {"id": ",".join(pmids)}
        )
        if data is None:
            return []

        result = data.get("result") or {}
        articles = []
        for pmid in pmids:
            summary = result.get(pmid)
            if not summary or not summary.get("uid"):
                continue
            elocation = summary.get("elocationid") or ""
            articles.append(
                PubMedArticle(
                    pmid=summary["uid"],
                    title=summary.get("title") or "",
                    authors=[a["name"] for a in summary.get("authors") or [] if a.get("name")],
                    journal=summary.get("fulljournalname") or summary.get("source") or "",
                    pub_date=summary.get("pubdate") or summary.get("epubdate") or "",
                    doi=elocation.replace("doi: ", "") or None,
                )
            )
        return articles

    async def _search_articles(self, query: str, max_results: int) -> list[PubMedArticle]:
        pmids = await self.search(query, max_results)
        if not pmids:
            return []
        return await self.get_article_details(pmids)

    # ------------------------------------------------------------------
    # Safety literature
    # ------------------------------------------------------------------

    async def search_toxicity_papers(
        self, symbol: str, toxicity_type: str | None = None, max_results: int = 10
    ) -> list[SafetyEvidence]:
        query = f"{symbol}[Title/Abstract]"
        if toxicity_type:
            query += f" AND ({toxicity_type}[Title/Abstract] OR toxicity[Title/Abstract])"
        else:
            query += (
                " AND (toxicity[Title/Abstract] OR adverse[Title/Abstract]"
                " OR side effect[Title/Abstract])"
            )
        query += " AND (humans[MeSH] OR human[Title/Abstract])"

        articles = await self._search_articles(query, max_results)
        return [
            self._evidence(
                a,
                f"{a.title} ({a.first_author} et al., {a.journal}, {a.pub_date})",
                confidence=0.7,
            )
            for a in articles
        ]

    async def search_organ_toxicity_papers(
        self, symbol: str, organ_system: str, max_results: int = 5
    ) -> list[SafetyEvidence]:
        terms = ORGAN_LITERATURE_TERMS.get(
            organ_system.lower(), f"{organ_system} toxicity"
        )
        query = f"{symbol}[Title/Abstract] AND ({terms})"

        articles = await self._search_articles(query, max_results)
        return [
            self._evidence(
                a, f"{a.title} ({a.first_author} et al., {a.journal})", confidence=0.7
            )
            for a in articles
        ]

    async def search_clinical_safety_papers(
        self, symbol: str, max_results: int = 10
    ) -> list[SafetyEvidence]:
        query = (
            f"{symbol}[Title/Abstract]"
            " AND (clinical trial[Publication Type] OR clinical study[Title/Abstract])"
            " AND (safety[Title/Abstract] OR adverse event[Title/Abstract]"
            " OR side effect[Title/Abstract])"
        )
        articles = await self._search_articles(query, max_results)
        return [
            self._evidence(a, f"Clinical safety: {a.title} ({a.journal})", confidence=0.8)
            for a in articles
        ]

    async def search_animal_model_papers(
        self, symbol: str, max_results: int = 5
    ) -> list[SafetyEvidence]:
        query = (
            f"{symbol}[Title/Abstract]"
            " AND (mouse[Title/Abstract] OR rat[Title/Abstract]"
            " OR animal model[Title/Abstract])"
            " AND (toxicity[Title/Abstract] OR knockout[Title/Abstract]"
            " OR phenotype[Title/Abstract])"
        )
        articles = await self._search_articles(query, max_results)
        return [
            self._evidence(
                a,
                f"Animal model: {a.title}",
                confidence=0.6,
                evidence_type=SafetyEvidenceType.ANIMAL_MODEL,
            )
            for a in articles
        ]

    @staticmethod
    def _evidence(
        article: PubMedArticle,
        description: str,
        confidence: float,
        evidence_type: SafetyEvidenceType = SafetyEvidenceType.LITERATURE,
    ) -> SafetyEvidence:
        return SafetyEvidence(
            evidence_type=evidence_type,
            source="PubMed",
            description=description,
            url=f"{PUBMED_ARTICLE_URL}/{article.pmid}/",
            confidence=confidence,
        )
