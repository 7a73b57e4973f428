"""
Pydantic models for PubMed data.

These are the data contracts between the PubMed client and the core
components. Components receive these models - they never see raw API
responses.
"""

from pydantic import BaseModel


class PubMedArticle(BaseModel):
    """Summary metadata for a single PubMed article (esummary)."""

    pmid: str  # PubMed identifier (e.g. "38472913")
    title: str
    authors: list[str] = []
    journal: str = ""
    pub_date: str = ""
    doi: str | None = None

    @property
    def first_author(self) -> str:
        return self.authors[0] if self.authors else "Unknown"
