"""Core domain models for bibliographic records and deduplication.

Records are frozen: each pipeline stage produces new values instead of
adding columns to a shared table.
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .normalization import extract_year, first_author_surname


class RisRecord(BaseModel):
    """One bibliographic record parsed from a RIS export.

    Field names follow the RIS tags they come from; multi-valued tags
    (authors, keywords) are joined with ``"; "``.
    """

    model_config = ConfigDict(frozen=True)

    record_index: int = Field(..., ge=0, description="Position in the source file")
    type: str = Field("", description="TY")
    authors: str = Field("", description="AU, falling back to A1")
    primary_authors: str = Field("", description="A1")
    secondary_authors: str = Field("", description="A2")
    title: str = Field("", description="TI")
    secondary_title: str = Field("", description="T2")
    publication_year: str = Field("", description="PY")
    date: str = Field("", description="Y1")
    doi: str = Field("", description="DO")
    issn: str = Field("", description="SN")
    volume: str = Field("", description="VL")
    issue: str = Field("", description="IS")
    start_page: str = Field("", description="SP")
    end_page: str = Field("", description="EP")
    abstract: str = Field("", description="AB")
    keywords: str = Field("", description="KW")

    @property
    def year(self) -> Optional[int]:
        """Publication year from PY, falling back to Y1."""
        return extract_year(self.publication_year) or extract_year(self.date)

    @property
    def first_author(self) -> Optional[str]:
        return first_author_surname(self.authors)

    @property
    def title_abstract(self) -> str:
        return f"{self.title} {self.abstract}"


class DedupMethod(str, Enum):
    """How a record's deduplication key was built."""

    DOI = "DOI"
    TITLE_AUTHOR_YEAR = "TITLE_AUTHOR_YEAR"
    UNIQUE = "UNIQUE"
    NO_DOI = "NO_DOI"


class DuplicatePair(BaseModel):
    """A removed record and the record kept in its place."""

    model_config = ConfigDict(frozen=True)

    kept: int
    removed: int
    key: str
    method: DedupMethod
    confidence: float = Field(1.0, ge=0.0, le=1.0)


class DeduplicationReport(BaseModel):
    """Summary of a deduplication pass."""

    model_config = ConfigDict(frozen=True)

    before: int
    after: int
    pairs: Tuple[DuplicatePair, ...] = ()
    kept_by_method: Dict[DedupMethod, int] = Field(default_factory=dict)

    @property
    def total_duplicates(self) -> int:
        return self.before - self.after
