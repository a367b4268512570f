"""Screening models and enumerations.

A :class:`ScreenedRecord` wraps the deduplicated :class:`RisRecord`
with the outcome of eligibility screening; :class:`EligibilityCounts`
aggregates the outcomes into the numbers reported in a PRISMA flow.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import RisRecord


class ExclusionReason(str, Enum):
    """Why a record failed eligibility screening."""

    DOCUMENT_TYPE = "DOCUMENT_TYPE"
    EXCLUSION_KEYWORD = "EXCLUSION_KEYWORD"
    AI_ABSENT = "AI_ABSENT"
    TOPIC_MISMATCH = "TOPIC_MISMATCH"
    ABSTRACT_MISSING = "ABSTRACT_MISSING"


class ScreenedRecord(BaseModel):
    """A record together with its screening outcome."""

    model_config = ConfigDict(frozen=True)

    record: RisRecord
    eligible: bool
    for_meta: bool = Field(False, description="Eligible and complete enough for meta-analysis")
    exclusion_reasons: Tuple[ExclusionReason, ...] = ()

    @property
    def exclusion_reason(self) -> str:
        return "; ".join(reason.value for reason in self.exclusion_reasons)


class EligibilityCounts(BaseModel):
    """PRISMA-style counts from one screening pass."""

    model_config = ConfigDict(frozen=True)

    screened: int = 0
    eligible: int = 0
    for_meta: int = 0
    excluded_total: int = 0
    excluded_ai_absent: int = 0
    excluded_topic_mismatch: int = 0
    excluded_abstract_only: int = 0
    excluded_type: int = 0

    @property
    def full_text_assessed(self) -> int:
        # Every screened record is assessed at full text
        return self.screened
