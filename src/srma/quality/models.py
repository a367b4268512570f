"""Models for GRADE certainty-of-evidence assessment.

``CertaintyRating`` enumerates the four GRADE levels.  A
``GradeAssessment`` records the starting rating, the downgrade applied
for each domain and the resulting certainty for one outcome.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CertaintyRating(IntEnum):
    """GRADE certainty levels, ordered so that arithmetic downgrades work."""

    VERY_LOW = 1
    LOW = 2
    MODERATE = 3
    HIGH = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


class StudyCharacteristics(BaseModel):
    """Study-level judgements needed by the GRADE domains."""

    high_risk_pct: float = Field(0.0, ge=0.0, le=1.0)
    diverse_populations: bool = False


class GradeAssessment(BaseModel):
    """GRADE assessment of one pooled outcome."""

    model_config = ConfigDict(frozen=True)

    outcome: str
    n_studies: int
    effect: Optional[float] = None
    ci_low: Optional[float] = None
    ci_high: Optional[float] = None
    I2: Optional[float] = None
    starting_rating: CertaintyRating = CertaintyRating.MODERATE
    rob_downgrade: int = 0
    inconsistency_downgrade: int = 0
    indirectness_downgrade: int = 0
    imprecision_downgrade: int = 0
    pub_bias_downgrade: int = 0
    final_rating: CertaintyRating = CertaintyRating.MODERATE

    @property
    def total_downgrade(self) -> int:
        return (
            self.rob_downgrade
            + self.inconsistency_downgrade
            + self.indirectness_downgrade
            + self.imprecision_downgrade
            + self.pub_bias_downgrade
        )

    @property
    def certainty(self) -> str:
        return self.final_rating.label
