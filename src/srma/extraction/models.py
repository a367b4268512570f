"""Models for per-study metric extraction.

:class:`StudyMetrics` is the normalized row consumed by every analyzer
in :mod:`srma.meta`.  A list of rows is the "metrics table"; it is
never modified after extraction.  Missing values are ``None``.  Columns
are addressed through the :class:`ContinuousMetric`,
:class:`DiagnosticMetric` and :class:`Moderator` enumerations rather
than by free-form strings.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContinuousMetric(str, Enum):
    """Continuous regression metrics pooled by the random-effects model."""

    R2 = "R2"
    RMSE = "RMSE"
    MAE = "MAE"


class DiagnosticMetric(str, Enum):
    """Proportions describing binary classification performance."""

    ACC = "Acc"
    SENS = "Sens"
    SPEC = "Spec"


class Moderator(str, Enum):
    """Categorical study characteristics usable as subgroup moderators."""

    AI_METHOD = "ai_method"
    DOMAIN = "domain"
    SCALE = "scale"


Metric = Union[ContinuousMetric, DiagnosticMetric]

_METRIC_ATTRS = {
    ContinuousMetric.R2: "r2",
    ContinuousMetric.RMSE: "rmse",
    ContinuousMetric.MAE: "mae",
    DiagnosticMetric.ACC: "acc",
    DiagnosticMetric.SENS: "sens",
    DiagnosticMetric.SPEC: "spec",
}


class StudyMetrics(BaseModel):
    """Metrics and metadata of one eligible study."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    study_id: int = Field(..., ge=1, alias="id")
    year: Optional[int] = None
    ai_method: str = "Other"
    domain: str = "Other"
    scale: str = "Unspecified"

    acc: Optional[float] = Field(None, ge=0.0, le=1.0, alias="Acc")
    sens: Optional[float] = Field(None, ge=0.0, le=1.0, alias="Sens")
    spec: Optional[float] = Field(None, ge=0.0, le=1.0, alias="Spec")
    r2: Optional[float] = Field(None, alias="R2")
    rmse: Optional[float] = Field(None, alias="RMSE")
    mae: Optional[float] = Field(None, alias="MAE")
    n: Optional[int] = Field(None, ge=0, alias="N")

    included_meta_flag: bool = False

    # Descriptive metadata for reports
    title: str = ""
    doi: str = ""
    first_author: Optional[str] = None

    @field_validator("acc", "sens", "spec", "r2", "rmse", "mae", "n", mode="before")
    @classmethod
    def _non_finite_is_missing(cls, v):
        # NaN and infinities are missing values, not measurements
        if v is None or isinstance(v, bool):
            return v
        try:
            number = float(v)
        except (TypeError, ValueError):
            return v
        return v if math.isfinite(number) else None

    def value(self, metric: Metric) -> Optional[float]:
        """Return the value of ``metric`` for this study, or ``None`` if absent."""
        return getattr(self, _METRIC_ATTRS[metric])

    def label(self, moderator: Moderator) -> str:
        return getattr(self, moderator.value)

    @property
    def has_binary(self) -> bool:
        return any(self.value(m) is not None for m in DiagnosticMetric)

    @property
    def has_continuous(self) -> bool:
        return any(self.value(m) is not None for m in ContinuousMetric)


def as_continuous_metric(metric: Union[str, ContinuousMetric]) -> ContinuousMetric:
    """Coerce a metric name to :class:`ContinuousMetric`.

    Raises:
        ValueError: If the name is not a continuous metric.
    """
    if isinstance(metric, ContinuousMetric):
        return metric
    try:
        return ContinuousMetric(metric)
    except ValueError:
        raise ValueError(
            f"Unknown continuous metric {metric!r}; expected one of "
            f"{[m.value for m in ContinuousMetric]}"
        ) from None


def as_moderator(moderator: Union[str, Moderator]) -> Moderator:
    """Coerce a grouping field name to :class:`Moderator`."""
    if isinstance(moderator, Moderator):
        return moderator
    try:
        return Moderator(moderator)
    except ValueError:
        raise ValueError(
            f"Unknown grouping field {moderator!r}; expected one of {[m.value for m in Moderator]}"
        ) from None


def metric_values(rows: Sequence[StudyMetrics], metric: Metric) -> List[float]:
    """Values of ``metric`` for the studies that report it, in table order."""
    return [v for v in (row.value(metric) for row in rows) if v is not None]


def labelled_values(
    rows: Sequence[StudyMetrics],
    metric: Metric,
    moderator: Moderator,
) -> List[Tuple[float, str]]:
    """``(value, group label)`` pairs for studies reporting ``metric``."""
    pairs = []
    for row in rows:
        value = row.value(metric)
        if value is not None:
            pairs.append((value, row.label(moderator)))
    return pairs


def paired_values(
    rows: Sequence[StudyMetrics],
    first: Metric,
    second: Metric,
) -> List[Tuple[float, float]]:
    """Pairs for studies reporting both metrics."""
    pairs = []
    for row in rows:
        a, b = row.value(first), row.value(second)
        if a is not None and b is not None:
            pairs.append((a, b))
    return pairs


class ExtractionStats(BaseModel):
    """Completeness of metric extraction across eligible studies."""

    total: int = 0
    has_binary: int = 0
    has_continuous: int = 0
    complete_pct: float = 0.0
    partial_pct: float = 0.0
    missing_pct: float = 0.0
