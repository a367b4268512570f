"""Result records produced by the analyzers.

Each analysis returns one immutable record.  Numeric fields are
``Optional[float]``: ``None`` is the explicit "undefined" value used
when there are too few studies or a statistic cannot be computed.
Results never hold references to the metrics table they came from.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

INSUFFICIENT_DATA = "Insufficient data"


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


class PredictionInterval(_Result):
    """Student-t prediction interval for the effect of a new study."""

    pi_low: Optional[float] = None
    pi_high: Optional[float] = None
    pred_se: Optional[float] = None
    df: Optional[int] = None
    t_value: Optional[float] = None
    note: str = ""


class MetaAnalysisResult(_Result):
    """Random-effects pooling of one continuous metric."""

    metric: str
    model: str = "DerSimonian-Laird"
    k: int = Field(..., ge=0)
    effect: Optional[float] = None
    se: Optional[float] = None
    ci_low: Optional[float] = None
    ci_high: Optional[float] = None
    pi_low: Optional[float] = None
    pi_high: Optional[float] = None
    tau2: Optional[float] = None
    I2: Optional[float] = None
    Q: Optional[float] = None
    p_het: Optional[float] = None
    p: Optional[float] = None
    note: str = ""

    @property
    def is_sufficient(self) -> bool:
        return self.effect is not None

    @property
    def df(self) -> int:
        return max(self.k - 1, 0)


class DiagnosticResult(_Result):
    """Logit-pooled sensitivity and specificity with an approximate AUC."""

    k: int = Field(..., ge=0)
    sens: Optional[float] = None
    sens_ci_low: Optional[float] = None
    sens_ci_high: Optional[float] = None
    spec: Optional[float] = None
    spec_ci_low: Optional[float] = None
    spec_ci_high: Optional[float] = None
    AUC: Optional[float] = None
    AUC_ci_low: Optional[float] = None
    AUC_ci_high: Optional[float] = None
    note: str = ""

    @property
    def is_sufficient(self) -> bool:
        return self.sens is not None


class SubgroupEstimate(_Result):
    """Summary of one pooled subgroup."""

    group: str
    k: int
    mean: float
    se: float
    ci_low: float
    ci_high: float
    Q: float


class SubgroupResult(_Result):
    """Within/between heterogeneity decomposition for one moderator."""

    metric: str
    grouping_var: str
    k: int = 0
    n_groups: int = 0
    subgroups: Tuple[SubgroupEstimate, ...] = ()
    skipped_groups: Tuple[str, ...] = ()
    Q_within: float = 0.0
    Q_between: float = 0.0
    Q_total: float = 0.0
    df_between: int = 0
    p_between: Optional[float] = None


class FunnelData(_Result):
    """Per-study coordinates for a funnel plot."""

    effect: Tuple[float, ...] = ()
    se: Tuple[float, ...] = ()
    precision: Tuple[float, ...] = ()


class TrimFillResult(_Result):
    """Outcome of the simplified trim-and-fill heuristic."""

    k_original: Optional[int] = None
    k_trimmed: int = 0
    original_effect: Optional[float] = None
    adjusted_effect: Optional[float] = None
    imputed: Tuple[float, ...] = ()
    note: str = ""

    @property
    def performed(self) -> bool:
        return self.k_original is not None


class BiasResult(_Result):
    """Egger's regression test and trim-and-fill for one metric."""

    metric: str
    k: int = Field(..., ge=0)
    egger_intercept: Optional[float] = None
    egger_slope: Optional[float] = None
    egger_se: Optional[float] = None
    egger_t: Optional[float] = None
    egger_p: Optional[float] = None
    funnel_data: FunnelData = Field(default_factory=FunnelData)
    trim_fill: TrimFillResult = Field(default_factory=TrimFillResult)
    note: str = ""

    @property
    def asymmetry_detected(self) -> bool:
        return self.egger_p is not None and self.egger_p < 0.05


class AnalysisBundle(_Result):
    """All results of one run of the statistical core."""

    continuous: List[MetaAnalysisResult] = Field(default_factory=list)
    diagnostic: Optional[DiagnosticResult] = None
    subgroups: List[SubgroupResult] = Field(default_factory=list)
    bias: List[BiasResult] = Field(default_factory=list)
