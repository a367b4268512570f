"""Publication bias assessment.

Egger's test regresses the standardized effect ``y / SE`` on precision
``1 / SE``; an intercept that differs from zero indicates funnel-plot
asymmetry consistent with small-study effects.  The result is reported,
never used to correct the pooled estimate.

The metrics table carries no per-study standard errors, so every study
is assigned ``SE = sqrt(s² / k)``.  With one shared SE the precision
column is constant and the regression design is rank deficient: the
common signal is attributed to the slope, the intercept is 0 and its
standard error (and hence t and p) is undefined.  :func:`egger_test`
handles genuinely varying standard errors with ordinary least squares.

Trim-and-fill here is a simplified heuristic, not Duval & Tweedie's
iterative estimator: the number of missing studies is the imbalance
between studies above and below the mean, and that many mirrored values
are imputed on the sparse side before the mean is recomputed.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Optional, Sequence, Union

import numpy as np
from scipy import stats

from ..extraction.models import ContinuousMetric, StudyMetrics, as_continuous_metric, metric_values
from ..utils.logging import get_logger
from .models import INSUFFICIENT_DATA, BiasResult, FunnelData, TrimFillResult
from .stats import finite, floored_variance

logger = get_logger(__name__)

TRIM_FILL_MIN_STUDIES = 10
SHARED_SE_NOTE = "Standard errors approximated as sqrt(var / k) for every study"


class EggerFit(NamedTuple):
    intercept: Optional[float]
    slope: Optional[float]
    se: Optional[float]
    t: Optional[float]
    p: Optional[float]


def egger_test(effects: Sequence[float], ses: Sequence[float]) -> EggerFit:
    """Egger's regression of ``effect / se`` on ``1 / se`` with intercept.

    Requires at least three studies and strictly positive standard
    errors.  When all standard errors are equal the intercept is fixed at
    0 and its standard error, t and p are ``None``.
    """
    y = np.asarray(effects, dtype=float)
    s = np.asarray(ses, dtype=float)
    k = y.size
    if k < 3:
        raise ValueError("Egger's test needs at least 3 studies")
    if np.any(s <= 0):
        raise ValueError("Standard errors must be positive")
    precision = 1.0 / s
    standardized = y / s

    if np.ptp(precision) == 0:
        slope = float(np.mean(standardized) / precision[0])
        return EggerFit(intercept=0.0, slope=slope, se=None, t=None, p=None)

    X = np.column_stack([np.ones(k), precision])
    beta, _, _, _ = np.linalg.lstsq(X, standardized, rcond=None)
    residuals = standardized - X @ beta
    df = k - 2
    mse = float(np.sum(residuals ** 2) / df)
    cov = mse * np.linalg.inv(X.T @ X)
    se_intercept = math.sqrt(cov[0, 0])
    intercept = float(beta[0])
    if se_intercept > 0:
        t_stat = intercept / se_intercept
        p_value = float(2 * stats.t.sf(abs(t_stat), df))
    else:
        # Perfect fit: no residual spread to test against
        t_stat, p_value = None, None
    return EggerFit(
        intercept=finite(intercept),
        slope=finite(beta[1]),
        se=finite(se_intercept),
        t=finite(t_stat),
        p=finite(p_value),
    )


def trim_and_fill(values: Sequence[float]) -> TrimFillResult:
    """Simplified trim-and-fill around the unweighted mean."""
    y = np.asarray(values, dtype=float)
    k = y.size
    mean_effect = float(np.mean(y))
    offsets = y - mean_effect
    # Values within rounding distance of the mean sit on neither side
    tol = 1e-12 * max(1.0, abs(mean_effect))
    above = y[offsets > tol]
    below = y[offsets < -tol]
    k_missing = abs(above.size - below.size)

    imputed = np.asarray([], dtype=float)
    adjusted_effect = mean_effect
    if k_missing > 0:
        if above.size > below.size:
            # Missing on the lower side: mirror the upper values
            mirrored = mean_effect - np.abs(above - mean_effect)
        else:
            mirrored = mean_effect + np.abs(below - mean_effect)
        imputed = mirrored[:k_missing]
        adjusted_effect = float(np.mean(np.concatenate([y, imputed])))

    return TrimFillResult(
        k_original=k,
        k_trimmed=int(k_missing),
        original_effect=finite(mean_effect),
        adjusted_effect=finite(adjusted_effect),
        imputed=tuple(float(v) for v in imputed),
        note="Simplified trim-and-fill (not Duval & Tweedie)",
    )


class PublicationBiasTester:
    """Egger's test, funnel-plot data and trim-and-fill for one metric."""

    min_studies = 3

    def analyze(
        self,
        rows: Sequence[StudyMetrics],
        metric: Union[str, ContinuousMetric],
    ) -> BiasResult:
        metric = as_continuous_metric(metric)
        values = metric_values(rows, metric)
        k = len(values)
        logger.debug(f"Publication bias testing for {metric.value}: k={k}", extra={"metric": metric.value, "k": k})
        if k < self.min_studies:
            logger.warning(
                f"Insufficient studies (k={k}) for bias testing of {metric.value}",
                extra={"metric": metric.value, "k": k},
            )
            return BiasResult(
                metric=metric.value,
                k=k,
                trim_fill=TrimFillResult(note=f"Not performed (k < {TRIM_FILL_MIN_STUDIES})"),
                note=INSUFFICIENT_DATA,
            )

        se = math.sqrt(floored_variance(values) / k)
        ses = [se] * k
        fit = egger_test(values, ses)

        if k >= TRIM_FILL_MIN_STUDIES:
            logger.debug(f"Running trim-and-fill (k={k})")
            trim_fill = trim_and_fill(values)
        else:
            trim_fill = TrimFillResult(note=f"Not performed (k < {TRIM_FILL_MIN_STUDIES})")

        note = SHARED_SE_NOTE
        if fit.p is None:
            note += "; Egger intercept not testable with a shared standard error"
        result = BiasResult(
            metric=metric.value,
            k=k,
            egger_intercept=fit.intercept,
            egger_slope=fit.slope,
            egger_se=fit.se,
            egger_t=fit.t,
            egger_p=fit.p,
            funnel_data=FunnelData(
                effect=tuple(float(v) for v in values),
                se=tuple(ses),
                precision=tuple(1.0 / s for s in ses),
            ),
            trim_fill=trim_fill,
            note=note,
        )
        if result.asymmetry_detected:
            logger.warning(
                f"Significant funnel asymmetry for {metric.value} (Egger p={fit.p:.4f})",
                extra={"metric": metric.value},
            )
        else:
            logger.debug(f"Egger test for {metric.value}: intercept={fit.intercept}, p={fit.p}")
        return result
