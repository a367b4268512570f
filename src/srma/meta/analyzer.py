"""Random-effects meta-analysis of continuous metrics.

This module defines :class:`ContinuousMetaAnalyzer`, which pools one
continuous metric (R², RMSE or MAE) across studies with the
DerSimonian–Laird random-effects model and reports heterogeneity
(Q, I², τ²), a normal-approximation confidence interval, a Student-t
prediction interval and a Z-test for the overall effect.

Abstracts rarely report per-study standard errors, so every study is
given the same variance ``s² / k`` derived from the sample variance
``s²`` of the reported values.  With equal variances the pooled effect
is the unweighted mean; the result note records the approximation.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Union

import numpy as np
from scipy import stats

from ..extraction.models import ContinuousMetric, StudyMetrics, as_continuous_metric, metric_values
from ..utils.logging import get_logger
from .models import INSUFFICIENT_DATA, MetaAnalysisResult
from .prediction import PredictionIntervalCalculator
from .stats import Z_95, finite, floored_variance

logger = get_logger(__name__)

EQUAL_VARIANCE_NOTE = "Variances estimated from sample variance (equal-variance approximation)"


class ContinuousMetaAnalyzer:
    """DerSimonian–Laird pooling of a continuous metric.

    The analyzer holds no state between calls; ``analyze`` is a pure
    function of the metrics table.
    """

    def __init__(
        self,
        prediction: Optional[PredictionIntervalCalculator] = None,
        min_studies: int = 3,
    ) -> None:
        self.prediction = prediction or PredictionIntervalCalculator()
        self.min_studies = min_studies

    def analyze(
        self,
        rows: Sequence[StudyMetrics],
        metric: Union[str, ContinuousMetric],
    ) -> MetaAnalysisResult:
        """Pool ``metric`` across the studies that report it."""
        metric = as_continuous_metric(metric)
        values = metric_values(rows, metric)
        logger.debug(f"Meta-analysis for {metric.value}: k={len(values)}", extra={"metric": metric.value})
        return self.pool(values, metric.value)

    def pool(self, values: Sequence[float], metric: str) -> MetaAnalysisResult:
        """Pool raw values; exposed separately so callers can reuse it on any series."""
        k = len(values)
        if k < self.min_studies:
            logger.warning(
                f"Insufficient studies (k={k}) for {metric} meta-analysis",
                extra={"metric": metric, "k": k},
            )
            return MetaAnalysisResult(metric=metric, k=k, note=INSUFFICIENT_DATA)

        y = np.asarray(values, dtype=float)
        variances = np.full(k, floored_variance(y) / k)
        weights = 1.0 / variances

        # Fixed-effect estimate and heterogeneity
        effect_fixed = np.sum(weights * y) / np.sum(weights)
        Q = float(np.sum(weights * (y - effect_fixed) ** 2))
        df = k - 1
        p_het = float(stats.chi2.sf(Q, df))
        I2 = max(0.0, 100.0 * (Q - df) / Q) if Q > 0 else 0.0

        # DerSimonian-Laird between-study variance
        C = np.sum(weights) - np.sum(weights ** 2) / np.sum(weights)
        tau2 = max(0.0, (Q - df) / C) if C > 0 else 0.0

        weights_re = 1.0 / (variances + tau2)
        effect = float(np.sum(weights_re * y) / np.sum(weights_re))
        se = math.sqrt(1.0 / np.sum(weights_re))

        interval = self.prediction.calculate(effect, se, tau2, k)
        z = effect / se if se > 0 else 0.0
        p = float(2 * stats.norm.sf(abs(z)))

        result = MetaAnalysisResult(
            metric=metric,
            k=k,
            effect=finite(effect),
            se=finite(se),
            ci_low=finite(effect - Z_95 * se),
            ci_high=finite(effect + Z_95 * se),
            pi_low=interval.pi_low,
            pi_high=interval.pi_high,
            tau2=finite(tau2),
            I2=finite(I2),
            Q=finite(Q),
            p_het=finite(p_het),
            p=finite(p),
            note=EQUAL_VARIANCE_NOTE,
        )
        logger.debug(
            f"{metric} | k={k} | effect={effect:.4f} [{effect - Z_95 * se:.4f}, {effect + Z_95 * se:.4f}] "
            f"| I2={I2:.1f}% | tau2={tau2:.4f} | Q={Q:.2f} (p={p_het:.4f}) | p={p:.4f}",
            extra={"metric": metric, "k": k},
        )
        return result
