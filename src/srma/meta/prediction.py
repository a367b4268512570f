"""Prediction intervals for random-effects meta-analysis."""

from __future__ import annotations

import math

from scipy import stats

from ..utils.logging import get_logger
from .models import PredictionInterval
from .stats import finite

logger = get_logger(__name__)


class PredictionIntervalCalculator:
    """95% prediction interval ``effect ± t(0.975, k-2) · sqrt(se² + τ²)``.

    Unlike the confidence interval, the prediction interval describes
    where the true effect of a *new* study is expected to fall, so it
    adds the between-study variance and uses the Student-t quantile with
    ``k - 2`` degrees of freedom.
    """

    min_studies = 3

    def __init__(self, level: float = 0.95) -> None:
        self.level = level

    def calculate(self, effect: float, se: float, tau2: float, k: int) -> PredictionInterval:
        if k < self.min_studies:
            logger.warning(f"Insufficient studies for prediction interval (k={k})", extra={"k": k})
            return PredictionInterval(note="Insufficient studies")
        df = k - 2
        t_value = float(stats.t.ppf(1 - (1 - self.level) / 2, df))
        pred_se = math.sqrt(se ** 2 + tau2)
        pi_low = finite(effect - t_value * pred_se)
        pi_high = finite(effect + t_value * pred_se)
        logger.debug(f"{self.level:.0%} prediction interval: [{pi_low}, {pi_high}] (df={df}, t={t_value:.3f})")
        return PredictionInterval(
            pi_low=pi_low,
            pi_high=pi_high,
            pred_se=finite(pred_se),
            df=df,
            t_value=t_value,
        )


def calculate_prediction_interval(effect: float, se: float, tau2: float, k: int) -> PredictionInterval:
    """Convenience wrapper around :class:`PredictionIntervalCalculator`."""
    return PredictionIntervalCalculator().calculate(effect, se, tau2, k)
