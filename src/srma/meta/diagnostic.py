"""Diagnostic-accuracy meta-analysis.

Sensitivity and specificity are pooled separately on the logit scale
with inverse-variance weights and back-transformed with the logistic
function, which keeps the pooled values and their (asymmetric)
confidence limits inside ``(0, 1)``.  Per-study sample sizes are not
reliably available, so each study's logit variance is approximated by
``1 / (k · p · (1 − p))``.  The reported AUC is the mean of pooled
sensitivity and specificity, not an sROC-derived area.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

from ..extraction.models import DiagnosticMetric, StudyMetrics, paired_values
from ..utils.logging import get_logger
from .models import INSUFFICIENT_DATA, DiagnosticResult
from .stats import Z_95, clamp_proportions, expit, finite, logit

logger = get_logger(__name__)

DIAGNOSTIC_NOTE = "Logit-transformed pooling; AUC approximated as (Sens + Spec) / 2"


def _pool_logit(proportions: np.ndarray, k: int) -> Tuple[float, float]:
    """Inverse-variance pooled logit and its standard error."""
    logits = logit(proportions)
    weights = k * proportions * (1.0 - proportions)
    pooled = float(np.sum(weights * logits) / np.sum(weights))
    se = math.sqrt(1.0 / np.sum(weights))
    return pooled, se


class DiagnosticMetaAnalyzer:
    """Pool sensitivity/specificity pairs across studies."""

    def __init__(self, min_studies: int = 3) -> None:
        self.min_studies = min_studies

    def analyze(self, rows: Sequence[StudyMetrics]) -> DiagnosticResult:
        pairs = paired_values(rows, DiagnosticMetric.SENS, DiagnosticMetric.SPEC)
        k = len(pairs)
        logger.debug(f"Diagnostic meta-analysis: k={k}", extra={"k": k})
        if k < self.min_studies:
            logger.warning(f"Insufficient studies (k={k}) for diagnostic meta-analysis", extra={"k": k})
            return DiagnosticResult(k=k, note=INSUFFICIENT_DATA)

        sens = clamp_proportions([p[0] for p in pairs])
        spec = clamp_proportions([p[1] for p in pairs])
        logit_sens, se_sens = _pool_logit(sens, k)
        logit_spec, se_spec = _pool_logit(spec, k)

        pooled_sens = expit(logit_sens)
        pooled_spec = expit(logit_spec)
        auc = (pooled_sens + pooled_spec) / 2
        auc_se = math.sqrt(se_sens ** 2 + se_spec ** 2) / 2

        result = DiagnosticResult(
            k=k,
            sens=finite(pooled_sens),
            sens_ci_low=finite(expit(logit_sens - Z_95 * se_sens)),
            sens_ci_high=finite(expit(logit_sens + Z_95 * se_sens)),
            spec=finite(pooled_spec),
            spec_ci_low=finite(expit(logit_spec - Z_95 * se_spec)),
            spec_ci_high=finite(expit(logit_spec + Z_95 * se_spec)),
            AUC=finite(auc),
            AUC_ci_low=finite(max(0.0, auc - Z_95 * auc_se)),
            AUC_ci_high=finite(min(1.0, auc + Z_95 * auc_se)),
            note=DIAGNOSTIC_NOTE,
        )
        logger.debug(
            f"k={k} | Sens={pooled_sens:.3f} [{result.sens_ci_low:.3f}, {result.sens_ci_high:.3f}] "
            f"| Spec={pooled_spec:.3f} [{result.spec_ci_low:.3f}, {result.spec_ci_high:.3f}] | AUC={auc:.3f}",
            extra={"k": k},
        )
        return result
