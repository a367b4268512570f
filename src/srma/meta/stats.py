"""Numeric helpers shared by the analyzers.

Every guard against division by zero, log(0) or non-finite output in
the meta-analysis code lives here so the analyzers apply them the
same way.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

Z_95 = 1.96
VARIANCE_FLOOR = 0.01
LOGIT_CLAMP = (0.001, 0.999)


def finite(value: Optional[float]) -> Optional[float]:
    """Return ``value`` as a float, or ``None`` if it is missing or non-finite."""
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def sample_variance(values: Sequence[float]) -> Optional[float]:
    """Unbiased sample variance (``ddof=1``).

    Returns ``None`` for fewer than two values and exactly ``0.0`` when all
    values are identical, so callers can test for a degenerate spread
    without relying on floating-point noise.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return None
    if np.ptp(arr) == 0:
        return 0.0
    return float(np.var(arr, ddof=1))


def floored_variance(values: Sequence[float]) -> float:
    """Sample variance with :data:`VARIANCE_FLOOR` substituted when zero or undefined."""
    var = sample_variance(values)
    if var is None or var == 0 or not math.isfinite(var):
        return VARIANCE_FLOOR
    return var


def clamp_proportions(values: Sequence[float]) -> np.ndarray:
    low, high = LOGIT_CLAMP
    return np.clip(np.asarray(values, dtype=float), low, high)


def logit(p: np.ndarray) -> np.ndarray:
    return np.log(p / (1.0 - p))


def expit(x: float) -> float:
    """Logistic function ``exp(x) / (1 + exp(x))``, stable for large ``|x|``."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    e = math.exp(x)
    return e / (1.0 + e)
