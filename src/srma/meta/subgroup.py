"""Subgroup analysis by a categorical moderator.

The decomposition is method-of-moments, not a mixed-effects subgroup
model: each group contributes ``Q_grp = (k_grp − 1) · var_grp`` to the
within-group sum of squares, the total is the sum of squared
deviations from the grand mean of all valid values, and the
between-group component is their difference.

Groups with fewer than two studies are not pooled, but they still count
towards ``n_groups`` and therefore towards ``df_between``.
"""

from __future__ import annotations

import math
from typing import Dict, List, Sequence, Union

import numpy as np
from scipy import stats

from ..extraction.models import (
    ContinuousMetric,
    Moderator,
    StudyMetrics,
    as_continuous_metric,
    as_moderator,
    labelled_values,
)
from ..utils.logging import get_logger
from .models import SubgroupEstimate, SubgroupResult
from .stats import Z_95, finite, sample_variance

logger = get_logger(__name__)


class SubgroupAnalyzer:
    """Split a continuous metric by a moderator and test between-group heterogeneity."""

    min_group_size = 2

    def analyze(
        self,
        rows: Sequence[StudyMetrics],
        metric: Union[str, ContinuousMetric],
        grouping_var: Union[str, Moderator],
    ) -> SubgroupResult:
        metric = as_continuous_metric(metric)
        moderator = as_moderator(grouping_var)
        pairs = labelled_values(rows, metric, moderator)

        # dicts preserve insertion order: groups appear in first-occurrence order
        groups: Dict[str, List[float]] = {}
        for value, label in pairs:
            groups.setdefault(label, []).append(value)
        n_groups = len(groups)
        logger.debug(
            f"Subgroup analysis for {metric.value} by {moderator.value}: {n_groups} groups",
            extra={"metric": metric.value, "k": len(pairs)},
        )

        estimates: List[SubgroupEstimate] = []
        skipped: List[str] = []
        Q_within = 0.0
        for label, values in groups.items():
            k_grp = len(values)
            if k_grp < self.min_group_size:
                logger.debug(f"Group {label}: k={k_grp} (skipped)")
                skipped.append(label)
                continue
            grp_mean = float(np.mean(values))
            grp_var = sample_variance(values)
            grp_se = math.sqrt(grp_var / k_grp)
            Q_grp = (k_grp - 1) * grp_var
            Q_within += Q_grp
            estimates.append(
                SubgroupEstimate(
                    group=label,
                    k=k_grp,
                    mean=grp_mean,
                    se=grp_se,
                    ci_low=grp_mean - Z_95 * grp_se,
                    ci_high=grp_mean + Z_95 * grp_se,
                    Q=Q_grp,
                )
            )
            logger.debug(f"{label}: k={k_grp}, mean={grp_mean:.4f} [{grp_mean - Z_95 * grp_se:.4f}, {grp_mean + Z_95 * grp_se:.4f}]")

        all_values = np.asarray([value for value, _ in pairs], dtype=float)
        if all_values.size:
            Q_total = float(np.sum((all_values - np.mean(all_values)) ** 2))
        else:
            Q_total = 0.0
        Q_between = Q_total - Q_within
        df_between = n_groups - 1
        p_between = finite(stats.chi2.sf(Q_between, df_between)) if df_between > 0 else None

        result = SubgroupResult(
            metric=metric.value,
            grouping_var=moderator.value,
            k=len(pairs),
            n_groups=n_groups,
            subgroups=tuple(estimates),
            skipped_groups=tuple(skipped),
            Q_within=Q_within,
            Q_between=Q_between,
            Q_total=Q_total,
            df_between=df_between,
            p_between=p_between,
        )
        logger.debug(f"Q_between={Q_between:.2f} (df={df_between}, p={p_between})")
        if p_between is not None and p_between < 0.10:
            logger.info(
                f"Significant between-group heterogeneity for {metric.value} by {moderator.value}",
                extra={"metric": metric.value},
            )
        return result
