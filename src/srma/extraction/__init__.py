"""Extraction of per-study metrics from screened records.

Modules:

  extractor: Implements :class:`MetricExtractor`, the regex and keyword
      based miner producing one :class:`StudyMetrics` row per study.
  models: The metrics row, metric and moderator enumerations and the
      lookup helpers used by the analyzers.

"""

from .models import (  # noqa: F401
    ContinuousMetric,
    DiagnosticMetric,
    ExtractionStats,
    Moderator,
    StudyMetrics,
    metric_values,
)
from .extractor import MetricExtractor  # noqa: F401
