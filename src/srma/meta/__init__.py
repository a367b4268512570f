"""Meta-analysis utilities.

This package contains the statistical core of the pipeline: random
effects pooling of continuous metrics with prediction intervals,
logit pooling of diagnostic accuracy, subgroup heterogeneity
decomposition and publication bias diagnostics.  Every analyzer is a
pure function of a read-only metrics table and returns an immutable
result record.

"""

from .analyzer import ContinuousMetaAnalyzer  # noqa: F401
from .bias import PublicationBiasTester, egger_test, trim_and_fill  # noqa: F401
from .diagnostic import DiagnosticMetaAnalyzer  # noqa: F401
from .models import (  # noqa: F401
    AnalysisBundle,
    BiasResult,
    DiagnosticResult,
    MetaAnalysisResult,
    PredictionInterval,
    SubgroupResult,
)
from .prediction import PredictionIntervalCalculator, calculate_prediction_interval  # noqa: F401
from .subgroup import SubgroupAnalyzer  # noqa: F401
