"""GRADE certainty-of-evidence rules.

Evidence from observational AI/ML studies starts at MODERATE and is
downgraded for risk of bias, inconsistency, indirectness, imprecision
and publication bias.  The rules consume the meta-analysis results;
undefined statistics are treated as described on each rule.
"""

from __future__ import annotations

from typing import Optional

from ..meta.models import BiasResult, MetaAnalysisResult
from ..utils.logging import get_logger
from .models import CertaintyRating, GradeAssessment, StudyCharacteristics

logger = get_logger(__name__)


def risk_of_bias_downgrade(high_risk_pct: float) -> int:
    if high_risk_pct > 0.75:
        return 2
    if high_risk_pct > 0.50:
        return 1
    return 0


def inconsistency_downgrade(I2: Optional[float]) -> int:
    """Undefined I² gives no downgrade."""
    if I2 is None:
        return 0
    if I2 > 75:
        return 2
    if I2 > 50:
        return 1
    return 0


def imprecision_downgrade(result: MetaAnalysisResult) -> int:
    """Downgrade on relative CI width and study count.

    An undefined effect or CI, or a zero effect (relative width is
    unbounded), is serious imprecision.
    """
    if result.effect is None or result.ci_low is None or result.ci_high is None or result.effect == 0:
        return 2
    relative_ci = (result.ci_high - result.ci_low) / abs(result.effect)
    if relative_ci > 1.0 or result.k < 5:
        return 2
    if relative_ci > 0.5 or result.k < 10:
        return 1
    return 0


def publication_bias_downgrade(bias: Optional[BiasResult]) -> int:
    return 1 if bias is not None and bias.asymmetry_detected else 0


def assess_grade_certainty(
    result: MetaAnalysisResult,
    characteristics: StudyCharacteristics,
    bias: Optional[BiasResult] = None,
) -> GradeAssessment:
    """Rate the certainty of evidence for one pooled outcome."""
    starting = CertaintyRating.MODERATE
    assessment = GradeAssessment(
        outcome=result.metric,
        n_studies=result.k,
        effect=result.effect,
        ci_low=result.ci_low,
        ci_high=result.ci_high,
        I2=result.I2,
        starting_rating=starting,
        rob_downgrade=risk_of_bias_downgrade(characteristics.high_risk_pct),
        inconsistency_downgrade=inconsistency_downgrade(result.I2),
        indirectness_downgrade=1 if characteristics.diverse_populations else 0,
        imprecision_downgrade=imprecision_downgrade(result),
        pub_bias_downgrade=publication_bias_downgrade(bias),
    )
    final = CertaintyRating(max(int(CertaintyRating.VERY_LOW), int(starting) - assessment.total_downgrade))
    assessment = assessment.model_copy(update={"final_rating": final})
    logger.debug(
        f"GRADE {result.metric}: RoB={assessment.rob_downgrade}, Incons={assessment.inconsistency_downgrade}, "
        f"Indir={assessment.indirectness_downgrade}, Imprec={assessment.imprecision_downgrade}, "
        f"PubBias={assessment.pub_bias_downgrade} -> {final.label}",
        extra={"metric": result.metric},
    )
    return assessment
