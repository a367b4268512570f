"""Review configuration: keyword lists, extraction patterns and thresholds.

The review configuration is a JSON document describing *what* the
review looks for (inclusion/exclusion vocabularies, abstract regexes)
as opposed to :mod:`srma.config.settings`, which controls *how* the
program runs.  Every field has a default so a partial file is valid.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from pydantic import BaseModel, Field

from ..utils.logging import get_logger

logger = get_logger(__name__)


class ExtractionPatterns(BaseModel):
    """Regular expressions mining metrics from abstracts (group 1 is the value)."""

    accuracy_regex: str = r"accuracy\s*(?:of|was|was\s+of|=|:|reached)?\s*(\d+(?:\.\d+)?)"
    sensitivity_regex: str = r"sensitivity\s*(?:of|was|=|:)?\s*(\d+(?:\.\d+)?)"
    specificity_regex: str = r"specificity\s*(?:of|was|=|:)?\s*(\d+(?:\.\d+)?)"
    r2_regex: str = r"\bR(?:2|²|\^2|-squared)\s*(?:of|was|=|:|>|≥)?\s*(\d*\.\d+|\d+)"
    rmse_regex: str = r"\bRMSE\s*(?:of|was|=|:)?\s*(\d*\.\d+|\d+)"
    mae_regex: str = r"\bMAE\s*(?:of|was|=|:)?\s*(\d*\.\d+|\d+)"


class MetaAnalysisThresholds(BaseModel):
    """Minimum study counts used when reporting and gating analyses."""

    min_studies_continuous: int = Field(3, ge=1)
    min_studies_diagnostic: int = Field(3, ge=1)
    min_studies_subgroup: int = Field(10, ge=1, description="Subgroups run only above this many studies")


class GradeInputs(BaseModel):
    """Study-level judgements feeding the GRADE assessment."""

    high_risk_pct: float = Field(0.0, ge=0.0, le=1.0, description="Share of studies at high risk of bias")
    diverse_populations: bool = False


DEFAULT_AI_METHOD_SYNONYMS: List[Tuple[str, str]] = [
    ("convolutional neural network", "CNN"),
    ("deep learning", "DL"),
    ("support vector machine", "SVM"),
    ("random forest", "RF"),
    ("neural network", "ANN"),
    ("machine learning", "ML"),
]


class ReviewConfig(BaseModel):
    """Complete review configuration."""

    ai_keywords_include: List[str] = Field(
        default_factory=lambda: [
            "machine learning",
            "deep learning",
            "neural network",
            "artificial intelligence",
            "random forest",
            "support vector",
        ]
    )
    fermentation_keywords: List[str] = Field(
        default_factory=lambda: ["fermentation", "foam", "brewing", "bioreactor", "yeast", "bioprocess"],
        description="Topic keywords; at least one must appear in title or abstract",
    )
    exclude_keywords: List[str] = Field(default_factory=lambda: ["retracted", "erratum"])
    extraction_patterns: ExtractionPatterns = Field(default_factory=ExtractionPatterns)
    meta_analysis_thresholds: MetaAnalysisThresholds = Field(default_factory=MetaAnalysisThresholds)
    ai_method_synonyms: List[Tuple[str, str]] = Field(
        default_factory=lambda: list(DEFAULT_AI_METHOD_SYNONYMS),
        description="Ordered (phrase, label) pairs; first match wins",
    )
    grade: GradeInputs = Field(default_factory=GradeInputs)


def load_review_config(path: Path) -> ReviewConfig:
    """Load a review configuration from a JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        pydantic.ValidationError: If the content does not match the schema.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    config = ReviewConfig.model_validate_json(path.read_text(encoding="utf-8"))
    logger.info(
        f"Loaded {len(config.ai_keywords_include)} AI keywords, "
        f"{len(config.fermentation_keywords)} fermentation keywords"
    )
    return config


def write_default_config(path: Path) -> Path:
    """Write the default configuration as pretty-printed JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(ReviewConfig().model_dump_json(indent=2), encoding="utf-8")
    return path
