"""Metric extraction from screened records.

This module defines :class:`MetricExtractor`, which mines performance
metrics (accuracy, sensitivity, specificity, R², RMSE, MAE and sample
size) from abstracts using the regular expressions of the review
configuration, and tags each study with an AI method, an application
domain and an experimental scale using keyword vocabularies.  The
patterns are deliberately simple: abstracts rarely report more than a
headline figure per metric, so the first match is taken.
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern, Sequence, Tuple

from ..config.review import ReviewConfig
from ..core.normalization import normalize_percentage
from ..screening.models import ScreenedRecord
from ..utils.logging import get_logger
from .models import ExtractionStats, StudyMetrics

logger = get_logger(__name__)

DOMAIN_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("Brewing", ("brewing", "beer", "yeast")),
    ("Bioprocess", ("bioreactor", "bioprocess", "cell culture")),
    ("Fermentation", ("wine", "fermentation")),
)

SCALE_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("Industrial", ("industrial", "production scale", "commercial")),
    ("Pilot", ("pilot", "pilot-scale")),
    ("Lab", ("lab", "laboratory", "bench")),
)

SAMPLE_SIZE_PATTERNS: Sequence[str] = (
    r"\b[Nn]\s*=\s*(\d+)",
    r"sample size[:\s]+(\d+)",
    r"(\d+)\s+samples",
)


def _first_label(text_lower: str, vocabulary: Sequence[Tuple[str, Tuple[str, ...]]], default: str) -> str:
    for label, keywords in vocabulary:
        if any(keyword in text_lower for keyword in keywords):
            return label
    return default


class MetricExtractor:
    """Extract a :class:`StudyMetrics` row from each eligible record."""

    def __init__(self, config: ReviewConfig) -> None:
        self.config = config
        patterns = config.extraction_patterns
        self._accuracy = re.compile(patterns.accuracy_regex, re.IGNORECASE)
        self._sensitivity = re.compile(patterns.sensitivity_regex, re.IGNORECASE)
        self._specificity = re.compile(patterns.specificity_regex, re.IGNORECASE)
        self._r2 = re.compile(patterns.r2_regex, re.IGNORECASE)
        self._rmse = re.compile(patterns.rmse_regex, re.IGNORECASE)
        self._mae = re.compile(patterns.mae_regex, re.IGNORECASE)
        self._sample_size = [re.compile(p) for p in SAMPLE_SIZE_PATTERNS]

    def identify_ai_method(self, text: str) -> str:
        text_lower = text.lower()
        for phrase, label in self.config.ai_method_synonyms:
            if phrase.lower() in text_lower:
                return label
        return "Other"

    @staticmethod
    def identify_domain(text: str) -> str:
        return _first_label(text.lower(), DOMAIN_KEYWORDS, "Other")

    @staticmethod
    def identify_scale(text: str) -> str:
        return _first_label(text.lower(), SCALE_KEYWORDS, "Unspecified")

    @staticmethod
    def extract_numeric(text: str, pattern: Pattern[str]) -> Optional[float]:
        """First match of ``pattern`` in ``text`` parsed as a float."""
        if not text:
            return None
        match = pattern.search(text)
        if not match:
            return None
        try:
            return float(match.group(1))
        except (IndexError, ValueError):
            return None

    def extract_sample_size(self, text: str) -> Optional[int]:
        if not text:
            return None
        for pattern in self._sample_size:
            match = pattern.search(text)
            if match:
                return int(match.group(1))
        return None

    def extract_record(self, screened: ScreenedRecord, study_id: int) -> StudyMetrics:
        record = screened.record
        text = f"{record.title} {record.abstract} {record.keywords}"
        abstract = record.abstract
        return StudyMetrics(
            study_id=study_id,
            year=record.year,
            ai_method=self.identify_ai_method(text),
            domain=self.identify_domain(text),
            scale=self.identify_scale(text),
            acc=normalize_percentage(self.extract_numeric(abstract, self._accuracy)),
            sens=normalize_percentage(self.extract_numeric(abstract, self._sensitivity)),
            spec=normalize_percentage(self.extract_numeric(abstract, self._specificity)),
            r2=self.extract_numeric(abstract, self._r2),
            rmse=self.extract_numeric(abstract, self._rmse),
            mae=self.extract_numeric(abstract, self._mae),
            n=self.extract_sample_size(abstract),
            included_meta_flag=screened.for_meta,
            title=record.title,
            doi=record.doi,
            first_author=record.first_author,
        )

    def extract(self, screened: List[ScreenedRecord]) -> Tuple[List[StudyMetrics], ExtractionStats]:
        """Extract metrics from the eligible records, numbering studies from 1."""
        eligible = [s for s in screened if s.eligible]
        logger.info(f"Extracting metrics from {len(eligible)} eligible records", extra={"stage": "extract"})
        rows = [self.extract_record(s, i) for i, s in enumerate(eligible, start=1)]
        if not rows:
            return rows, ExtractionStats()
        n = len(rows)
        has_binary = sum(1 for r in rows if r.has_binary)
        has_continuous = sum(1 for r in rows if r.has_continuous)
        complete = sum(1 for r in rows if r.has_binary or r.has_continuous)
        stats = ExtractionStats(
            total=n,
            has_binary=has_binary,
            has_continuous=has_continuous,
            complete_pct=100.0 * complete / n,
            # Abstracts never report a full metric set, so partial equals complete
            partial_pct=100.0 * complete / n,
            missing_pct=100.0 * (n - complete) / n,
        )
        logger.info(
            f"Complete={stats.complete_pct:.1f}% | binary={has_binary} | continuous={has_continuous}",
            extra={"stage": "extract"},
        )
        for row in rows[:5]:
            logger.debug(f"ID={row.study_id} | Year={row.year} | Method={row.ai_method} | R2={row.r2} | Acc={row.acc}")
        return rows, stats
