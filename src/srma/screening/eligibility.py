"""Keyword-based eligibility screening.

This module applies the review's inclusion and exclusion criteria to
deduplicated records.  Criteria are evaluated in a fixed order and
every failed criterion is recorded, so a record excluded for lacking
AI keywords *and* being off-topic reports both reasons.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from ..config.review import ReviewConfig
from ..core.models import RisRecord
from ..core.normalization import extract_year, truncate
from ..utils.logging import get_logger
from .models import EligibilityCounts, ExclusionReason, ScreenedRecord

logger = get_logger(__name__)

EXCLUDED_DOCUMENT_TYPES = frozenset({"review", "editorial", "letter", "note"})
MIN_ABSTRACT_LENGTH = 50
MIN_META_ABSTRACT_LENGTH = 100


def has_keyword(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match against any keyword."""
    if not text:
        return False
    text_lower = text.lower()
    return any(keyword.lower() in text_lower for keyword in keywords)


def filter_by_year(records: List[RisRecord], year_start: int, year_end: int) -> List[RisRecord]:
    """Keep records whose PY year lies within ``[year_start, year_end]``.

    Records without a parseable PY year are dropped.

    Raises:
        ValueError: If ``year_start > year_end``.
    """
    if year_start > year_end:
        raise ValueError("Start year must be <= end year")
    kept = []
    for record in records:
        year = extract_year(record.publication_year)
        if year is not None and year_start <= year <= year_end:
            kept.append(record)
    logger.info(
        f"Year filter {year_start}-{year_end}: kept {len(kept)} of {len(records)} records",
        extra={"stage": "year_filter"},
    )
    return kept


class EligibilityScreener:
    """Screen records against the keyword criteria of a :class:`ReviewConfig`."""

    def __init__(self, config: ReviewConfig) -> None:
        self.config = config

    def screen_record(self, record: RisRecord) -> ScreenedRecord:
        reasons: List[ExclusionReason] = []
        if record.type.lower() in EXCLUDED_DOCUMENT_TYPES:
            reasons.append(ExclusionReason.DOCUMENT_TYPE)
        text = record.title_abstract
        if has_keyword(text, self.config.exclude_keywords):
            reasons.append(ExclusionReason.EXCLUSION_KEYWORD)
        if not has_keyword(text, self.config.ai_keywords_include):
            reasons.append(ExclusionReason.AI_ABSENT)
        if not has_keyword(text, self.config.fermentation_keywords):
            reasons.append(ExclusionReason.TOPIC_MISMATCH)
        # Only reported when nothing else excluded the record
        if not reasons and len(record.abstract.strip()) < MIN_ABSTRACT_LENGTH:
            reasons.append(ExclusionReason.ABSTRACT_MISSING)
        eligible = not reasons
        for_meta = (
            eligible
            and bool(record.doi)
            and bool(record.publication_year or record.date)
            and len(record.abstract) > MIN_META_ABSTRACT_LENGTH
        )
        return ScreenedRecord(
            record=record,
            eligible=eligible,
            for_meta=for_meta,
            exclusion_reasons=tuple(reasons),
        )

    def screen(self, records: List[RisRecord]) -> Tuple[List[ScreenedRecord], EligibilityCounts]:
        """Screen all records and tally PRISMA counts."""
        logger.info(f"Screening {len(records)} records", extra={"stage": "screening"})
        screened = [self.screen_record(record) for record in records]

        def count(reason: ExclusionReason) -> int:
            return sum(1 for s in screened if reason in s.exclusion_reasons)

        eligible = sum(1 for s in screened if s.eligible)
        counts = EligibilityCounts(
            screened=len(screened),
            eligible=eligible,
            for_meta=sum(1 for s in screened if s.for_meta),
            excluded_total=len(screened) - eligible,
            excluded_ai_absent=count(ExclusionReason.AI_ABSENT),
            excluded_topic_mismatch=count(ExclusionReason.TOPIC_MISMATCH),
            excluded_abstract_only=count(ExclusionReason.ABSTRACT_MISSING),
            excluded_type=count(ExclusionReason.DOCUMENT_TYPE) + count(ExclusionReason.EXCLUSION_KEYWORD),
        )
        if counts.screened:
            logger.info(
                f"Eligible={counts.eligible} ({100.0 * counts.eligible / counts.screened:.1f}%), "
                f"for meta-analysis={counts.for_meta}",
                extra={"stage": "screening"},
            )
        logger.debug(
            f"Excluded: AI_absent={counts.excluded_ai_absent}, Topic={counts.excluded_topic_mismatch}, "
            f"Abstract={counts.excluded_abstract_only}, Type={counts.excluded_type}"
        )
        for s in [s for s in screened if s.eligible][:5]:
            logger.debug(f"Eligible row {s.record.record_index}: {truncate(s.record.title, 60)}")
        return screened, counts
