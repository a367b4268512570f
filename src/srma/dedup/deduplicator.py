"""DOI-keyed deduplication for bibliographic records."""

from typing import Dict, List, Optional, Tuple
from collections import Counter
from rapidfuzz import fuzz

from ..core.models import RisRecord, DedupMethod, DuplicatePair, DeduplicationReport
from ..core.normalization import normalize_doi, normalize_text
from ..utils.logging import get_logger

logger = get_logger(__name__)

STRATEGIES = ("doi", "doi+title")


class Deduplicator:
    """
    Keep the first occurrence of each record, keyed by normalized DOI.

    Strategy:
    1. Normalized DOI (records whose DOI is too short or a placeholder
       are treated as unique)
    2. Optional (``strategy="doi+title"``): records still keyed as unique
       are matched by normalized title, first-author surname and year
       using a fuzzy title similarity threshold
    """

    def __init__(self, strategy: str = "doi", fuzzy_threshold: float = 0.95) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown deduplication strategy: {strategy!r}")
        self.strategy = strategy
        self.fuzzy_threshold = fuzzy_threshold

    @staticmethod
    def _doi_key(record: RisRecord, position: int) -> Tuple[str, DedupMethod]:
        if not record.doi:
            return f"UNIQUE_ROW_{position}", DedupMethod.NO_DOI
        doi = normalize_doi(record.doi) or ""
        if len(doi) > 5 and "unknown" not in doi:
            return doi, DedupMethod.DOI
        return f"UNIQUE_ROW_{position}", DedupMethod.UNIQUE

    def _title_matches(
        self,
        records: List[RisRecord],
        keys: List[str],
        methods: List[DedupMethod],
    ) -> Dict[int, float]:
        """Re-key DOI-less records that fuzzily match an earlier one.

        Returns the similarity of each re-keyed position.
        """
        confidence: Dict[int, float] = {}
        candidates = [i for i, m in enumerate(methods) if m is not DedupMethod.DOI]
        titles = {i: normalize_text(records[i].title) for i in candidates}
        for pos, i in enumerate(candidates):
            if methods[i] is DedupMethod.TITLE_AUTHOR_YEAR:
                continue
            rec_i = records[i]
            for j in candidates[pos + 1:]:
                if methods[j] is DedupMethod.TITLE_AUTHOR_YEAR:
                    continue
                rec_j = records[j]
                if not titles[i] or not titles[j]:
                    continue
                if rec_i.year != rec_j.year or rec_i.year is None:
                    continue
                if normalize_text(rec_i.first_author) != normalize_text(rec_j.first_author):
                    continue
                similarity = fuzz.ratio(titles[i], titles[j]) / 100.0
                if similarity >= self.fuzzy_threshold:
                    key = f"{titles[i]}|{normalize_text(rec_i.first_author)}|{rec_i.year}"
                    keys[i] = keys[j] = key
                    methods[i] = methods[j] = DedupMethod.TITLE_AUTHOR_YEAR
                    confidence[j] = similarity
        return confidence

    def deduplicate(self, records: List[RisRecord]) -> Tuple[List[RisRecord], DeduplicationReport]:
        logger.info(f"Starting deduplication of {len(records)} records", extra={"stage": "dedup"})
        if not records:
            return [], DeduplicationReport(before=0, after=0)
        keys: List[str] = []
        methods: List[DedupMethod] = []
        for position, record in enumerate(records):
            key, method = self._doi_key(record, position)
            keys.append(key)
            methods.append(method)
        confidence: Dict[int, float] = {}
        if self.strategy == "doi+title":
            confidence = self._title_matches(records, keys, methods)

        first_seen: Dict[str, int] = {}
        pairs: List[DuplicatePair] = []
        kept: List[RisRecord] = []
        kept_methods: List[DedupMethod] = []
        for position, key in enumerate(keys):
            original: Optional[int] = first_seen.get(key)
            if original is None:
                first_seen[key] = position
                kept.append(records[position])
                kept_methods.append(methods[position])
                continue
            pairs.append(
                DuplicatePair(
                    kept=records[original].record_index,
                    removed=records[position].record_index,
                    key=key,
                    method=methods[original],
                    confidence=confidence.get(position, 1.0),
                )
            )
        report = DeduplicationReport(
            before=len(records),
            after=len(kept),
            pairs=tuple(pairs),
            kept_by_method=dict(Counter(kept_methods)),
        )
        logger.info(
            f"Deduplication complete: {report.before} -> {report.after} records "
            f"({report.total_duplicates} removed)",
            extra={"stage": "dedup"},
        )
        for pair in pairs[:5]:
            logger.debug(f"Kept row {pair.kept}, removed row {pair.removed} (method: {pair.method.value})")
        return kept, report
