"""RIS bibliography parsing.

Records are read with :mod:`rispy` and mapped onto :class:`RisRecord`.
Single-valued tags keep their first occurrence; repeated tags (authors,
keywords) are joined with ``"; "``.  When AU is empty the A1 authors
are used instead.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any, Dict, List

import rispy

from ..core.models import RisRecord
from ..core.normalization import truncate
from ..utils.logging import get_logger

logger = get_logger(__name__)

# rispy entry key -> RisRecord field
SINGLE_KEYS: Dict[str, str] = {
    "type_of_reference": "type",  # TY
    "title": "title",  # TI
    "secondary_title": "secondary_title",  # T2
    "year": "publication_year",  # PY
    "publication_year": "date",  # Y1
    "doi": "doi",  # DO
    "issn": "issn",  # SN
    "volume": "volume",  # VL
    "number": "issue",  # IS
    "start_page": "start_page",  # SP
    "end_page": "end_page",  # EP
    "abstract": "abstract",  # AB
}
LIST_KEYS: Dict[str, str] = {
    "authors": "authors",  # AU
    "first_authors": "primary_authors",  # A1
    "secondary_authors": "secondary_authors",  # A2
    "keywords": "keywords",  # KW
}


def _first(value: Any) -> str:
    # Repeated single-valued tags come back as a list
    if isinstance(value, list):
        value = value[0] if value else ""
    return str(value).strip()


def _joined(value: Any) -> str:
    if isinstance(value, list):
        return "; ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


def _to_record(entry: Dict[str, Any], index: int) -> RisRecord:
    fields = {field: _first(entry[key]) for key, field in SINGLE_KEYS.items() if key in entry}
    fields.update({field: _joined(entry[key]) for key, field in LIST_KEYS.items() if key in entry})
    if not fields.get("authors") and fields.get("primary_authors"):
        fields["authors"] = fields["primary_authors"]
    return RisRecord(record_index=index, **fields)


def parse_ris_text(content: str) -> List[RisRecord]:
    """Parse RIS content already loaded into memory."""
    if not content.strip():
        logger.warning("No records found in RIS content")
        return []
    entries = rispy.loads(content, enforce_list_tags=False)
    records = [_to_record(entry, i) for i, entry in enumerate(entries)]
    if not records:
        logger.warning("No records found in RIS content")
        return records
    missing_doi = sum(1 for r in records if not r.doi)
    logger.info(
        f"Parsed {len(records)} records, missing DOI: {missing_doi} "
        f"({100.0 * missing_doi / len(records):.1f}%)",
        extra={"stage": "parse"},
    )
    type_counts = Counter(r.type for r in records if r.type)
    for record_type, count in type_counts.most_common():
        logger.debug(f"Type {record_type}: {count} ({100.0 * count / len(records):.1f}%)")
    for record in records[:5]:
        logger.debug(
            f"Row {record.record_index}: TY={record.type} | TI={truncate(record.title)} "
            f"| PY={record.publication_year} | DO={record.doi}"
        )
    return records


def parse_ris(path: Path) -> List[RisRecord]:
    """Parse a RIS file into a list of :class:`RisRecord`.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"RIS file not found: {path}")
    logger.info(f"Parsing {path}", extra={"stage": "parse", "path": path})
    # utf-8-sig strips the BOM some reference managers write
    content = path.read_text(encoding="utf-8-sig", errors="replace")
    return parse_ris_text(content)
