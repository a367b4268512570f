"""Text and metadata normalization utilities."""

import re
from typing import Optional

_DOI_URL_PREFIX = re.compile(r"^https?://.*doi\.org/")
_YEAR = re.compile(r"\d{4}")


def normalize_doi(doi: Optional[str]) -> Optional[str]:
    """Normalize a DOI: lowercase, no whitespace, no URL or ``doi:`` prefix."""
    if not doi:
        return None
    doi = doi.strip().lower().replace(" ", "")
    doi = _DOI_URL_PREFIX.sub("", doi)
    if doi.startswith("doi:"):
        doi = doi[4:]
    return doi or None


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not text:
        return ""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s]", "", text)
    return " ".join(text.split())


def extract_year(value: Optional[str]) -> Optional[int]:
    """Return the first 4-digit group of a RIS date field as an int."""
    if not value:
        return None
    match = _YEAR.search(value)
    return int(match.group(0)) if match else None


def first_author_surname(authors: Optional[str]) -> Optional[str]:
    """Surname (first word) of the first author in a ``;``/``,`` separated list."""
    if not authors:
        return None
    first = re.split(r"[;,]", authors)[0].strip()
    if not first:
        return None
    return first.split()[0]


def normalize_percentage(value: Optional[float]) -> Optional[float]:
    """Convert a percentage (> 1) to a proportion.

    Values that are still outside ``[0, 1]`` after conversion cannot be
    proportions and are reported as missing.
    """
    if value is None:
        return None
    if value > 1:
        value = value / 100.0
    if value < 0 or value > 1:
        return None
    return value


def truncate(text: Optional[str], max_length: int = 40) -> str:
    """Shorten text for log output."""
    if not text:
        return "(empty)"
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text
