"""Descriptive frequency tables of study characteristics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import pandas as pd

from ..extraction.models import StudyMetrics
from ..utils.logging import get_logger

logger = get_logger(__name__)

YEAR_BINS = list(range(1985, 2031, 5))
COLUMNS = ["Category", "n", "Percent"]


def year_bin_label(year: int) -> str:
    """Label of the 5-year bin containing ``year`` (e.g. ``2020-2024``)."""
    start = YEAR_BINS[0] + 5 * ((year - YEAR_BINS[0]) // 5)
    return f"{start}-{start + 4}"


def frequency_table(labels: Sequence[str]) -> pd.DataFrame:
    """Counts and percentages per category, categories sorted ascending."""
    if not labels:
        return pd.DataFrame(columns=COLUMNS)
    counts = pd.Series(list(labels)).value_counts().sort_index()
    return pd.DataFrame(
        {
            "Category": counts.index.astype(str),
            "n": counts.values.astype(int),
            "Percent": 100.0 * counts.values / counts.values.sum(),
        }
    )


@dataclass
class DescriptiveTables:
    """Frequency tables for year bin, AI method, domain and scale."""

    year: pd.DataFrame
    ai_method: pd.DataFrame
    domain: pd.DataFrame
    scale: pd.DataFrame
    percent_sums: Dict[str, float] = field(default_factory=dict)

    def items(self) -> List[tuple]:
        return [
            ("Year", self.year),
            ("AI Method", self.ai_method),
            ("Domain", self.domain),
            ("Scale", self.scale),
        ]


def group_counts(rows: Sequence[StudyMetrics]) -> DescriptiveTables:
    """Build the descriptive tables for a metrics table.

    Studies without a year, or with a year outside the binned range
    (1985-2029), are left out of the year table only.
    """
    years = [
        year_bin_label(r.year)
        for r in rows
        if r.year is not None and YEAR_BINS[0] <= r.year < YEAR_BINS[-1]
    ]
    tables = DescriptiveTables(
        year=frequency_table(years),
        ai_method=frequency_table([r.ai_method for r in rows]),
        domain=frequency_table([r.domain for r in rows]),
        scale=frequency_table([r.scale for r in rows]),
    )
    tables.percent_sums = {
        name: float(table["Percent"].sum()) if len(table) else 0.0 for name, table in tables.items()
    }
    logger.info(
        f"Descriptive tables: years={len(tables.year)}, methods={len(tables.ai_method)}, "
        f"domains={len(tables.domain)}, scales={len(tables.scale)}",
        extra={"stage": "descriptive"},
    )
    return tables
