"""PRISMA flow counts and diagram generation.

This module collects the counts reported in a PRISMA flow chart from
the pipeline stages (parsing, year filter, deduplication, screening)
and draws a simple flow diagram with matplotlib.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import FancyBboxPatch  # noqa: E402
from pydantic import BaseModel, ConfigDict  # noqa: E402

from ..core.models import DeduplicationReport  # noqa: E402
from ..screening.models import EligibilityCounts  # noqa: E402
from ..utils.logging import get_logger  # noqa: E402

logger = get_logger(__name__)


class PrismaCounts(BaseModel):
    """Record flow through the review."""

    model_config = ConfigDict(frozen=True)

    identified: int
    after_year_filter: int
    duplicates_removed: int
    screened: int
    eligible: int
    for_meta: int
    excluded_total: int
    excluded_ai_absent: int
    excluded_topic_mismatch: int
    excluded_abstract_only: int
    year_start: int
    year_end: int

    def csv_row(self) -> Dict[str, int]:
        """Row of ``prisma_counts.csv``; late-duplicate and language exclusions are not tracked."""
        return {
            "identified": self.identified,
            "duplicates_removed": self.duplicates_removed,
            "screened": self.screened,
            "fulltext_assessed": self.screened,
            "excluded_total": self.excluded_total,
            "excluded_ai_absent": self.excluded_ai_absent,
            "excluded_topic_mismatch": self.excluded_topic_mismatch,
            "excluded_abstract_only": self.excluded_abstract_only,
            "excluded_duplicate_late": 0,
            "excluded_language": 0,
            "eligible": self.eligible,
            "included_meta": self.for_meta,
        }


def compute_prisma_counts(
    identified: int,
    after_year_filter: int,
    dedup_report: DeduplicationReport,
    eligibility: EligibilityCounts,
    year_start: int,
    year_end: int,
) -> PrismaCounts:
    """Assemble PRISMA counts from the stage outputs.

    ``identified`` is the number of parsed records before the year filter.
    """
    return PrismaCounts(
        identified=identified,
        after_year_filter=after_year_filter,
        duplicates_removed=dedup_report.total_duplicates,
        screened=eligibility.screened,
        eligible=eligibility.eligible,
        for_meta=eligibility.for_meta,
        excluded_total=eligibility.excluded_total,
        excluded_ai_absent=eligibility.excluded_ai_absent,
        excluded_topic_mismatch=eligibility.excluded_topic_mismatch,
        excluded_abstract_only=eligibility.excluded_abstract_only,
        year_start=year_start,
        year_end=year_end,
    )


def generate_prisma_diagram(counts: PrismaCounts, output_path: Path) -> Path:
    """Draw the PRISMA flow diagram and save it (PNG or SVG by suffix).

    Boxes are not scaled by counts.
    """
    fig, ax = plt.subplots(figsize=(8, 7))
    ax.axis("off")
    width, height = 0.34, 0.08
    positions: Dict[str, Tuple[float, float]] = {
        "identified": (0.0, 0.88),
        "year_filter": (0.0, 0.72),
        "deduplicated": (0.0, 0.56),
        "screened": (0.0, 0.40),
        "excluded": (0.5, 0.40),
        "eligible": (0.0, 0.24),
        "meta": (0.0, 0.08),
    }
    out_of_range = counts.identified - counts.after_year_filter
    labels = {
        "identified": f"Records identified\n(n = {counts.identified})",
        "year_filter": (
            f"Records {counts.year_start}-{counts.year_end}\n"
            f"(n = {counts.after_year_filter}; {out_of_range} outside range)"
        ),
        "deduplicated": (
            f"Records after duplicates removed\n"
            f"(n = {counts.after_year_filter - counts.duplicates_removed})"
        ),
        "screened": f"Records screened\n(n = {counts.screened})",
        "excluded": (
            f"Records excluded (n = {counts.excluded_total})\n"
            f"AI absent: {counts.excluded_ai_absent}\n"
            f"Topic mismatch: {counts.excluded_topic_mismatch}\n"
            f"Abstract missing: {counts.excluded_abstract_only}"
        ),
        "eligible": f"Studies eligible\n(n = {counts.eligible})",
        "meta": f"Studies included in meta-analysis\n(n = {counts.for_meta})",
    }

    def draw_box(name: str) -> None:
        x, y = positions[name]
        box_height = height * (2 if name == "excluded" else 1)
        ax.add_patch(
            FancyBboxPatch((x, y), width, box_height, boxstyle="round,pad=0.02", fc="white", ec="black")
        )
        ax.text(x + width / 2, y + box_height / 2, labels[name], ha="center", va="center", fontsize=8)

    def arrow(start: str, end: str) -> None:
        x1, y1 = positions[start]
        x2, y2 = positions[end]
        if y1 == y2:
            start_xy, end_xy = (x1 + width, y1 + height / 2), (x2, y2 + height / 2)
        else:
            start_xy, end_xy = (x1 + width / 2, y1), (x2 + width / 2, y2 + height)
        ax.annotate("", xy=end_xy, xytext=start_xy, arrowprops=dict(arrowstyle="->", lw=1.0))

    for name in positions:
        draw_box(name)
    for start, end in [
        ("identified", "year_filter"),
        ("year_filter", "deduplicated"),
        ("deduplicated", "screened"),
        ("screened", "excluded"),
        ("screened", "eligible"),
        ("eligible", "meta"),
    ]:
        arrow(start, end)
    ax.set_xlim(-0.05, 0.9)
    ax.set_ylim(0.0, 1.0)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"PRISMA diagram saved to {output_path}", extra={"stage": "export", "path": output_path})
    return output_path
