"""Run output directories."""

from pathlib import Path
from datetime import datetime
from typing import Optional

from ..config.settings import settings


def create_output_dir(
    run_name: str = "review",
    base_dir: Optional[Path] = None,
    timestamp: Optional[datetime] = None,
) -> Path:
    """Create ``<base_dir>/<run_name>_<YYYYmmdd_HHMMSS>`` and return it.

    ``base_dir`` defaults to ``settings.output_dir``.  A second run within
    the same second gets a ``_2``, ``_3``, ... suffix instead of writing
    into the first run's reports.
    """
    if timestamp is None:
        timestamp = datetime.now()
    base = Path(base_dir) if base_dir is not None else settings.output_dir
    stem = f"{run_name}_{timestamp.strftime('%Y%m%d_%H%M%S')}"
    dirpath = base / stem
    suffix = 2
    while dirpath.exists():
        dirpath = base / f"{stem}_{suffix}"
        suffix += 1
    dirpath.mkdir(parents=True)
    return dirpath
