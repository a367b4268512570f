"""Shared fixtures: a synthetic RIS export with known screening outcomes.

The export holds 16 records:

* 12 eligible fermentation/AI studies (2016-2023) reporting R2, RMSE,
  sensitivity, specificity and sample size,
* 1 duplicate of the first study (same DOI written as a URL),
* 1 study published in 2005 (outside the default range),
* 1 review article,
* 1 machine learning study on steel (off topic).
"""

from pathlib import Path
from typing import List, Optional

import pytest

from srma.config.review import write_default_config

METHODS = ["machine learning", "deep learning", "random forest"]
SCALES = ["laboratory", "pilot", "industrial"]
R2_VALUES = [0.81, 0.74, 0.90, 0.66, 0.85, 0.79, 0.88, 0.71, 0.93, 0.77, 0.69, 0.84]


def ris_record(
    title: str,
    abstract: str,
    year: int,
    doi: Optional[str],
    authors: List[str],
    record_type: str = "JOUR",
) -> str:
    lines = [f"TY  - {record_type}"]
    lines += [f"AU  - {author}" for author in authors]
    lines += [f"TI  - {title}", f"PY  - {year}"]
    if doi:
        lines.append(f"DO  - {doi}")
    lines += [f"AB  - {abstract}", "ER  - ", ""]
    return "\n".join(lines)


def study_abstract(i: int) -> str:
    method = METHODS[i % len(METHODS)]
    scale = SCALES[i % len(SCALES)]
    return (
        f"A {method} model was trained on {scale} fermentation data to predict final attenuation. "
        f"The model achieved R2 = {R2_VALUES[i]} and RMSE of {0.10 + i / 100:.2f}, with sensitivity of "
        f"{85 + i % 5}% and specificity of {78 + i % 7}% (N = {40 + 5 * i})."
    )


def build_review_ris() -> str:
    records = [
        ris_record(
            title=f"Predicting fermentation outcomes, study {i + 1}",
            abstract=study_abstract(i),
            year=2016 + i % 8,
            doi=f"10.1000/ferm.{i + 1}",
            authors=[f"Author{i + 1}, A.", "Coauthor, B."],
        )
        for i in range(len(R2_VALUES))
    ]
    records.append(
        ris_record(
            title="Predicting fermentation outcomes, study 1",
            abstract=study_abstract(0),
            year=2016,
            doi="https://doi.org/10.1000/FERM.1",
            authors=["Author1, A."],
        )
    )
    records.append(
        ris_record(
            title="Early neural network control of fermentation",
            abstract=study_abstract(1),
            year=2005,
            doi="10.1000/old.1",
            authors=["Early, E."],
        )
    )
    records.append(
        ris_record(
            title="Machine learning in fermentation: a review",
            abstract="We review machine learning applications in fermentation monitoring and control over the last decade.",
            year=2020,
            doi="10.1000/rev.1",
            authors=["Reviewer, R."],
            record_type="REVIEW",
        )
    )
    records.append(
        ris_record(
            title="Hardness prediction for steel alloys",
            abstract="A machine learning model predicted steel hardness from alloy composition with R2 = 0.70 across many heats.",
            year=2021,
            doi="10.1000/steel.1",
            authors=["Metal, M."],
        )
    )
    return "".join(records)


@pytest.fixture
def review_ris(tmp_path) -> Path:
    path = tmp_path / "export.ris"
    path.write_text(build_review_ris(), encoding="utf-8")
    return path


@pytest.fixture
def review_config(tmp_path) -> Path:
    return write_default_config(tmp_path / "config.json")
