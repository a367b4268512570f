"""Tests for descriptive frequency tables."""

import pytest

from srma.extraction.models import StudyMetrics
from srma.meta.descriptive import frequency_table, group_counts, year_bin_label


@pytest.mark.parametrize(
    "year,label",
    [(1985, "1985-1989"), (1989, "1985-1989"), (2020, "2020-2024"), (2024, "2020-2024"), (2025, "2025-2029")],
)
def test_year_bin_label(year: int, label: str) -> None:
    assert year_bin_label(year) == label


def test_frequency_table_sorted_with_percentages() -> None:
    table = frequency_table(["RF", "ANN", "RF", "ML"])

    assert list(table["Category"]) == ["ANN", "ML", "RF"]
    assert list(table["n"]) == [1, 1, 2]
    assert table["Percent"].sum() == pytest.approx(100.0)


def test_frequency_table_empty() -> None:
    assert len(frequency_table([])) == 0


def test_group_counts() -> None:
    rows = [
        StudyMetrics(study_id=1, year=2021, ai_method="RF", domain="Brewing", scale="Lab"),
        StudyMetrics(study_id=2, year=2023, ai_method="ANN", domain="Brewing", scale="Pilot"),
        StudyMetrics(study_id=3, year=2016, ai_method="RF", domain="Other", scale="Lab"),
        StudyMetrics(study_id=4, year=None, ai_method="DL", domain="Bioprocess", scale="Lab"),
    ]

    tables = group_counts(rows)

    assert list(tables.year["Category"]) == ["2015-2019", "2020-2024"]
    assert list(tables.year["n"]) == [1, 2]
    assert int(tables.ai_method["n"].sum()) == 4
    assert dict(zip(tables.scale["Category"], tables.scale["n"])) == {"Lab": 3, "Pilot": 1}
    for name, total in tables.percent_sums.items():
        assert total == pytest.approx(100.0), name
