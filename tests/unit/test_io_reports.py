"""Tests for CSV/JSON report export and the metrics CSV loader."""

import json

import pandas as pd
import pytest

from srma.extraction.models import StudyMetrics
from srma.io.reports import ReportExporter, interpret_i2, key_references, load_metrics_csv
from srma.meta.analyzer import ContinuousMetaAnalyzer
from srma.meta.bias import PublicationBiasTester
from srma.meta.diagnostic import DiagnosticMetaAnalyzer
from srma.meta.models import AnalysisBundle, BiasResult, TrimFillResult
from srma.meta.subgroup import SubgroupAnalyzer


def make_rows() -> list[StudyMetrics]:
    values = [0.81, 0.74, 0.90, 0.66, 0.85]
    scales = ["Lab", "Lab", "Pilot", "Industrial", "Lab"]
    return [
        StudyMetrics(
            study_id=i,
            year=2018 + i,
            r2=v,
            sens=0.8 + i / 100,
            spec=0.7 + i / 100,
            scale=s,
            first_author=f"Author{i}",
            title=f"Study {i}, with a comma",
            doi=f"10.1000/s.{i}",
        )
        for i, (v, s) in enumerate(zip(values, scales), start=1)
    ]


@pytest.fixture
def bundle() -> AnalysisBundle:
    rows = make_rows()
    return AnalysisBundle(
        continuous=[ContinuousMetaAnalyzer().analyze(rows, m) for m in ("R2", "RMSE", "MAE")],
        diagnostic=DiagnosticMetaAnalyzer().analyze(rows),
        subgroups=[SubgroupAnalyzer().analyze(rows, "R2", "scale")],
        bias=[PublicationBiasTester().analyze(rows, m) for m in ("R2", "RMSE", "MAE")],
    )


@pytest.mark.parametrize(
    "I2,label",
    [(None, None), (0.0, "Low"), (24.9, "Low"), (25.0, "Moderate"), (60.0, "Substantial"), (75.0, "Considerable")],
)
def test_interpret_i2(I2, label) -> None:
    assert interpret_i2(I2) == label


def test_key_references_limit() -> None:
    refs = key_references(make_rows(), lambda r: r.scale == "Lab")

    assert refs == "Author1, 2019; Author2, 2020"


class TestStandardReports:

    def test_meta_continuous_writes_na_for_undefined(self, tmp_path, bundle) -> None:
        path = ReportExporter(tmp_path).export_meta_continuous(bundle.continuous)

        text = path.read_text()
        df = pd.read_csv(path, keep_default_na=False)
        # RMSE and MAE have k = 0 and are left out
        assert list(df["metric"]) == ["R2"]
        assert df.loc[0, "k"] == 5
        assert "NA" not in df.loc[0, ["effect", "ci_low", "ci_high"]].tolist()
        assert text.splitlines()[0].startswith("metric,model,k,effect")

    def test_bias_tests_rows(self, tmp_path) -> None:
        results = [
            BiasResult(metric="R2", k=12, egger_t=2.5, egger_p=0.03, note="shared"),
            BiasResult(
                metric="RMSE",
                k=11,
                egger_t=None,
                egger_p=None,
                trim_fill=TrimFillResult(k_original=11, k_trimmed=2, original_effect=1.0, adjusted_effect=0.9, note="tf"),
            ),
            BiasResult(metric="MAE", k=0),
        ]

        path = ReportExporter(tmp_path).export_bias_tests(results)

        df = pd.read_csv(path, keep_default_na=False)
        assert list(zip(df["subset"], df["test"])) == [
            ("R2", "Egger"),
            ("RMSE", "Egger"),
            ("RMSE", "Trim-and-Fill"),
        ]
        assert df.loc[1, "stat"] == "NA"
        assert df.loc[2, "p"] == "NA"

    def test_diagnostic_summary(self, tmp_path, bundle) -> None:
        path = ReportExporter(tmp_path).export_meta_diagnostic(bundle.diagnostic)

        df = pd.read_csv(path)
        assert df.loc[0, "k"] == 5
        assert 0 < df.loc[0, "sens"] < 1

    def test_studies_metrics_round_trip(self, tmp_path) -> None:
        rows = make_rows() + [StudyMetrics(study_id=6, rmse=0.4)]

        path = ReportExporter(tmp_path).export_studies_metrics(rows)
        loaded = load_metrics_csv(path)

        header = path.read_text().splitlines()[0].split(",")
        assert header[:2] == ["id", "year"]
        assert "R2" in header and "Sens" in header
        assert len(loaded) == 6
        assert loaded[0].study_id == 1
        assert loaded[0].r2 == pytest.approx(0.81)
        assert loaded[0].title == "Study 1, with a comma"
        assert loaded[0].year == 2019
        assert loaded[5].year is None
        assert loaded[5].r2 is None
        assert loaded[5].rmse == pytest.approx(0.4)


class TestExtendedReports:

    def test_extended_files(self, tmp_path, bundle) -> None:
        paths = ReportExporter(tmp_path).export_extended(bundle, make_rows())

        names = {p.name for p in paths}
        assert {
            "meta_extended_statistics.csv",
            "heterogeneity_summary.csv",
            "subgroup_R2_by_scale.csv",
            "subgroup_R2_by_scale_heterogeneity.csv",
            "study_characteristics_extended.csv",
            "grade_certainty.csv",
            "results.json",
        } <= names
        extended = pd.read_csv(tmp_path / "meta_extended_statistics.csv")
        assert list(extended["Metric"]) == ["R2"]
        assert extended.loc[0, "I2_Interpretation"] in {"Low", "Moderate", "Substantial", "Considerable"}

    def test_subgroup_file_lists_pooled_groups(self, tmp_path, bundle) -> None:
        ReportExporter(tmp_path).export_subgroup(bundle.subgroups[0])

        groups = pd.read_csv(tmp_path / "subgroup_R2_by_scale.csv")
        between = pd.read_csv(tmp_path / "subgroup_R2_by_scale_heterogeneity.csv")
        assert list(groups["Subgroup"]) == ["Lab"]
        assert between.loc[0, "df"] == 2

    def test_study_characteristics_relative_to_latest_year(self, tmp_path) -> None:
        path = ReportExporter(tmp_path).export_study_characteristics(make_rows())

        df = pd.read_csv(path)
        years = df[df["Category"] == "Year Range"]
        assert list(years["Subcategory"].astype(str)) == ["2019-2020", "2021", "2022", "2023"]
        assert years["Count"].sum() == 5
        scales = df[df["Category"] == "Experimental Scale"]
        assert dict(zip(scales["Subcategory"], scales["Count"])) == {"Industrial": 1, "Lab": 3, "Pilot": 1}

    def test_results_json(self, tmp_path, bundle) -> None:
        path = ReportExporter(tmp_path).export_results_json(bundle)

        payload = json.loads(path.read_text())
        assert payload["continuous"][1]["metric"] == "RMSE"
        assert payload["continuous"][1]["effect"] is None
        assert payload["diagnostic"]["k"] == 5
        assert payload["grade"] == []


def test_load_metrics_csv_requires_id(tmp_path) -> None:
    path = tmp_path / "metrics.csv"
    path.write_text("year,R2\n2020,0.5\n")

    with pytest.raises(ValueError):
        load_metrics_csv(path)


def test_load_metrics_csv_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_metrics_csv(tmp_path / "missing.csv")


def test_load_metrics_csv_non_finite_cell_is_missing(tmp_path) -> None:
    path = tmp_path / "metrics.csv"
    path.write_text(
        "id,ai_method,domain,scale,R2,RMSE\n"
        "1,RF,Brewing,Lab,0.8,0.1\n"
        "2,RF,Brewing,Lab,inf,0.2\n"
        "3,ML,Brewing,Pilot,0.7,0.3\n"
    )

    rows = load_metrics_csv(path)

    assert rows[1].r2 is None
    assert rows[1].rmse == pytest.approx(0.2)
    result = ContinuousMetaAnalyzer().analyze(rows, "R2")
    assert result.k == 2
    assert result.effect is None
