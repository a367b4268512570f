"""CLI tests driving the Typer app in-process."""

import pytest
from typer.testing import CliRunner

from srma.cli.main import app

runner = CliRunner()


@pytest.mark.integration
def test_run_command(review_ris, review_config, tmp_path) -> None:
    out = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "run",
            str(review_ris),
            "--start-year",
            "2010",
            "--end-year",
            "2024",
            "--config",
            str(review_config),
            "--output",
            str(out),
            "--no-diagram",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "PRISMA Flow" in result.output
    assert (out / "prisma_counts.csv").exists()
    assert (out / "results.json").exists()
    assert not (out / "prisma_diagram.png").exists()


@pytest.mark.integration
def test_run_rejects_inverted_years(review_ris, review_config, tmp_path) -> None:
    result = runner.invoke(
        app,
        [
            "run",
            str(review_ris),
            "--start-year",
            "2024",
            "--end-year",
            "2010",
            "--config",
            str(review_config),
            "--output",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "out").exists()


@pytest.mark.integration
def test_run_reports_stage_failure(review_ris, review_config, tmp_path) -> None:
    result = runner.invoke(
        app,
        [
            "run",
            str(review_ris),
            "--start-year",
            "1990",
            "--end-year",
            "1999",
            "--config",
            str(review_config),
            "--output",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 1
    assert "Error" in result.output


@pytest.mark.integration
def test_run_rejects_invalid_config(review_ris, tmp_path) -> None:
    config = tmp_path / "bad.json"
    config.write_text('{"meta_analysis_thresholds": {"min_studies_continuous": 0}}', encoding="utf-8")

    result = runner.invoke(
        app,
        ["run", str(review_ris), "--start-year", "2010", "--end-year", "2024", "--config", str(config)],
    )

    assert result.exit_code == 1


@pytest.mark.integration
def test_analyze_command(review_ris, review_config, tmp_path) -> None:
    first = tmp_path / "first"
    runner.invoke(
        app,
        [
            "run",
            str(review_ris),
            "--start-year",
            "2010",
            "--end-year",
            "2024",
            "--config",
            str(review_config),
            "--output",
            str(first),
            "--no-diagram",
        ],
    )
    second = tmp_path / "second"

    result = runner.invoke(
        app,
        ["analyze", str(first / "studies_metrics.csv"), "--config", str(review_config), "--output", str(second)],
    )

    assert result.exit_code == 0, result.output
    assert "Analyzing 12 studies" in result.output
    assert (second / "meta_continuous_summary.csv").exists()
    assert (second / "subgroup_R2_by_scale.csv").exists()


@pytest.mark.integration
def test_analyze_rejects_table_without_required_columns(review_config, tmp_path) -> None:
    path = tmp_path / "metrics.csv"
    path.write_text("year,R2\n2020,0.5\n", encoding="utf-8")

    result = runner.invoke(app, ["analyze", str(path), "--config", str(review_config), "--output", str(tmp_path)])

    assert result.exit_code == 1


@pytest.mark.integration
def test_init_config(tmp_path) -> None:
    path = tmp_path / "config.json"

    first = runner.invoke(app, ["init-config", str(path)])
    second = runner.invoke(app, ["init-config", str(path)])
    forced = runner.invoke(app, ["init-config", str(path), "--force"])

    assert first.exit_code == 0
    assert path.exists()
    assert second.exit_code == 1
    assert forced.exit_code == 0
