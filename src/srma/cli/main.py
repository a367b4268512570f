"""CLI application using Typer for the review meta-analysis pipeline."""

from datetime import date
from pathlib import Path
from typing import Optional, Sequence

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ..config.review import ReviewConfig, load_review_config, write_default_config
from ..config.settings import settings
from ..io.paths import create_output_dir
from ..io.reports import load_metrics_csv
from ..meta.models import DiagnosticResult, MetaAnalysisResult
from ..pipeline import PipelineError, ReviewPipeline
from ..quality.models import GradeAssessment
from ..utils.logging import get_logger

app = typer.Typer(
    name="srma",
    help="Systematic review meta-analysis pipeline",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _fmt(value: Optional[float], digits: int = 3) -> str:
    return "NA" if value is None else f"{value:.{digits}f}"


def _load_config(config_path: Optional[Path]) -> ReviewConfig:
    """Explicit --config, else the configured default file if present, else built-in defaults."""
    if config_path is None:
        if not settings.review_config_path.is_file():
            console.print("[yellow]No review config found, using defaults[/yellow]")
            return ReviewConfig()
        config_path = settings.review_config_path
    try:
        return load_review_config(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)
    except ValidationError as exc:
        console.print(f"[red]Invalid review config {config_path}:[/red]\n{exc}")
        raise typer.Exit(1)


def _print_meta_summary(
    continuous: Sequence[MetaAnalysisResult],
    diagnostic: Optional[DiagnosticResult],
    grades: Sequence[GradeAssessment],
) -> None:
    certainty = {g.outcome: g.certainty for g in grades}
    table = Table(title="Random-Effects Meta-Analysis")
    table.add_column("Metric", style="cyan")
    table.add_column("k", justify="right")
    table.add_column("Effect [95% CI]", style="green")
    table.add_column("95% PI", style="green")
    table.add_column("I²", style="yellow", justify="right")
    table.add_column("GRADE", style="magenta")
    for r in continuous:
        if not r.is_sufficient:
            table.add_row(r.metric, str(r.k), f"[dim]{r.note}[/dim]", "", "", "")
            continue
        table.add_row(
            r.metric,
            str(r.k),
            f"{_fmt(r.effect)} [{_fmt(r.ci_low)}, {_fmt(r.ci_high)}]",
            f"[{_fmt(r.pi_low)}, {_fmt(r.pi_high)}]",
            f"{_fmt(r.I2, 1)}%",
            certainty.get(r.metric, ""),
        )
    console.print(table)
    if diagnostic is not None and diagnostic.is_sufficient:
        console.print(
            f"Diagnostic (k={diagnostic.k}): "
            f"Sens={_fmt(diagnostic.sens)} [{_fmt(diagnostic.sens_ci_low)}, {_fmt(diagnostic.sens_ci_high)}], "
            f"Spec={_fmt(diagnostic.spec)} [{_fmt(diagnostic.spec_ci_low)}, {_fmt(diagnostic.spec_ci_high)}], "
            f"AUC={_fmt(diagnostic.AUC)}"
        )
    elif diagnostic is not None:
        console.print(f"[dim]Diagnostic (k={diagnostic.k}): {diagnostic.note}[/dim]")


@app.command()
def run(
    ris_file: Path = typer.Argument(..., help="RIS export to review", exists=True, dir_okay=False),
    start_year: int = typer.Option(settings.default_year_start, "--start-year", help="First publication year"),
    end_year: int = typer.Option(date.today().year, "--end-year", help="Last publication year"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Review configuration JSON"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: timestamped)"),
    diagram: bool = typer.Option(True, "--diagram/--no-diagram", help="Draw the PRISMA flow diagram"),
    fuzzy: bool = typer.Option(False, "--fuzzy-dedup", help="Also match records without DOI by title/author/year"),
) -> None:
    """Run the full review: parse, filter, deduplicate, screen, extract, analyze, export."""
    if start_year > end_year:
        console.print(f"[red]Error: start year {start_year} is after end year {end_year}[/red]")
        raise typer.Exit(1)
    config = _load_config(config_path)
    if output_dir is None:
        output_dir = create_output_dir("review")
    console.print("[bold blue]Starting review[/bold blue]")
    console.print(f"Input: {ris_file}")
    console.print(f"Years: {start_year}-{end_year}")
    console.print(f"Output: {output_dir}")

    pipeline = ReviewPipeline(config, dedup_strategy="doi+title" if fuzzy else "doi")
    try:
        result = pipeline.run(ris_file, start_year, end_year, output_dir, diagram=diagram)
    except PipelineError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)

    prisma = result.prisma
    flow = Table(title="PRISMA Flow")
    flow.add_column("Stage", style="cyan")
    flow.add_column("Records", style="green", justify="right")
    flow.add_row("Identified", str(prisma.identified))
    flow.add_row(f"In {start_year}-{end_year}", str(prisma.after_year_filter))
    flow.add_row("Duplicates removed", str(prisma.duplicates_removed))
    flow.add_row("Screened", str(prisma.screened))
    flow.add_row("Excluded", str(prisma.excluded_total))
    flow.add_row("Eligible", str(prisma.eligible))
    flow.add_row("[bold]For meta-analysis[/bold]", f"[bold]{prisma.for_meta}[/bold]")
    console.print(flow)

    stats = result.extraction_stats
    console.print(
        f"Extraction: {stats.has_binary} with binary metrics, {stats.has_continuous} with continuous metrics "
        f"({stats.complete_pct:.1f}% complete)"
    )
    _print_meta_summary(result.analysis.bundle.continuous, result.analysis.bundle.diagnostic, result.analysis.grades)
    console.print(f"\n[bold green]✓ Review complete![/bold green] {len(result.files)} files written")
    console.print(f"Results saved to: {output_dir}")


@app.command()
def analyze(
    metrics_csv: Path = typer.Argument(..., help="studies_metrics.csv from an earlier run", exists=True, dir_okay=False),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Review configuration JSON"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: timestamped)"),
) -> None:
    """Re-run the meta-analysis on an existing metrics table."""
    config = _load_config(config_path)
    try:
        rows = load_metrics_csv(metrics_csv)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)
    if output_dir is None:
        output_dir = create_output_dir("analysis")
    console.print(f"[bold blue]Analyzing {len(rows)} studies[/bold blue]")
    try:
        output = ReviewPipeline(config).analyze(rows, output_dir)
    except PipelineError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)
    _print_meta_summary(output.bundle.continuous, output.bundle.diagnostic, output.grades)
    for subgroup in output.bundle.subgroups:
        console.print(
            f"Subgroup {subgroup.metric} by {subgroup.grouping_var}: "
            f"Q_between={subgroup.Q_between:.2f}, df={subgroup.df_between}, p={_fmt(subgroup.p_between, 4)}"
        )
    console.print(f"\n[bold green]✓ Analysis complete![/bold green] Results saved to: {output_dir}")


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("config.json"), help="Where to write the configuration"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write the default review configuration as JSON."""
    if path.exists() and not force:
        console.print(f"[red]Error: {path} already exists (use --force to overwrite)[/red]")
        raise typer.Exit(1)
    write_default_config(path)
    console.print(f"[green]✓ Wrote default review configuration to {path}[/green]")


if __name__ == "__main__":
    app()
