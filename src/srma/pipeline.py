"""End-to-end orchestration of a systematic review run.

``ReviewPipeline.run`` takes a RIS export through parsing, the year
filter, deduplication, eligibility screening and metric extraction,
then runs the statistical core and writes every report.  Each stage
returns new immutable records; nothing is edited in place.

``ReviewPipeline.analyze`` runs only the statistical core and the
extended exports on an existing metrics table (e.g. a
``studies_metrics.csv`` produced by an earlier run).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .config.review import ReviewConfig
from .core.models import DeduplicationReport, RisRecord
from .dedup.deduplicator import Deduplicator
from .extraction.extractor import MetricExtractor
from .extraction.models import ContinuousMetric, ExtractionStats, Moderator, StudyMetrics
from .io.reports import ReportExporter
from .io.ris import parse_ris
from .meta.analyzer import ContinuousMetaAnalyzer
from .meta.bias import PublicationBiasTester
from .meta.descriptive import DescriptiveTables, group_counts
from .meta.diagnostic import DiagnosticMetaAnalyzer
from .meta.models import AnalysisBundle, SubgroupResult
from .meta.subgroup import SubgroupAnalyzer
from .prisma.diagram import PrismaCounts, compute_prisma_counts, generate_prisma_diagram
from .quality.grade import assess_grade_certainty
from .quality.models import GradeAssessment, StudyCharacteristics
from .screening.eligibility import EligibilityScreener, filter_by_year
from .screening.models import EligibilityCounts
from .utils.logging import get_logger

logger = get_logger(__name__)

SUBGROUP_ANALYSES = [
    (ContinuousMetric.R2, Moderator.SCALE),
    (ContinuousMetric.R2, Moderator.AI_METHOD),
]


class PipelineError(RuntimeError):
    """A stage produced nothing the next stage can work with."""


@dataclass
class AnalysisOutput:
    """Statistical core results for one metrics table."""

    bundle: AnalysisBundle
    grades: List[GradeAssessment] = field(default_factory=list)
    descriptive: Optional[DescriptiveTables] = None
    files: List[Path] = field(default_factory=list)


@dataclass
class PipelineResult:
    """Everything produced by one full run."""

    output_dir: Path
    records: List[RisRecord]
    dedup_report: DeduplicationReport
    eligibility: EligibilityCounts
    metrics: List[StudyMetrics]
    extraction_stats: ExtractionStats
    prisma: PrismaCounts
    analysis: AnalysisOutput
    diagram_path: Optional[Path] = None

    @property
    def files(self) -> List[Path]:
        paths = list(self.analysis.files)
        if self.diagram_path is not None:
            paths.append(self.diagram_path)
        return paths


class ReviewPipeline:
    """Run the review stages with one :class:`ReviewConfig`."""

    def __init__(
        self,
        config: Optional[ReviewConfig] = None,
        dedup_strategy: str = "doi",
    ) -> None:
        self.config = config or ReviewConfig()
        thresholds = self.config.meta_analysis_thresholds
        self.deduplicator = Deduplicator(strategy=dedup_strategy)
        self.screener = EligibilityScreener(self.config)
        self.extractor = MetricExtractor(self.config)
        self.continuous = ContinuousMetaAnalyzer(min_studies=thresholds.min_studies_continuous)
        self.diagnostic = DiagnosticMetaAnalyzer(min_studies=thresholds.min_studies_diagnostic)
        self.subgroup = SubgroupAnalyzer()
        self.bias = PublicationBiasTester()

    # ------------------------------------------------------------------
    # Statistical core
    # ------------------------------------------------------------------
    def _subgroups(self, rows: Sequence[StudyMetrics]) -> List[SubgroupResult]:
        """Subgroup analyses; a failing analysis is logged and skipped."""
        threshold = self.config.meta_analysis_thresholds.min_studies_subgroup
        if len(rows) <= threshold:
            logger.info(
                f"Skipping subgroup analyses ({len(rows)} studies, need more than {threshold})",
                extra={"stage": "subgroup"},
            )
            return []
        results = []
        for metric, moderator in SUBGROUP_ANALYSES:
            try:
                results.append(self.subgroup.analyze(rows, metric, moderator))
            except (ValueError, ArithmeticError) as exc:
                logger.warning(
                    f"Subgroup analysis {metric.value} by {moderator.value} failed: {exc}",
                    extra={"stage": "subgroup", "metric": metric.value},
                )
        return results

    def run_analyses(self, rows: Sequence[StudyMetrics]) -> AnalysisOutput:
        """Descriptive tables, pooled estimates, subgroups, bias tests and GRADE."""
        descriptive = group_counts(rows)
        continuous = [self.continuous.analyze(rows, metric) for metric in ContinuousMetric]
        diagnostic = self.diagnostic.analyze(rows)
        subgroups = self._subgroups(rows)
        bias = [self.bias.analyze(rows, metric) for metric in ContinuousMetric]
        bundle = AnalysisBundle(continuous=continuous, diagnostic=diagnostic, subgroups=subgroups, bias=bias)

        characteristics = StudyCharacteristics(
            high_risk_pct=self.config.grade.high_risk_pct,
            diverse_populations=self.config.grade.diverse_populations,
        )
        bias_by_metric = {b.metric: b for b in bias}
        grades = [
            assess_grade_certainty(result, characteristics, bias_by_metric.get(result.metric))
            for result in continuous
            if result.is_sufficient
        ]
        for grade in grades:
            logger.info(
                f"GRADE {grade.outcome}: {grade.certainty} (downgrade={grade.total_downgrade})",
                extra={"stage": "grade", "metric": grade.outcome},
            )
        return AnalysisOutput(bundle=bundle, grades=grades, descriptive=descriptive)

    def analyze(self, rows: Sequence[StudyMetrics], output_dir: Path) -> AnalysisOutput:
        """Run the statistical core on an existing metrics table and export results.

        Raises:
            PipelineError: If ``rows`` is empty.
        """
        if not rows:
            raise PipelineError("No metrics rows to analyze")
        output = self.run_analyses(rows)
        exporter = ReportExporter(output_dir)
        output.files.extend(
            [
                exporter.export_meta_continuous(output.bundle.continuous),
                exporter.export_meta_diagnostic(output.bundle.diagnostic),
                exporter.export_bias_tests(output.bundle.bias),
            ]
        )
        output.files.extend(exporter.export_extended(output.bundle, rows, output.grades))
        return output

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------
    def run(
        self,
        ris_path: Path,
        year_start: int,
        year_end: int,
        output_dir: Path,
        diagram: bool = True,
    ) -> PipelineResult:
        """Run every stage on a RIS export and write all reports to ``output_dir``.

        Raises:
            FileNotFoundError: If ``ris_path`` does not exist.
            PipelineError: If the year range is invalid or a stage leaves
                nothing to process.
        """
        if year_start > year_end:
            raise PipelineError(f"Invalid year range: {year_start} > {year_end}")
        output_dir = Path(output_dir)

        logger.info(f"Parsing {ris_path}", extra={"stage": "parse", "path": ris_path})
        records = parse_ris(ris_path)
        if not records:
            raise PipelineError(f"No records parsed from {ris_path}")

        in_range = filter_by_year(records, year_start, year_end)
        if not in_range:
            raise PipelineError(f"No records in year range {year_start}-{year_end}")

        kept, dedup_report = self.deduplicator.deduplicate(in_range)
        screened, eligibility = self.screener.screen(kept)
        metrics, extraction_stats = self.extractor.extract(screened)
        if not metrics:
            raise PipelineError("No metrics extracted: no record passed eligibility screening")

        prisma = compute_prisma_counts(
            identified=len(records),
            after_year_filter=len(in_range),
            dedup_report=dedup_report,
            eligibility=eligibility,
            year_start=year_start,
            year_end=year_end,
        )

        analysis = self.run_analyses(metrics)
        exporter = ReportExporter(output_dir)
        analysis.files.extend(exporter.export_standard(prisma, analysis.descriptive, analysis.bundle, metrics))
        analysis.files.extend(exporter.export_extended(analysis.bundle, metrics, analysis.grades, prisma))

        diagram_path = None
        if diagram:
            diagram_path = generate_prisma_diagram(prisma, output_dir / "prisma_diagram.png")

        logger.info(
            f"Review complete: {prisma.identified} identified, {prisma.eligible} eligible, "
            f"{prisma.for_meta} for meta-analysis",
            extra={"stage": "pipeline", "path": output_dir},
        )
        return PipelineResult(
            output_dir=output_dir,
            records=records,
            dedup_report=dedup_report,
            eligibility=eligibility,
            metrics=metrics,
            extraction_stats=extraction_stats,
            prisma=prisma,
            analysis=analysis,
            diagram_path=diagram_path,
        )
