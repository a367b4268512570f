"""CSV and JSON report exporters.

``ReportExporter`` writes every table produced by a run into one output
directory.  Tables are assembled as pandas DataFrames and written with
``to_csv``; undefined statistics (``None``) are written as ``NA``.
``load_metrics_csv`` reads a ``studies_metrics.csv`` back into
``StudyMetrics`` rows so the statistical core can be re-run without
re-parsing the bibliography.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd

from ..extraction.models import StudyMetrics
from ..meta.descriptive import YEAR_BINS, DescriptiveTables, year_bin_label
from ..meta.models import (
    AnalysisBundle,
    BiasResult,
    DiagnosticResult,
    MetaAnalysisResult,
    SubgroupResult,
)
from ..prisma.diagram import PrismaCounts
from ..quality.models import GradeAssessment
from ..utils.logging import get_logger

logger = get_logger(__name__)

NA = "NA"
REQUIRED_METRIC_COLUMNS = ("id", "ai_method", "domain", "scale")
EXTENDED_COLUMNS = [
    "Metric", "Model", "k", "Effect", "SE", "CI_Lower", "CI_Upper", "PI_Lower", "PI_Upper",
    "tau2", "I2_percent", "Q", "p_heterogeneity", "p_overall", "I2_Interpretation",
]
HETEROGENEITY_COLUMNS = ["Outcome", "I2_Percent", "tau2", "Q_statistic", "df", "p_value", "Significant"]
GRADE_COLUMNS = [
    "Outcome", "N_Studies", "Effect", "CI_Lower", "CI_Upper", "I2", "Starting_Rating", "RoB_Downgrade",
    "Inconsistency_Downgrade", "Indirectness_Downgrade", "Imprecision_Downgrade", "PubBias_Downgrade",
    "Total_Downgrade", "Final_Rating", "Certainty",
]


def _r(value: Optional[float], digits: int) -> Optional[float]:
    return None if value is None else round(value, digits)


def interpret_i2(I2: Optional[float]) -> Optional[str]:
    """Conventional reading of I² (Cochrane handbook bands)."""
    if I2 is None:
        return None
    if I2 < 25:
        return "Low"
    if I2 < 50:
        return "Moderate"
    if I2 < 75:
        return "Substantial"
    return "Considerable"


def key_references(rows: Sequence[StudyMetrics], predicate: Callable[[StudyMetrics], bool], limit: int = 2) -> str:
    """Up to ``limit`` "Author, Year" citations of studies matching ``predicate``."""
    refs = []
    for row in rows:
        if not predicate(row):
            continue
        author = row.first_author or "Anon"
        year = row.year if row.year is not None else "n.d."
        refs.append(f"{author}, {year}")
        if len(refs) == limit:
            break
    return "; ".join(refs)


class ReportExporter:
    """Write run results as CSV/JSON files into ``output_dir``."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _write(self, df: pd.DataFrame, filename: str) -> Path:
        path = self.output_dir / filename
        df.to_csv(path, index=False, na_rep=NA)
        logger.debug(f"Wrote {filename} ({len(df)} rows)", extra={"stage": "export", "path": path})
        return path

    # ------------------------------------------------------------------
    # Standard reports
    # ------------------------------------------------------------------
    def export_prisma_counts(self, counts: PrismaCounts) -> Path:
        return self._write(pd.DataFrame([counts.csv_row()]), "prisma_counts.csv")

    def export_descriptive(self, tables: DescriptiveTables, rows: Sequence[StudyMetrics]) -> Path:
        """Table 2: study characteristics with example references per category."""
        selectors: Dict[str, Callable[[StudyMetrics, str], bool]] = {
            "Year": lambda r, cat: r.year is not None
            and YEAR_BINS[0] <= r.year < YEAR_BINS[-1]
            and year_bin_label(r.year) == cat,
            "AI Method": lambda r, cat: r.ai_method == cat,
            "Domain": lambda r, cat: r.domain == cat,
            "Scale": lambda r, cat: r.scale == cat,
        }
        records: List[Dict[str, Any]] = []
        for name, table in tables.items():
            select = selectors[name]
            for category, n, pct in zip(table["Category"], table["n"], table["Percent"]):
                records.append(
                    {
                        "Characteristic": name,
                        "Subcategory": category,
                        "n": int(n),
                        "pct": round(float(pct), 1),
                        "KeyReferences": key_references(rows, lambda r, c=category: select(r, c)),
                    }
                )
        df = pd.DataFrame(records, columns=["Characteristic", "Subcategory", "n", "pct", "KeyReferences"])
        return self._write(df, "table2_descriptive.csv")

    def export_meta_continuous(self, results: Sequence[MetaAnalysisResult]) -> Path:
        records = [
            {
                "metric": r.metric,
                "model": r.model,
                "k": r.k,
                "effect": _r(r.effect, 4),
                "ci_low": _r(r.ci_low, 4),
                "ci_high": _r(r.ci_high, 4),
                "pi_low": _r(r.pi_low, 4),
                "pi_high": _r(r.pi_high, 4),
                "tau2": _r(r.tau2, 4),
                "I2": _r(r.I2, 1),
                "Q": _r(r.Q, 2),
                "p": _r(r.p, 4),
                "note": r.note,
            }
            for r in results
            if r.k > 0
        ]
        columns = ["metric", "model", "k", "effect", "ci_low", "ci_high", "pi_low", "pi_high",
                   "tau2", "I2", "Q", "p", "note"]
        return self._write(pd.DataFrame(records, columns=columns), "meta_continuous_summary.csv")

    def export_meta_diagnostic(self, result: Optional[DiagnosticResult]) -> Path:
        columns = ["k", "sens", "sens_ci_low", "sens_ci_high", "spec", "spec_ci_low", "spec_ci_high",
                   "AUC", "AUC_ci_low", "AUC_ci_high", "note"]
        records = []
        if result is not None and result.k > 0:
            row = result.model_dump()
            records.append({c: row[c] if c in ("k", "note") else _r(row[c], 3) for c in columns})
        return self._write(pd.DataFrame(records, columns=columns), "meta_diagnostic_summary.csv")

    def export_bias_tests(self, results: Sequence[BiasResult]) -> Path:
        """Egger row per metric; a trim-and-fill row only when studies were imputed."""
        records: List[Dict[str, Any]] = []
        for r in results:
            if r.k == 0:
                continue
            records.append(
                {
                    "subset": r.metric,
                    "test": "Egger",
                    "k": r.k,
                    "stat": _r(r.egger_t, 4),
                    "p": _r(r.egger_p, 4),
                    "note": r.note or "Intercept test",
                }
            )
            if r.trim_fill.k_trimmed > 0:
                records.append(
                    {
                        "subset": r.metric,
                        "test": "Trim-and-Fill",
                        "k": r.k,
                        "stat": _r(r.trim_fill.adjusted_effect, 4),
                        "p": None,
                        "note": r.trim_fill.note,
                    }
                )
        df = pd.DataFrame(records, columns=["subset", "test", "k", "stat", "p", "note"])
        return self._write(df, "bias_tests.csv")

    def export_studies_metrics(self, rows: Sequence[StudyMetrics]) -> Path:
        columns = list(StudyMetrics.model_fields[name].alias or name for name in StudyMetrics.model_fields)
        df = pd.DataFrame([row.model_dump(by_alias=True) for row in rows], columns=columns)
        return self._write(df, "studies_metrics.csv")

    # ------------------------------------------------------------------
    # Extended statistics
    # ------------------------------------------------------------------
    def export_extended_statistics(self, results: Sequence[MetaAnalysisResult]) -> Path:
        records = [
            {
                "Metric": r.metric,
                "Model": r.model,
                "k": r.k,
                "Effect": r.effect,
                "SE": r.se,
                "CI_Lower": r.ci_low,
                "CI_Upper": r.ci_high,
                "PI_Lower": r.pi_low,
                "PI_Upper": r.pi_high,
                "tau2": r.tau2,
                "I2_percent": r.I2,
                "Q": r.Q,
                "p_heterogeneity": r.p_het,
                "p_overall": r.p,
                "I2_Interpretation": interpret_i2(r.I2),
            }
            for r in results
            if r.is_sufficient
        ]
        return self._write(pd.DataFrame(records, columns=EXTENDED_COLUMNS), "meta_extended_statistics.csv")

    def export_heterogeneity_summary(self, results: Sequence[MetaAnalysisResult]) -> Path:
        records = []
        for r in results:
            if not r.is_sufficient:
                continue
            significant = r.p_het is not None and r.p_het < 0.10
            records.append(
                {
                    "Outcome": r.metric,
                    "I2_Percent": r.I2,
                    "tau2": r.tau2,
                    "Q_statistic": r.Q,
                    "df": r.df,
                    "p_value": r.p_het,
                    "Significant": "Yes (p<0.10)" if significant else "No",
                }
            )
        return self._write(pd.DataFrame(records, columns=HETEROGENEITY_COLUMNS), "heterogeneity_summary.csv")

    def export_subgroup(self, result: SubgroupResult) -> List[Path]:
        """Per-group estimates plus a one-row between-group test file."""
        stem = f"subgroup_{result.metric}_by_{result.grouping_var}"
        groups = pd.DataFrame(
            [
                {
                    "Grouping_Variable": result.grouping_var,
                    "Subgroup": g.group,
                    "k": g.k,
                    "Mean": g.mean,
                    "SE": g.se,
                    "CI_Lower": g.ci_low,
                    "CI_Upper": g.ci_high,
                    "Q": g.Q,
                }
                for g in result.subgroups
            ],
            columns=["Grouping_Variable", "Subgroup", "k", "Mean", "SE", "CI_Lower", "CI_Upper", "Q"],
        )
        between = pd.DataFrame(
            [
                {
                    "Grouping_Variable": result.grouping_var,
                    "Test": "Between-group heterogeneity",
                    "Q_within": result.Q_within,
                    "Q_between": result.Q_between,
                    "Q_total": result.Q_total,
                    "df": result.df_between,
                    "p_value": result.p_between,
                }
            ]
        )
        paths = [self._write(groups, f"{stem}.csv"), self._write(between, f"{stem}_heterogeneity.csv")]
        logger.info(
            f"Exported {stem} (Q_between={result.Q_between:.2f}, n_groups={result.n_groups})",
            extra={"stage": "export", "metric": result.metric},
        )
        return paths

    def export_study_characteristics(self, rows: Sequence[StudyMetrics]) -> Path:
        """Year ranges relative to the latest study year, then the scale distribution."""
        total = len(rows)
        records: List[Dict[str, Any]] = []

        def add(category: str, subcategory: str, count: int) -> None:
            records.append(
                {
                    "Category": category,
                    "Subcategory": subcategory,
                    "Count": count,
                    "Percent": 100.0 * count / total if total else 0.0,
                }
            )

        years = [r.year for r in rows if r.year is not None]
        if years:
            latest, earliest = max(years), min(years)
            recent = [latest - 2, latest - 1, latest]
            if earliest < recent[0]:
                add("Year Range", f"{earliest}-{recent[0] - 1}", sum(1 for y in years if y < recent[0]))
            for year in recent:
                if year >= earliest:
                    add("Year Range", str(year), sum(1 for y in years if y == year))
        for scale in sorted({r.scale for r in rows}):
            add("Experimental Scale", scale, sum(1 for r in rows if r.scale == scale))
        df = pd.DataFrame(records, columns=["Category", "Subcategory", "Count", "Percent"])
        return self._write(df, "study_characteristics_extended.csv")

    def export_grade(self, assessments: Sequence[GradeAssessment]) -> Path:
        records = [
            {
                "Outcome": a.outcome,
                "N_Studies": a.n_studies,
                "Effect": a.effect,
                "CI_Lower": a.ci_low,
                "CI_Upper": a.ci_high,
                "I2": a.I2,
                "Starting_Rating": a.starting_rating.label,
                "RoB_Downgrade": a.rob_downgrade,
                "Inconsistency_Downgrade": a.inconsistency_downgrade,
                "Indirectness_Downgrade": a.indirectness_downgrade,
                "Imprecision_Downgrade": a.imprecision_downgrade,
                "PubBias_Downgrade": a.pub_bias_downgrade,
                "Total_Downgrade": a.total_downgrade,
                "Final_Rating": int(a.final_rating),
                "Certainty": a.certainty,
            }
            for a in assessments
        ]
        return self._write(pd.DataFrame(records, columns=GRADE_COLUMNS), "grade_certainty.csv")

    def export_results_json(
        self,
        bundle: AnalysisBundle,
        grades: Sequence[GradeAssessment] = (),
        prisma: Optional[PrismaCounts] = None,
    ) -> Path:
        payload: Dict[str, Any] = bundle.model_dump(mode="json")
        payload["grade"] = [
            {**a.model_dump(mode="json"), "certainty": a.certainty} for a in grades
        ]
        if prisma is not None:
            payload["prisma"] = prisma.model_dump(mode="json")
        path = self.output_dir / "results.json"
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.debug("Wrote results.json", extra={"stage": "export", "path": path})
        return path

    # ------------------------------------------------------------------
    # Bundles
    # ------------------------------------------------------------------
    def export_standard(
        self,
        prisma: PrismaCounts,
        tables: DescriptiveTables,
        bundle: AnalysisBundle,
        rows: Sequence[StudyMetrics],
    ) -> List[Path]:
        paths = [
            self.export_prisma_counts(prisma),
            self.export_descriptive(tables, rows),
            self.export_meta_continuous(bundle.continuous),
            self.export_meta_diagnostic(bundle.diagnostic),
            self.export_bias_tests(bundle.bias),
            self.export_studies_metrics(rows),
        ]
        logger.info(f"Exported {len(paths)} standard reports to {self.output_dir}", extra={"stage": "export"})
        return paths

    def export_extended(
        self,
        bundle: AnalysisBundle,
        rows: Sequence[StudyMetrics],
        grades: Sequence[GradeAssessment] = (),
        prisma: Optional[PrismaCounts] = None,
    ) -> List[Path]:
        paths = [
            self.export_extended_statistics(bundle.continuous),
            self.export_heterogeneity_summary(bundle.continuous),
        ]
        for subgroup in bundle.subgroups:
            paths.extend(self.export_subgroup(subgroup))
        paths.append(self.export_study_characteristics(rows))
        paths.append(self.export_grade(grades))
        paths.append(self.export_results_json(bundle, grades, prisma))
        logger.info(f"Exported {len(paths)} extended reports to {self.output_dir}", extra={"stage": "export"})
        return paths


def load_metrics_csv(path: Path) -> List[StudyMetrics]:
    """Read a ``studies_metrics.csv`` file back into metrics rows.

    Empty cells, ``NA`` and non-finite numbers become missing values.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If an identifying column is missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Metrics file not found: {path}")
    df = pd.read_csv(path)
    missing = [c for c in REQUIRED_METRIC_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing required columns: {missing}")
    df = df.astype(object).where(pd.notna(df), None)
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append(StudyMetrics.model_validate({k: v for k, v in record.items() if v is not None}))
    logger.info(f"Loaded {len(rows)} metrics rows from {path}", extra={"stage": "load", "path": path})
    return rows
