"""Unit tests for subgroup heterogeneity decomposition."""

import numpy as np
import pytest
from scipy import stats

from srma.extraction.models import ContinuousMetric, Moderator, StudyMetrics
from srma.meta.subgroup import SubgroupAnalyzer


def make_row(study_id: int, r2: float, scale: str, ai_method: str = "ML") -> StudyMetrics:
    return StudyMetrics(study_id=study_id, r2=r2, scale=scale, ai_method=ai_method)


@pytest.fixture
def uneven_groups() -> list[StudyMetrics]:
    """Three groups of sizes 5 (Lab), 1 (Pilot) and 4 (Industrial), interleaved."""
    spec = [
        (0.81, "Lab"),
        (0.70, "Industrial"),
        (0.85, "Lab"),
        (0.95, "Pilot"),
        (0.88, "Lab"),
        (0.65, "Industrial"),
        (0.79, "Lab"),
        (0.72, "Industrial"),
        (0.90, "Lab"),
        (0.60, "Industrial"),
    ]
    return [make_row(i, r2, scale) for i, (r2, scale) in enumerate(spec, start=1)]


class TestSubgroupAnalyzer:

    def test_single_study_group_is_skipped_but_counted(self, uneven_groups) -> None:
        result = SubgroupAnalyzer().analyze(uneven_groups, ContinuousMetric.R2, Moderator.SCALE)

        assert result.n_groups == 3
        assert result.df_between == 2
        assert [g.group for g in result.subgroups] == ["Lab", "Industrial"]
        assert result.skipped_groups == ("Pilot",)
        assert [g.k for g in result.subgroups] == [5, 4]

    def test_q_decomposition_is_exact(self, uneven_groups) -> None:
        result = SubgroupAnalyzer().analyze(uneven_groups, "R2", "scale")

        assert result.Q_total == pytest.approx(result.Q_within + result.Q_between, abs=1e-9)

    def test_within_group_q(self, uneven_groups) -> None:
        lab = [0.81, 0.85, 0.88, 0.79, 0.90]
        industrial = [0.70, 0.65, 0.72, 0.60]
        all_values = np.array([r.r2 for r in uneven_groups])

        result = SubgroupAnalyzer().analyze(uneven_groups, "R2", "scale")

        expected_within = 4 * np.var(lab, ddof=1) + 3 * np.var(industrial, ddof=1)
        assert result.Q_within == pytest.approx(expected_within)
        assert result.Q_total == pytest.approx(np.sum((all_values - all_values.mean()) ** 2))
        lab_estimate = result.subgroups[0]
        assert lab_estimate.mean == pytest.approx(np.mean(lab))
        assert lab_estimate.se == pytest.approx(np.sqrt(np.var(lab, ddof=1) / 5))
        assert lab_estimate.ci_low < lab_estimate.mean < lab_estimate.ci_high

    def test_between_group_chi_square(self, uneven_groups) -> None:
        result = SubgroupAnalyzer().analyze(uneven_groups, "R2", "scale")

        assert result.Q_between > 0
        assert result.p_between == pytest.approx(stats.chi2.sf(result.Q_between, 2))

    def test_single_group_has_no_p_value(self) -> None:
        rows = [make_row(i, v, "Lab") for i, v in enumerate([0.7, 0.8, 0.9], start=1)]

        result = SubgroupAnalyzer().analyze(rows, "R2", "scale")

        assert result.n_groups == 1
        assert result.df_between == 0
        assert result.p_between is None
        assert result.Q_between == pytest.approx(0.0, abs=1e-12)

    def test_unknown_grouping_field(self, uneven_groups) -> None:
        with pytest.raises(ValueError):
            SubgroupAnalyzer().analyze(uneven_groups, "R2", "country")

    def test_repeated_calls_are_identical(self, uneven_groups) -> None:
        analyzer = SubgroupAnalyzer()

        assert analyzer.analyze(uneven_groups, "R2", "scale") == analyzer.analyze(uneven_groups, "R2", "scale")

    def test_non_finite_value_is_left_out(self, uneven_groups) -> None:
        rows = uneven_groups + [make_row(11, float("inf"), "Lab")]

        result = SubgroupAnalyzer().analyze(rows, "R2", "scale")

        assert result.k == 10
        assert np.isfinite([result.Q_within, result.Q_between, result.Q_total]).all()
        assert result == SubgroupAnalyzer().analyze(uneven_groups, "R2", "scale")
