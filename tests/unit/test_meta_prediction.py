"""Unit tests for prediction intervals."""

import math

import pytest
from scipy import stats

from srma.meta.prediction import PredictionIntervalCalculator, calculate_prediction_interval


def test_uses_student_t_with_k_minus_2_df() -> None:
    interval = PredictionIntervalCalculator().calculate(effect=1.0, se=0.1, tau2=0.04, k=5)

    t_value = stats.t.ppf(0.975, 3)
    pred_se = math.sqrt(0.1 ** 2 + 0.04)
    assert interval.df == 3
    assert interval.t_value == pytest.approx(t_value)
    assert interval.pred_se == pytest.approx(pred_se)
    assert interval.pi_low == pytest.approx(1.0 - t_value * pred_se)
    assert interval.pi_high == pytest.approx(1.0 + t_value * pred_se)


def test_wider_than_normal_interval() -> None:
    interval = calculate_prediction_interval(effect=0.5, se=0.05, tau2=0.0, k=4)

    assert interval.t_value > 1.96
    assert interval.pi_high - interval.pi_low > 2 * 1.96 * 0.05


@pytest.mark.parametrize("k", [0, 1, 2])
def test_insufficient_studies(k: int) -> None:
    interval = calculate_prediction_interval(effect=0.5, se=0.05, tau2=0.01, k=k)

    assert interval.pi_low is None
    assert interval.pi_high is None
    assert interval.note == "Insufficient studies"


def test_non_finite_input_becomes_undefined() -> None:
    interval = calculate_prediction_interval(effect=float("nan"), se=0.05, tau2=0.01, k=5)

    assert interval.pi_low is None
    assert interval.pi_high is None
