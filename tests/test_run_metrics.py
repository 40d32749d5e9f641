import logging

import pytest

from run_metrics import (
    DegenerateRuntimeError,
    RunMetric,
    extract_peak_integral,
    extract_run_metric,
    extract_runtime_hours,
    runtime_hours,
)
from synthetic_dataset import synthetic_run, write_run_csv


def test_runtime_hours_from_unordered_timestamps():
    assert runtime_hours([7200.0, 0.0, 3600.0, 1800.0]) == pytest.approx(2.0)


@pytest.mark.parametrize("timestamps", [[], [1234.5], [10.0, 10.0]])
def test_runtime_hours_degenerate(timestamps):
    assert runtime_hours(timestamps) == 0.0


def test_concentration_is_integral_over_runtime():
    metric = RunMetric(path="run.csv", rn_integral=300.0, runtime_hours=2.5)
    assert metric.concentration == 300.0 / 2.5


@pytest.mark.parametrize("hours", [0.0, -1.0, float("nan"), float("inf")])
def test_run_metric_rejects_degenerate_runtime(hours):
    with pytest.raises(DegenerateRuntimeError):
        RunMetric(path="run.csv", rn_integral=10.0, runtime_hours=hours)


def test_extract_run_metric(tmp_path):
    channels, times = synthetic_run(n_peak=20000, span_s=7200.0, rng_seed=4)
    path = write_run_csv(tmp_path / "run.csv", channels, times)

    metric = extract_run_metric(path, {})

    assert metric.fit_converged
    assert metric.runtime_hours == pytest.approx(2.0)
    assert metric.concentration == pytest.approx(10000, rel=0.05)
    assert metric.concentration == metric.rn_integral / metric.runtime_hours


def test_single_event_run_is_degenerate(tmp_path, caplog):
    path = write_run_csv(tmp_path / "single.csv", [1950.0], [1000.0])

    with caplog.at_level(logging.WARNING):
        assert extract_runtime_hours(path, {}) == 0.0
        with pytest.raises(DegenerateRuntimeError):
            extract_run_metric(path, {})
    assert any("timestamp span is zero" in r.getMessage() for r in caplog.records)


def test_fit_failure_reports_zero_integral(tmp_path, caplog):
    channels, times = synthetic_run(n_peak=1000, mean=600.0, rng_seed=5)
    path = write_run_csv(tmp_path / "low.csv", channels, times)

    with caplog.at_level(logging.WARNING):
        counts, converged = extract_peak_integral(path, {})

    assert counts == 0.0
    assert converged is False
    assert any("Fit did not work" in r.getMessage() for r in caplog.records)


def test_peak_integral_honours_config_window(tmp_path):
    channels, times = synthetic_run(n_peak=8000, mean=1200.0, rng_seed=6)
    path = write_run_csv(tmp_path / "shifted.csv", channels, times)
    cfg = {"peak_fit": {"window": [1100, 1300], "method": "likelihood"}}

    counts, converged = extract_peak_integral(path, cfg)
    assert converged
    assert counts == pytest.approx(8000, rel=0.05)
