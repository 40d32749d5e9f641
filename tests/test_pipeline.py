import logging
import math
from pathlib import Path

import pytest

from pipeline import SeriesResult, SeriesPoint, render_series, run_pipeline
from synthetic_dataset import synthetic_run, write_run_csv


@pytest.fixture
def monitor_runs(tmp_path):
    """Three runs: a clean peak, an empty instant and a peak off-window."""
    runs = tmp_path / "runs"

    ch, ts = synthetic_run(20000, t_start=1_581_638_400.0, span_s=3600.0, rng_seed=1)
    write_run_csv(runs / "UofA_Rn_run_2020-02-14.csv", ch, ts)

    write_run_csv(runs / "UofA_Rn_run_2020-02-12.csv", [100.0], [1_581_465_600.0])

    ch, ts = synthetic_run(
        5000, mean=1000.0, t_start=1_581_552_000.0, span_s=7200.0, rng_seed=2
    )
    write_run_csv(runs / "UofA_Rn_run_2020-02-13.csv", ch, ts)
    return runs


def _by_key(result):
    return {p.key: p for p in result.points}


def test_pipeline_concentrations(monitor_runs, make_config, caplog):
    cfg = make_config()
    with caplog.at_level(logging.WARNING):
        result = run_pipeline(cfg)

    assert result.n_files == 3
    assert len(result.points) == 2
    points = _by_key(result)

    good = points["2020-02-14"]
    assert good.fit_converged
    assert good.runtime_hours == pytest.approx(1.0)
    assert good.rn_integral == pytest.approx(20000, rel=0.05)
    assert good.concentration == pytest.approx(good.rn_integral / good.runtime_hours)

    off = points["2020-02-13"]
    assert not off.fit_converged
    assert off.rn_integral == 0.0
    assert off.concentration == 0.0
    assert off.runtime_hours == pytest.approx(2.0)

    (skipped,) = result.skipped
    assert skipped.path.name == "UofA_Rn_run_2020-02-12.csv"
    assert skipped.reason.startswith("degenerate runtime")
    assert "Fit did not work" in caplog.text


def test_pipeline_keeps_catalog_index(monitor_runs, make_config):
    result = run_pipeline(make_config())
    indices = [p.index for p in result.points] + [s.index for s in result.skipped]
    assert sorted(indices) == [0, 1, 2]
    # points stay in catalog order unless asked otherwise
    assert [p.index for p in result.points] == sorted(p.index for p in result.points)
    for p in result.points:
        assert p.key in p.path.name


def test_pipeline_date_order(monitor_runs, make_config):
    result = run_pipeline(make_config(series={"order": "date"}))
    assert result.keys == ["2020-02-13", "2020-02-14"]


def test_pipeline_numeric_keys(monitor_runs, make_config):
    result = run_pipeline(
        make_config(date_keys={"strategy": "numeric"}, series={"order": "date"})
    )
    assert result.strategy == "numeric"
    assert result.keys == [pytest.approx(1_581_552_000.0), pytest.approx(1_581_638_400.0)]


def test_pipeline_skips_unreadable_file(monitor_runs, make_config):
    (monitor_runs / "UofA_Rn_run_2020-02-15.csv").write_text("")
    result = run_pipeline(make_config())
    reasons = {s.path.name: s.reason for s in result.skipped}
    assert reasons["UofA_Rn_run_2020-02-15.csv"].startswith("unreadable")
    assert len(result.points) == 2


def test_pipeline_skips_file_that_cannot_be_opened(monitor_runs, make_config, monkeypatch):
    import builtins

    import io_utils

    locked = monitor_runs / "UofA_Rn_run_2020-02-14.csv"

    def _open(file, *args, **kwargs):
        if Path(file) == locked:
            raise PermissionError(13, "Permission denied", str(file))
        return builtins.open(file, *args, **kwargs)

    monkeypatch.setattr(io_utils, "open", _open, raising=False)
    for strategy in ("lexical", "numeric"):
        result = run_pipeline(make_config(date_keys={"strategy": strategy}))
        reasons = {s.path.name: s.reason for s in result.skipped}
        assert reasons[locked.name].startswith("unreadable")
        assert "Permission denied" in reasons[locked.name]
        # the other runs are still processed
        assert [p.path.name for p in result.points] == ["UofA_Rn_run_2020-02-13.csv"]


def test_pipeline_ignores_other_extensions(monitor_runs, make_config):
    (monitor_runs / "notes.txt").write_text("not a run")
    assert run_pipeline(make_config()).n_files == 3


def test_pipeline_missing_directory(tmp_path, make_config):
    with pytest.raises(FileNotFoundError):
        run_pipeline(make_config())


def test_pipeline_empty_directory(tmp_path, make_config, caplog):
    (tmp_path / "runs").mkdir()
    with caplog.at_level(logging.WARNING):
        result = run_pipeline(make_config())
    assert result.n_files == 0
    assert result.points == []
    assert "No .csv files found" in caplog.text


def test_render_series_picks_renderer(tmp_path, make_config, monkeypatch):
    import pipeline

    calls = []
    monkeypatch.setattr(
        pipeline, "plot_indexed_series", lambda *a, **k: calls.append("indexed")
    )
    monkeypatch.setattr(
        pipeline, "plot_time_series", lambda *a, **k: calls.append("time")
    )
    point = SeriesPoint(0, tmp_path / "a.csv", "2020-02-14", 1.0, 1.0, 1.0, True)
    render_series(SeriesResult("lexical", 1, [point]), make_config())
    render_series(SeriesResult("numeric", 1, [point]), make_config())
    assert calls == ["indexed", "time"]


def test_render_series_writes_chart(monitor_runs, make_config, tmp_path):
    cfg = make_config()
    written = render_series(run_pipeline(cfg), cfg)
    assert written == [tmp_path / "chart.pdf"]
    assert written[0].exists()


def test_numeric_key_unreadable_is_nan(monitor_runs, make_config):
    (monitor_runs / "broken.csv").write_text("")
    result = run_pipeline(make_config(date_keys={"strategy": "numeric"}))
    assert not any(isinstance(p.key, float) and math.isnan(p.key) for p in result.points)
    assert any(s.path.name == "broken.csv" for s in result.skipped)
