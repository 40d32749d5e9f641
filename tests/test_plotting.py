import logging
import math

import matplotlib.pyplot as plt
import numpy as np
import pytest

import plotting
from plotting import _draw_indexed_series, plot_indexed_series, plot_time_series
from plot_utils import get_targets, to_mpl_times


def test_indexed_labels_follow_input_order():
    fig, ax = plt.subplots()
    try:
        texts = _draw_indexed_series(
            ax, [10.0, 20.0, 5.0], ["2020-02-14", "2020-02-15", "2020-02-16"]
        )
        assert [t.get_text() for t in texts] == ["2020-02-14", "2020-02-15", "2020-02-16"]
        assert [t.get_position()[0] for t in texts] == [0.0, 1.0, 2.0]
        assert all(t.get_rotation() == pytest.approx(45.0) for t in texts)

        ymin, _ = ax.get_ylim()
        # labels sit just under the lower edge of the plot
        assert all(t.get_position()[1] < ymin for t in texts)
        assert list(ax.get_xticks()) == []

        xs, ys = ax.lines[0].get_data()
        assert list(xs) == [0.0, 1.0, 2.0]
        assert list(ys) == [10.0, 20.0, 5.0]

        # one tick and one dotted guide per point after the data line
        ymin, ymax = ax.get_ylim()
        dy = ymax - ymin
        assert len(ax.lines) == 1 + 2 * 3
        for i, yi in enumerate([10.0, 20.0, 5.0]):
            tick = ax.lines[1 + 2 * i]
            guide = ax.lines[2 + 2 * i]
            assert list(tick.get_xdata()) == [i, i]
            assert list(tick.get_ydata()) == pytest.approx([ymin, ymin + 0.03 * dy])
            assert tick.get_linestyle() == "-"
            assert list(guide.get_xdata()) == [i, i]
            assert list(guide.get_ydata()) == pytest.approx([ymin, yi])
            assert guide.get_linestyle() == ":"
    finally:
        plt.close(fig)


def test_plot_indexed_series_writes_chart(tmp_path):
    out = tmp_path / "rn.pdf"
    written = plot_indexed_series([10.0, 20.0, 5.0], ["a", "b", "c"], out)
    assert written == [out]
    assert out.exists() and out.stat().st_size > 0


def test_plot_indexed_series_extra_formats(tmp_path):
    out = tmp_path / "rn.pdf"
    cfg = {"plotting": {"plot_save_formats": ["png"]}}
    written = plot_indexed_series([1.0, 2.0], ["a", "b"], out, config=cfg)
    assert written == [out, tmp_path / "rn.png"]
    assert all(p.exists() for p in written)


def test_length_mismatch_truncates(tmp_path, caplog, monkeypatch):
    seen = {}

    def _record(ax, concentrations, labels):
        seen["values"] = list(concentrations)
        seen["labels"] = list(labels)
        return []

    monkeypatch.setattr(plotting, "_draw_indexed_series", _record)
    with caplog.at_level(logging.WARNING):
        written = plot_indexed_series([1.0, 2.0, 3.0], ["a", "b"], tmp_path / "rn.pdf")
    assert written
    assert seen == {"values": [1.0, 2.0], "labels": ["a", "b"]}
    assert "do not have the same length" in caplog.text


def test_empty_series_skips_plot(tmp_path, caplog):
    out = tmp_path / "rn.pdf"
    with caplog.at_level(logging.WARNING):
        assert plot_indexed_series([], [], out) is None
        assert plot_time_series([], [], out) is None
    assert not out.exists()
    assert "no data" in caplog.text
    assert "no data, skipping plot" in caplog.text


def test_plot_time_series_log_axis(tmp_path, monkeypatch):
    axes = []
    original = plotting.setup_date_axis

    def _capture(ax, *args, **kwargs):
        axes.append(ax)
        return original(ax, *args, **kwargs)

    monkeypatch.setattr(plotting, "setup_date_axis", _capture)
    out = tmp_path / "rn.png"
    secs = [1_581_638_400.0, 1_581_724_800.0, 1_581_811_200.0]
    written = plot_time_series([12.0, 30.0, 8.0], secs, out)

    assert written == [out]
    assert out.exists()
    (ax,) = axes
    assert ax.get_yscale() == "log"
    assert ax.get_xlabel() == "Date (dd/mm/yr)"
    xs, _ = ax.lines[0].get_data()
    np.testing.assert_allclose(xs, to_mpl_times(secs))


def test_plot_time_series_drops_undated_points(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        written = plot_time_series(
            [12.0, 30.0], [1_581_638_400.0, math.nan], tmp_path / "rn.pdf"
        )
    assert written
    assert "without a date" in caplog.text


def test_to_mpl_times_epoch():
    import matplotlib.dates as mdates
    from datetime import datetime, timezone

    expected = mdates.date2num(datetime(2020, 2, 14, tzinfo=timezone.utc))
    assert to_mpl_times([1_581_638_400.0])[0] == pytest.approx(expected)


def test_get_targets_defaults_to_pdf(tmp_path):
    targets = get_targets(None, tmp_path / "chart")
    assert targets == {"pdf": tmp_path / "chart.pdf"}
