import logging
from pathlib import Path

import matplotlib as _mpl
_mpl.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from plot_utils import get_targets, setup_date_axis, to_mpl_times

logger = logging.getLogger(__name__)

__all__ = ["plot_indexed_series", "plot_time_series"]

_TITLE = "AV Cover Gas Radon Monitor Concentration vs Time"
_YLABEL = "Concentration (counts/hour)"

_LABEL_STYLE = {
    "rotation": 45,
    "rotation_mode": "anchor",
    "ha": "right",
    "va": "center",
    "fontsize": 6,
    "clip_on": False,
}


def _common_prefix(values, keys):
    values = list(values)
    keys = list(keys)
    if len(values) != len(keys):
        n = min(len(values), len(keys))
        logger.warning(
            "Concentration data and date data do not have the same length "
            "(%d vs %d); plotting the first %d points",
            len(values),
            len(keys),
            n,
        )
        values, keys = values[:n], keys[:n]
    return values, keys


def _figsize(config, default):
    plotting = (config or {}).get("plotting", {}) if isinstance(config, dict) else {}
    size = plotting.get("figsize")
    return tuple(size) if size else default


def _save_figure(fig, out_path, config) -> list[Path]:
    targets = get_targets(config, out_path)
    for target in targets.values():
        fig.savefig(target)
        logger.info("Wrote %s", target)
    return list(targets.values())


def _draw_indexed_series(ax, concentrations, labels):
    """Plot ``concentrations`` against 0..n-1 and write ``labels`` under each point.

    The numeric x axis is hidden; every point instead gets a rotated text
    label just below the lower y limit, a short tick and a dotted guide up
    to the point.  Returns the label artists in input order.
    """
    x = np.arange(len(concentrations), dtype=float)
    y = np.asarray(concentrations, dtype=float)
    ax.plot(x, y, marker="o", linestyle="-", color="k")
    ax.set_xticks([])
    ax.tick_params(axis="y", length=0)

    ymin, ymax = ax.get_ylim()
    # freeze the limits so the guides below do not rescale the axis
    ax.set_ylim(ymin, ymax)
    dy = ymax - ymin

    texts = []
    for xi, yi, label in zip(x, y, labels):
        texts.append(ax.text(xi, ymin - 0.01 * dy, str(label), **_LABEL_STYLE))
        ax.plot([xi, xi], [ymin, ymin + 0.03 * dy], color="k", linewidth=0.8)
        ax.plot([xi, xi], [ymin, yi], color="0.5", linestyle=":", linewidth=0.8)
    return texts


def plot_indexed_series(concentrations, labels, out_path, *, config=None):
    """Plot concentrations in run order with a text label per run.

    Parameters
    ----------
    concentrations : sequence of float
        Counts per hour, one per run.
    labels : sequence of str
        Display date keys, ``labels[i]`` belonging to ``concentrations[i]``.
    out_path : Path or str
        Chart file; overwritten if present.
    config : dict, optional
        Configuration with an optional ``plotting`` section.

    Returns
    -------
    list of Path or None
        Written files, or ``None`` when there was nothing to plot.
    """
    values, labels = _common_prefix(concentrations, labels)
    if not values:
        logger.warning("plot_indexed_series: no data, skipping plot")
        return None

    fig, ax = plt.subplots(figsize=_figsize(config, (14, 5)))
    try:
        _draw_indexed_series(ax, values, labels)
        ax.set_title(_TITLE)
        ax.set_ylabel(_YLABEL)
        fig.subplots_adjust(bottom=0.2)
        return _save_figure(fig, out_path, config)
    finally:
        plt.close(fig)


def plot_time_series(concentrations, epoch_seconds, out_path, *, config=None):
    """Plot concentrations on a log axis against run start dates.

    ``epoch_seconds`` are placed on a true date axis labelled dd/mm/yy
    (UTC).  Returns the written files, or ``None`` when there was
    nothing to plot.
    """
    values, secs = _common_prefix(concentrations, epoch_seconds)
    x = to_mpl_times(np.asarray(secs, dtype=float))
    y = np.asarray(values, dtype=float)

    dated = np.isfinite(x)
    if not dated.all():
        logger.warning("Dropping %d points without a date", int((~dated).sum()))
        x, y = x[dated], y[dated]
    if y.size == 0:
        logger.warning("plot_time_series: no data, skipping plot")
        return None
    if np.any(y <= 0):
        logger.warning(
            "%d non-positive concentrations are hidden by the log scale",
            int(np.sum(y <= 0)),
        )

    fig, ax = plt.subplots(figsize=_figsize(config, (12, 5)))
    try:
        ax.plot(x, y, marker="o", linestyle="-", color="k")
        ax.set_yscale("log")
        setup_date_axis(ax)
        ax.set_title(_TITLE)
        ax.set_xlabel("Date (dd/mm/yr)")
        ax.set_ylabel(_YLABEL)
        fig.autofmt_xdate()
        fig.tight_layout()
        return _save_figure(fig, out_path, config)
    finally:
        plt.close(fig)
