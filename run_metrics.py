"""Per-run peak integral, runtime and concentration extraction."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from constants import (
    DEFAULT_CHANNEL_RANGE,
    DEFAULT_FIT_WINDOW,
    DEFAULT_HIST_BINS,
    SECONDS_PER_HOUR,
)
from fitting import build_spectrum, fit_gaussian_peak
from io_utils import open_run

logger = logging.getLogger(__name__)

__all__ = [
    "DegenerateRuntimeError",
    "RunMetric",
    "runtime_hours",
    "extract_peak_integral",
    "extract_runtime_hours",
    "extract_run_metric",
]


class DegenerateRuntimeError(ValueError):
    """Raised when a run's timestamp span cannot be used as a divisor."""


@dataclass(frozen=True)
class RunMetric:
    """Peak integral and runtime of one run file."""

    path: Path
    rn_integral: float
    runtime_hours: float
    fit_converged: bool = True

    def __post_init__(self):
        if not math.isfinite(self.runtime_hours) or self.runtime_hours <= 0:
            raise DegenerateRuntimeError(
                f"{Path(self.path).name}: runtime of {self.runtime_hours} h is not usable"
            )
        if not math.isfinite(self.rn_integral) or self.rn_integral < 0:
            raise ValueError(
                f"{Path(self.path).name}: peak integral {self.rn_integral} is not a count"
            )

    @property
    def concentration(self) -> float:
        """Radon counts per hour of runtime."""
        return self.rn_integral / self.runtime_hours


def runtime_hours(timestamps) -> float:
    """Return ``(max - min) / 3600`` of ``timestamps``; ``0.0`` for fewer than two."""
    ts = np.asarray(timestamps, dtype=float)
    if ts.size < 2:
        return 0.0
    return float(ts.max() - ts.min()) / SECONDS_PER_HOUR


def extract_peak_integral(path, cfg: Mapping[str, Any]) -> tuple[float, bool]:
    """Return ``(counts, converged)`` from the Gaussian fit of the radon peak."""

    spec_cfg = cfg.get("spectrum", {})
    fit_cfg = cfg.get("peak_fit", {})
    window = tuple(fit_cfg.get("window", DEFAULT_FIT_WINDOW))

    with open_run(path, cfg.get("columns")) as run:
        spectrum = build_spectrum(
            run.channel,
            bins=spec_cfg.get("bins", DEFAULT_HIST_BINS),
            value_range=tuple(spec_cfg.get("range", DEFAULT_CHANNEL_RANGE)),
        )
    fit = fit_gaussian_peak(spectrum, window=window, method=fit_cfg.get("method", "likelihood"))

    if not fit.converged:
        logger.warning(
            "Fit did not work for %s (%s), check fit bounds and histogram",
            Path(path).name,
            fit.reason,
        )
    counts = fit.integral(*window)
    logger.info("Counts found from integrated fit: %g", counts)
    return counts, fit.converged


def extract_runtime_hours(path, cfg: Mapping[str, Any]) -> float:
    """Return the span between first and last event of ``path`` in hours."""

    with open_run(path, cfg.get("columns")) as run:
        hours = runtime_hours(run.timestamp)
        n_ts = run.timestamp.size

    if hours <= 0:
        logger.warning(
            "%s: timestamp span is zero (%d events)", Path(path).name, n_ts
        )
    else:
        logger.info("dt = %g [hr]", hours)
    return hours


def extract_run_metric(path, cfg: Mapping[str, Any]) -> RunMetric:
    """Return the :class:`RunMetric` of ``path``.

    Raises
    ------
    DegenerateRuntimeError
        If the run's timestamps span no time.
    io_utils.RunFileError
        If the file cannot be read.
    """

    counts, converged = extract_peak_integral(path, cfg)
    hours = extract_runtime_hours(path, cfg)
    return RunMetric(
        path=Path(path),
        rn_integral=counts,
        runtime_hours=hours,
        fit_converged=converged,
    )
