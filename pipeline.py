"""
pipeline.py

Radon concentration series from a directory of monitor runs.

This module handles:
- Discovering the run files of the configured directory
- Deriving a date key per run with the configured strategy
- Extracting peak integral and runtime per run
- Assembling the surviving runs into an ordered series
- Handing the series to the matching renderer
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from analysis_helpers import PipelineTimer
from constants import DEFAULT_OUTPUT_PATH, DEFAULT_RUN_EXTENSION
from date_keys import format_date_key, get_date_key_extractor
from io_utils import RunFileError, list_run_files
from plotting import plot_indexed_series, plot_time_series
from run_metrics import DegenerateRuntimeError, extract_run_metric

logger = logging.getLogger(__name__)

__all__ = [
    "SeriesPoint",
    "SkippedRun",
    "SeriesResult",
    "run_pipeline",
    "render_series",
]


@dataclass(frozen=True)
class SeriesPoint:
    """One plotted run; ``index`` is its position in the catalog."""

    index: int
    path: Path
    key: str | float
    concentration: float
    rn_integral: float
    runtime_hours: float
    fit_converged: bool


@dataclass(frozen=True)
class SkippedRun:
    index: int
    path: Path
    reason: str


@dataclass
class SeriesResult:
    strategy: str
    n_files: int = 0
    points: list[SeriesPoint] = field(default_factory=list)
    skipped: list[SkippedRun] = field(default_factory=list)

    @property
    def concentrations(self) -> list[float]:
        return [p.concentration for p in self.points]

    @property
    def keys(self) -> list:
        return [p.key for p in self.points]


def _date_sort_key(point: SeriesPoint):
    key = point.key
    if isinstance(key, str):
        return (key == "", key, point.index)
    return (math.isnan(key), key if not math.isnan(key) else 0.0, point.index)


def run_pipeline(cfg: Mapping[str, Any], timer: PipelineTimer | None = None) -> SeriesResult:
    """Process every run file named by ``cfg["catalog"]`` in catalog order.

    Files whose runtime is degenerate or that cannot be read are reported
    and left out of the series; a failed peak fit keeps the file with a
    zero integral.
    """
    timer = timer or PipelineTimer(logging.getLogger("pipeline.timer"))
    cat_cfg = cfg.get("catalog", {})
    strategy = cfg.get("date_keys", {}).get("strategy", "lexical")
    extractor = get_date_key_extractor(strategy, cfg)

    with timer.section("discover_files"):
        files = list_run_files(
            cat_cfg.get("directory", "."),
            cat_cfg.get("extension", DEFAULT_RUN_EXTENSION),
            echo=cat_cfg.get("echo_files", True),
        )
    logger.info("Found %d files", len(files))
    result = SeriesResult(strategy=strategy, n_files=len(files))

    with timer.section("date_keys"):
        keys = extractor.extract_all(files)

    with timer.section("run_metrics"):
        for i, (path, key) in enumerate(zip(files, keys)):
            logger.info("File # %d: %s", i + 1, path.name)
            try:
                metric = extract_run_metric(path, cfg)
            except DegenerateRuntimeError as e:
                logger.warning("Skipping %s: %s", path.name, e)
                result.skipped.append(SkippedRun(i, path, f"degenerate runtime: {e}"))
                continue
            except RunFileError as e:
                logger.warning("Skipping %s: %s", path.name, e)
                result.skipped.append(SkippedRun(i, path, f"unreadable: {e}"))
                continue

            logger.info(
                "Concentration for %s: %g [counts/hour]",
                format_date_key(key),
                metric.concentration,
            )
            result.points.append(
                SeriesPoint(
                    index=i,
                    path=path,
                    key=key,
                    concentration=metric.concentration,
                    rn_integral=metric.rn_integral,
                    runtime_hours=metric.runtime_hours,
                    fit_converged=metric.fit_converged,
                )
            )

    if cfg.get("series", {}).get("order", "catalog") == "date":
        result.points.sort(key=_date_sort_key)

    return result


def render_series(result: SeriesResult, cfg: Mapping[str, Any]):
    """Draw ``result`` with the renderer matching its date-key strategy."""

    out_path = cfg.get("plotting", {}).get("output", DEFAULT_OUTPUT_PATH)
    if result.strategy == "numeric":
        return plot_time_series(result.concentrations, result.keys, out_path, config=cfg)
    return plot_indexed_series(result.concentrations, result.keys, out_path, config=cfg)
