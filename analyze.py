#!/usr/bin/env python
"""
analyze.py

Radon concentration trend for the cover gas radon monitor.

Every run file in the configured directory is histogrammed on its
``fadc_channel`` stream, the Rn-222 peak is fitted with a Gaussian inside
the fixed channel window and the fitted counts are divided by the run
length in hours.  The resulting concentrations are charted against the
run dates, either with the date token of each file name written under
its point (``lexical``) or on a calendar axis positioned by each run's
first timestamp (``numeric``).

Example::

    python analyze.py --config config.yaml --input-dir runs/ --strategy numeric
"""

import logging
import sys

from analysis_helpers import PipelineTimer
from cli_parser import DEFAULT_CONFIG_PATH, parse_args
from io_utils import load_config, write_summary
from pipeline import render_series, run_pipeline
from reporting import build_summary, get_captured_warnings, start_warning_capture

logger = logging.getLogger("analyze")


def apply_config_overrides(cfg, args):
    """Apply command line overrides to ``cfg`` in place and return it."""

    def _log_override(section, key, new_val):
        prev = cfg.get(section, {}).get(key)
        if prev is not None and prev != new_val:
            logger.info(
                "Overriding %s.%s=%r with %r from CLI", section, key, prev, new_val
            )

    overrides = (
        ("catalog", "directory", args.input_dir),
        ("catalog", "extension", args.extension),
        ("date_keys", "strategy", args.strategy),
        ("peak_fit", "method", args.fit_method),
        ("plotting", "output", args.output),
        ("summary", "path", args.summary),
    )
    for section, key, value in overrides:
        if value is None:
            continue
        _log_override(section, key, value)
        cfg.setdefault(section, {})[key] = str(value)

    if args.debug:
        cfg.setdefault("pipeline", {})["log_level"] = "DEBUG"
    return cfg


def setup_logging(cfg):
    """Configure logging based on config settings."""
    log_level = cfg.get("pipeline", {}).get("log_level", "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level, format="%(levelname)s:%(name)s:%(message)s"
    )
    logging.getLogger().setLevel(numeric_level)
    start_warning_capture()


def _config_source(config_arg):
    """Return the path or mapping ``load_config`` should read."""
    if config_arg is not None:
        return config_arg
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    # installed without the bundled config.yaml
    return {}


def main(argv=None):
    args = parse_args(argv)
    source = _config_source(args.config)

    try:
        cfg = load_config(source)
    except Exception as e:
        logging.basicConfig(format="%(levelname)s:%(name)s:%(message)s")
        logger.error("Could not load config '%s': %s", source, e)
        return 1

    cfg = apply_config_overrides(cfg, args)
    setup_logging(cfg)
    if isinstance(source, dict):
        logger.info("No %s found, using built-in defaults", DEFAULT_CONFIG_PATH.name)
    timer = PipelineTimer(logging.getLogger("analyze.timer"))

    try:
        result = run_pipeline(cfg, timer=timer)
    except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
        logger.error("Could not list run files: %s", e)
        get_captured_warnings()
        return 1

    with timer.section("render"):
        written = render_series(result, cfg)

    warnings = get_captured_warnings()
    summary_path = cfg.get("summary", {}).get("path")
    if summary_path:
        write_summary(summary_path, build_summary(result, cfg, warnings))

    timer.report()
    logger.info(
        "%d of %d runs plotted, %d skipped",
        len(result.points),
        result.n_files,
        len(result.skipped),
    )
    if written:
        logger.info("Analysis complete. Chart written to -> %s", written[0])
    return 0


if __name__ == "__main__":
    sys.exit(main())
