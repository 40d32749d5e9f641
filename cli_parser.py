"""Command-line argument parser for the radon concentration trend."""

import argparse
from pathlib import Path

DEFAULT_CONFIG_PATH = Path(__file__).resolve().with_name("config.yaml")


def parse_args(argv=None):
    """Parse command line arguments."""
    p = argparse.ArgumentParser(
        description=(
            "Integrate the radon peak of every monitor run in a directory and "
            "chart the concentration (counts/hour) against date"
        ),
    )
    p.add_argument(
        "--config",
        "-c",
        help=(
            "Path to YAML configuration file (default: config.yaml beside this "
            "script, or built-in defaults when it is absent)"
        ),
    )
    p.add_argument(
        "--input-dir",
        "-i",
        help="Directory holding the run files. Providing this option overrides `catalog.directory` in config.yaml",
    )
    p.add_argument(
        "--extension",
        help="File name suffix of run files, e.g. .csv. Overrides `catalog.extension`",
    )
    p.add_argument(
        "--strategy",
        choices=["lexical", "numeric"],
        help=(
            "Date keys from file names (lexical, labelled run axis) or from the "
            "first event timestamp (numeric, date axis). Overrides `date_keys.strategy`"
        ),
    )
    p.add_argument(
        "--fit-method",
        choices=["chi2", "likelihood"],
        help="Peak fit estimator. Overrides `peak_fit.method`",
    )
    p.add_argument(
        "--output",
        "-o",
        help="Chart file to write. Overrides `plotting.output`",
    )
    p.add_argument(
        "--summary",
        help="Optional JSON summary path. Overrides `summary.path`",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return p.parse_args(argv)
