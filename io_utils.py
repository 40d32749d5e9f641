# io_utils.py
import copy
import json
import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import jsonschema
import numpy as np
import pandas as pd
import yaml

from constants import (
    COLUMN_ALIASES,
    DEFAULT_CHANNEL_RANGE,
    DEFAULT_DATE_KEY_WIDTH,
    DEFAULT_FIT_WINDOW,
    DEFAULT_HIST_BINS,
    DEFAULT_NOISE_CHARS,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_RUN_EXTENSION,
)
from utils import to_native
from utils.time_utils import to_epoch_seconds

logger = logging.getLogger(__name__)

__all__ = [
    "RunFileError",
    "RunFile",
    "open_run",
    "list_run_files",
    "DEFAULT_CONFIG",
    "CONFIG_SCHEMA",
    "load_config",
    "write_summary",
]


class RunFileError(ValueError):
    """Raised when a run file cannot be read as an event table."""


@dataclass(frozen=True)
class RunFile:
    """Event streams of a single monitor run."""

    path: Path
    channel: np.ndarray
    timestamp: np.ndarray

    def __len__(self) -> int:
        return int(self.channel.size)


def _resolve_columns(columns, column_map: Mapping[str, str] | None) -> dict[str, str]:
    """Return a rename mapping ``header -> logical name`` for ``columns``."""

    rename: dict[str, str] = {}
    for logical, aliases in COLUMN_ALIASES.items():
        explicit = (column_map or {}).get(logical)
        candidates = ((explicit,) if explicit else ()) + tuple(aliases)
        for header in candidates:
            if header in columns:
                rename[header] = logical
                break
    return rename


@contextmanager
def open_run(path, column_map: Mapping[str, str] | None = None) -> Iterator[RunFile]:
    """
    Read one run file and yield its ``channel`` and ``timestamp`` streams.

    The file handle is closed before the :class:`RunFile` is handed out, so
    nothing stays open while the caller bins or fits the data. Header
    aliases such as ``fadc_channel`` or ``ftimestamp`` are renamed to
    their logical names; ``column_map`` maps logical names to explicit
    headers and takes precedence over the aliases.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as fh:
            # Read strictly as strings to avoid type inference surprises
            df = pd.read_csv(fh, sep=",", engine="c", dtype=str)
    except pd.errors.EmptyDataError as e:
        raise RunFileError(f"Run file is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise RunFileError(f"Could not parse run file {path}: {e}") from e
    except OSError as e:
        raise RunFileError(f"Could not open run file {path}: {e}") from e

    df = df.rename(columns=_resolve_columns(df.columns, column_map))
    missing = [c for c in COLUMN_ALIASES if c not in df.columns]
    if missing:
        raise RunFileError(f"Run file {path.name} is missing required columns: {missing}")

    channel = pd.to_numeric(df["channel"], errors="coerce").to_numpy(dtype=float)
    timestamp = to_epoch_seconds(df["timestamp"])

    mask = np.isfinite(channel) & np.isfinite(timestamp)
    discarded = int(mask.size - mask.sum())
    if discarded:
        logger.debug("Discarded %d malformed rows from %s", discarded, path.name)

    yield RunFile(path=path, channel=channel[mask], timestamp=timestamp[mask])


def list_run_files(directory, extension: str = DEFAULT_RUN_EXTENSION, *, echo: bool = True) -> list[Path]:
    """Return the run files in ``directory`` whose name ends with ``extension``.

    Only regular files are returned, in directory enumeration order.
    The order is not chronological. A directory that cannot be listed
    raises; an empty match is only reported.
    """

    directory = Path(directory)
    logger.info("Looking for %s files in %s...", extension, directory)
    if not directory.exists():
        raise FileNotFoundError(f"Run directory not found: {directory}")
    if not directory.is_dir():
        raise NotADirectoryError(f"Run directory is not a directory: {directory}")

    found: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_file() and entry.name.endswith(extension):
                found.append(directory / entry.name)

    if not found:
        logger.warning(
            "No %s files found in %s. Check catalog.directory in the config.",
            extension,
            directory,
        )
    elif echo:
        for path in found:
            logger.info("%s", path.name)
    return found


DEFAULT_CONFIG: dict[str, Any] = {
    "pipeline": {"log_level": "INFO"},
    "catalog": {
        "directory": ".",
        "extension": DEFAULT_RUN_EXTENSION,
        "echo_files": True,
    },
    "columns": {},
    "spectrum": {
        "bins": DEFAULT_HIST_BINS,
        "range": list(DEFAULT_CHANNEL_RANGE),
    },
    "peak_fit": {
        "window": list(DEFAULT_FIT_WINDOW),
        "method": "likelihood",
    },
    "date_keys": {
        "strategy": "lexical",
        "noise_chars": DEFAULT_NOISE_CHARS,
        "width": DEFAULT_DATE_KEY_WIDTH,
    },
    "series": {"order": "catalog"},
    "plotting": {
        "output": DEFAULT_OUTPUT_PATH,
        "plot_save_formats": [],
        "figsize": None,
    },
    "summary": {"path": None},
}


_RANGE_SCHEMA = {
    "type": "array",
    "items": {"type": "number"},
    "minItems": 2,
    "maxItems": 2,
}

CONFIG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "pipeline": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"log_level": {"type": "string"}},
        },
        "catalog": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "directory": {"type": "string"},
                "extension": {"type": "string", "minLength": 1},
                "echo_files": {"type": "boolean"},
            },
        },
        "columns": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "channel": {"type": "string"},
                "timestamp": {"type": "string"},
            },
        },
        "spectrum": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "bins": {"type": "integer", "minimum": 1},
                "range": _RANGE_SCHEMA,
            },
        },
        "peak_fit": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "window": _RANGE_SCHEMA,
                "method": {"type": "string", "enum": ["chi2", "likelihood"]},
            },
        },
        "date_keys": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "strategy": {"type": "string", "enum": ["lexical", "numeric"]},
                "noise_chars": {"type": "string"},
                "width": {"type": "integer", "minimum": 0},
            },
        },
        "series": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "order": {"type": "string", "enum": ["catalog", "date"]},
            },
        },
        "plotting": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "output": {"type": "string", "minLength": 1},
                "plot_save_formats": {
                    "type": ["array", "string"],
                    "items": {"type": "string"},
                },
                "figsize": {
                    "type": ["array", "null"],
                    "items": {"type": "number", "exclusiveMinimum": 0},
                    "minItems": 2,
                    "maxItems": 2,
                },
            },
        },
        "summary": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"path": {"type": ["string", "null"]}},
        },
    },
}


class _UniqueKeyLoader(yaml.SafeLoader):
    pass


def _construct_mapping(loader, node, deep=False):
    mapping = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ValueError(f"Duplicate key '{key}' in configuration")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


_UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_mapping
)


def _merge_defaults(defaults: Mapping[str, Any], cfg: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(defaults))
    for key, value in cfg.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path):
    """Load a configuration mapping or YAML file, validate it and fill defaults."""

    if isinstance(config_path, Mapping):
        cfg = dict(config_path)
    else:
        path = Path(config_path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        if path.suffix not in {".yaml", ".yml"}:
            raise ValueError("Config file must be YAML")
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.load(f, Loader=_UniqueKeyLoader) or {}

    jsonschema.validate(cfg, CONFIG_SCHEMA)
    cfg = _merge_defaults(DEFAULT_CONFIG, cfg)

    lo, hi = cfg["peak_fit"]["window"]
    if hi <= lo:
        raise ValueError(f"peak_fit.window must be increasing, got {[lo, hi]}")
    lo, hi = cfg["spectrum"]["range"]
    if hi <= lo:
        raise ValueError(f"spectrum.range must be increasing, got {[lo, hi]}")

    return cfg


def write_summary(summary_path, summary_dict: Mapping[str, Any]) -> Path:
    """Write ``summary_dict`` as JSON to ``summary_path`` and return the path."""

    summary_path = Path(summary_path)
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    sanitized = to_native(dict(summary_dict))
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(sanitized, f, indent=4)
    logger.info(f"Wrote summary JSON to {summary_path}")
    return summary_path
