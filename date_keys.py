"""Date keys used to place each run on the concentration chart.

Two strategies are available.  :class:`LexicalDateKey` cuts a short date
token out of the monitor's file names and is meant for display only.
:class:`NumericDateKey` opens each run and uses its earliest timestamp
(epoch seconds), which orders runs exactly but needs a date axis to read.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Mapping, Sequence

from constants import DEFAULT_DATE_KEY_WIDTH, DEFAULT_NOISE_CHARS
from io_utils import RunFileError, open_run
from utils.time_utils import format_epoch

logger = logging.getLogger(__name__)

__all__ = [
    "DateKeyExtractor",
    "LexicalDateKey",
    "NumericDateKey",
    "get_date_key_extractor",
    "format_date_key",
]


class DateKeyExtractor:
    """Derive one key per run file, keeping index correspondence."""

    name = "base"
    # key used for a run whose file cannot be read
    missing_key: str | float = ""

    def extract(self, path) -> str | float:  # pragma: no cover - interface
        raise NotImplementedError

    def extract_all(self, paths: Sequence) -> list:
        """Return ``[extract(p) for p in paths]``.

        A file that cannot be read is logged and gets :attr:`missing_key`,
        so ``keys[i]`` always describes ``paths[i]``.
        """
        logger.info("Extracting dates...")
        keys = []
        for path in paths:
            try:
                key = self.extract(path)
            except RunFileError as e:
                logger.warning("Could not read date key from %s: %s", Path(path).name, e)
                key = self.missing_key
            logger.debug("%s", format_date_key(key))
            keys.append(key)
        return keys


class LexicalDateKey(DateKeyExtractor):
    """Date token from a file name.

    Every character of ``noise_chars`` is removed from the name, then
    everything before ``width`` characters ahead of the first remaining
    ``-`` is cut away.  ``UofA_Rn_run_2020-02-14.root`` becomes
    ``2020-02-14``.
    """

    name = "lexical"

    def __init__(self, noise_chars: str = DEFAULT_NOISE_CHARS, width: int = DEFAULT_DATE_KEY_WIDTH):
        self.noise = frozenset(noise_chars)
        self.width = int(width)

    def extract(self, path) -> str:
        fname = Path(path).name
        key = "".join(ch for ch in fname if ch not in self.noise)
        cutoff = key.find("-")
        if cutoff < self.width:
            logger.warning("Could not extract a date from file name %r", fname)
            return ""
        return key[cutoff - self.width:]


class NumericDateKey(DateKeyExtractor):
    """Earliest event timestamp of a run, in epoch seconds."""

    name = "numeric"
    missing_key = math.nan

    def __init__(self, column_map: Mapping[str, str] | None = None):
        self.column_map = dict(column_map or {})

    def extract(self, path) -> float:
        with open_run(path, self.column_map) as run:
            if run.timestamp.size == 0:
                logger.warning("%s has no timestamps; date key is undefined", Path(path).name)
                return math.nan
            return float(run.timestamp.min())


def get_date_key_extractor(name: str, cfg: Mapping[str, Any] | None = None) -> DateKeyExtractor:
    """Return the extractor called ``name`` configured from ``cfg``."""

    cfg = cfg or {}
    dk_cfg = cfg.get("date_keys", {})
    if name == "lexical":
        return LexicalDateKey(
            noise_chars=dk_cfg.get("noise_chars", DEFAULT_NOISE_CHARS),
            width=dk_cfg.get("width", DEFAULT_DATE_KEY_WIDTH),
        )
    if name == "numeric":
        return NumericDateKey(cfg.get("columns"))
    raise ValueError(f"Unknown date key strategy: {name!r}")


def format_date_key(key) -> str:
    """Return ``key`` as text suitable for log lines."""
    if isinstance(key, str):
        return key
    return format_epoch(key)
