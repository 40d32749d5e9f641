"""Time parsing helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import numpy as np
import pandas as pd
from dateutil import parser as date_parser

__all__ = ["parse_timestamp", "to_epoch_seconds", "format_epoch"]


def parse_timestamp(value: Any) -> float:
    """Return Unix epoch seconds from ``value``.

    ``value`` may be a numeric value, ``datetime`` instance or an ISO-8601
    string. Strings lacking timezone information are interpreted as UTC.
    The result is always seconds since the Unix epoch in UTC.
    """

    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)

    if isinstance(value, datetime):
        dt = value
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return float(dt.timestamp())

    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        try:
            dt = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError) as e:
            raise ValueError(f"could not parse time: {value!r}") from e
        return parse_timestamp(dt)

    raise TypeError(f"Unsupported timestamp type: {type(value)!r}")


def to_epoch_seconds(values) -> np.ndarray:
    """Convert a column of timestamps to float seconds.

    Numeric entries pass straight through.  Anything else is parsed with
    :func:`parse_timestamp`; entries that cannot be parsed become ``nan``.
    """

    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype=object)
    numeric = pd.to_numeric(series, errors="coerce")
    if not numeric.isna().any():
        return numeric.to_numpy(dtype=float)

    def _safe_parse(val):
        if val is None or (isinstance(val, float) and np.isnan(val)):
            return np.nan
        try:
            return parse_timestamp(val)
        except (ValueError, TypeError):
            return np.nan

    parsed = series[numeric.isna()].map(_safe_parse)
    numeric = numeric.astype(float)
    numeric[numeric.isna()] = parsed.astype(float)
    return numeric.to_numpy(dtype=float)


def format_epoch(seconds: float) -> str:
    """Return ``seconds`` rendered as a UTC ``YYYY-MM-DD HH:MM:SS`` string."""

    if seconds is None or not np.isfinite(seconds):
        return "n/a"
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S"
    )
