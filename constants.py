# constants.py
"""Shared constants for the radon concentration analysis modules."""

import numpy as np

# Maximum exponent before ``exp`` overflows a IEEE-754 double
EXP_OVERFLOW_DOUBLE = 700.0
# Iteration cap for ``scipy.optimize.curve_fit``
CURVE_FIT_MAX_EVALS = 10000

# Spectrum binning of the fadc channel stream. 8039 bins over the full
# 12-bit range gives roughly half a channel per bin.
DEFAULT_HIST_BINS = 8039
DEFAULT_CHANNEL_RANGE = (0.0, 4096.0)

# Channel window holding the Rn-222 alpha peak.
DEFAULT_FIT_WINDOW = (1850.0, 2050.0)

# Minimum number of non-empty bins required before a peak fit is attempted.
MIN_FIT_BINS = 3

SECONDS_PER_HOUR = 3600.0

# Characters stripped from monitor file names before the date token is cut
# out.  "sv" is included so ``.csv`` vanishes alongside ``.root``.
DEFAULT_NOISE_CHARS = "UofARrun_cpy.tsv"
# Width of the leading date field kept in front of the first ``-``
DEFAULT_DATE_KEY_WIDTH = 4

DEFAULT_RUN_EXTENSION = ".csv"
DEFAULT_OUTPUT_PATH = "rn_concentration.pdf"

# Header aliases accepted for the two logical event fields.
COLUMN_ALIASES = {
    "channel": ("channel", "fadc_channel", "adc", "adc_channel", "adc_ch"),
    "timestamp": ("timestamp", "ftimestamp", "time"),
}


def safe_exp(x: np.ndarray) -> np.ndarray:
    """Return ``exp(x)`` with the input clipped to ``[-EXP_OVERFLOW_DOUBLE, EXP_OVERFLOW_DOUBLE]``."""
    return np.exp(np.clip(x, -EXP_OVERFLOW_DOUBLE, EXP_OVERFLOW_DOUBLE))


__all__ = [
    "EXP_OVERFLOW_DOUBLE",
    "CURVE_FIT_MAX_EVALS",
    "DEFAULT_HIST_BINS",
    "DEFAULT_CHANNEL_RANGE",
    "DEFAULT_FIT_WINDOW",
    "MIN_FIT_BINS",
    "SECONDS_PER_HOUR",
    "DEFAULT_NOISE_CHARS",
    "DEFAULT_DATE_KEY_WIDTH",
    "DEFAULT_RUN_EXTENSION",
    "DEFAULT_OUTPUT_PATH",
    "COLUMN_ALIASES",
    "safe_exp",
]
