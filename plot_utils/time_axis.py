from datetime import datetime, timezone
from typing import Sequence

import matplotlib.dates as mdates
import numpy as np

__all__ = ["to_mpl_times", "setup_date_axis", "DATE_AXIS_FORMAT"]

# dd/mm/yy, counted from the Unix epoch in UTC
DATE_AXIS_FORMAT = "%d/%m/%y"


def to_mpl_times(times: Sequence) -> np.ndarray:
    """Convert an array of time values to Matplotlib's numeric format.

    Parameters
    ----------
    times : sequence of float, numpy.datetime64, or datetime.datetime
        Input time values. Floats are interpreted as seconds since the UNIX epoch.

    Returns
    -------
    numpy.ndarray
        Array of floats suitable for plotting with Matplotlib's date functions.
        Non-finite epoch values stay ``nan``.
    """
    arr = np.asarray(list(times))
    if arr.size == 0:
        return arr.astype(float)
    if np.issubdtype(arr.dtype, np.datetime64):
        seconds = arr.astype("datetime64[s]").astype(float)
    else:
        first = arr.flat[0]
        if isinstance(first, datetime):
            seconds = np.array(
                [
                    (t if t.tzinfo is None else t.astimezone(timezone.utc))
                    .replace(tzinfo=timezone.utc)
                    .timestamp()
                    for t in arr
                ],
                dtype=float,
            )
        else:
            seconds = arr.astype(float)
    # Matplotlib date numbers are days since the (UTC) Unix epoch
    return seconds / 86400.0 + mdates.date2num(datetime(1970, 1, 1, tzinfo=timezone.utc))


def setup_date_axis(ax, fmt: str = DATE_AXIS_FORMAT) -> None:
    """Label the x axis of ``ax`` with calendar dates in UTC."""
    locator = mdates.AutoDateLocator()
    ax.xaxis.set_major_locator(locator)
    ax.xaxis.set_major_formatter(mdates.DateFormatter(fmt, tz=timezone.utc))
    ax.xaxis.get_offset_text().set_visible(False)
