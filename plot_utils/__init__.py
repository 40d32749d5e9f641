"""Axis and output helpers shared by the concentration plots."""

from .paths import get_targets
from .time_axis import DATE_AXIS_FORMAT, setup_date_axis, to_mpl_times

__all__ = ["get_targets", "setup_date_axis", "to_mpl_times", "DATE_AXIS_FORMAT"]
