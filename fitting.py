# -----------------------------------------------------
# fitting.py
# -----------------------------------------------------

import logging
import math
import warnings
from dataclasses import dataclass, field

import numpy as np
from iminuit import Minuit
from scipy.optimize import curve_fit, OptimizeWarning
from scipy.special import erf

from constants import (
    CURVE_FIT_MAX_EVALS,
    DEFAULT_CHANNEL_RANGE,
    DEFAULT_FIT_WINDOW,
    DEFAULT_HIST_BINS,
    MIN_FIT_BINS,
    safe_exp as _safe_exp,
)

logger = logging.getLogger(__name__)

__all__ = [
    "Spectrum",
    "ConvergedFit",
    "FailedFit",
    "PeakFit",
    "build_spectrum",
    "gaussian_counts",
    "fit_gaussian_peak",
]

_PARAM_ORDER = ("amplitude", "mean", "sigma")


@dataclass(frozen=True)
class Spectrum:
    """Fixed-binning histogram of a channel stream."""

    counts: np.ndarray
    edges: np.ndarray

    @property
    def centers(self) -> np.ndarray:
        return 0.5 * (self.edges[:-1] + self.edges[1:])

    @property
    def bin_width(self) -> float:
        return float(self.edges[1] - self.edges[0])

    @property
    def entries(self) -> int:
        return int(self.counts.sum())


def build_spectrum(channels, bins=DEFAULT_HIST_BINS, value_range=DEFAULT_CHANNEL_RANGE) -> Spectrum:
    """Histogram ``channels`` into ``bins`` equal bins over ``value_range``.

    Values outside ``value_range`` are dropped, the same way an
    under/overflow bin would swallow them.
    """
    lo, hi = value_range
    counts, edges = np.histogram(
        np.asarray(channels, dtype=float), bins=int(bins), range=(float(lo), float(hi))
    )
    return Spectrum(counts=counts.astype(float), edges=edges)


def gaussian_counts(x, amplitude, mean, sigma):
    """Unnormalised Gaussian ``amplitude * exp(-(x-mean)**2 / (2 sigma**2))``."""
    x = np.asarray(x, dtype=float)
    expo = -0.5 * ((x - mean) / sigma) ** 2
    return amplitude * _safe_exp(expo)


@dataclass(frozen=True)
class ConvergedFit:
    """Gaussian peak fitted to a spectrum window.

    ``amplitude`` is expressed in counts per bin, so :meth:`integral`
    divides the area under the curve by ``bin_width`` to return counts.
    """

    amplitude: float
    mean: float
    sigma: float
    bin_width: float
    window: tuple[float, float]
    method: str
    covariance: np.ndarray | None = field(default=None, repr=False, compare=False)
    chi2: float | None = None
    ndf: int | None = None

    converged = True

    @property
    def errors(self) -> dict[str, float]:
        if self.covariance is None:
            return {name: math.nan for name in _PARAM_ORDER}
        diag = np.sqrt(np.clip(np.diag(self.covariance), 0, None))
        return {name: float(diag[i]) for i, name in enumerate(_PARAM_ORDER)}

    def __call__(self, x):
        return gaussian_counts(x, self.amplitude, self.mean, self.sigma)

    def integral(self, lo=None, hi=None) -> float:
        """Return the number of counts under the fitted peak between ``lo`` and ``hi``."""
        if lo is None or hi is None:
            lo, hi = self.window
        scale = self.sigma * math.sqrt(2.0)
        area = (
            self.amplitude
            * self.sigma
            * math.sqrt(math.pi / 2.0)
            * (erf((hi - self.mean) / scale) - erf((lo - self.mean) / scale))
        )
        return float(area / self.bin_width)


@dataclass(frozen=True)
class FailedFit:
    """A peak fit that produced no usable function."""

    reason: str
    window: tuple[float, float]
    method: str

    converged = False

    def integral(self, lo=None, hi=None) -> float:
        return 0.0


PeakFit = ConvergedFit | FailedFit


def _initial_guess(x, y, lo, hi, bin_width):
    total = y.sum()
    mean = float(np.sum(x * y) / total)
    var = float(np.sum(y * (x - mean) ** 2) / total)
    sigma = min(max(math.sqrt(var), bin_width), hi - lo)
    mean = min(max(mean, lo), hi)
    return [float(y.max()), mean, sigma]


def _fit_chi2(x, y, p0, bounds):
    # empty bins carry no chi2 information
    filled = y > 0
    x, y = x[filled], y[filled]
    errors = np.sqrt(y)
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message="Covariance of the parameters could not be estimated",
            category=OptimizeWarning,
        )
        popt, pcov = curve_fit(
            gaussian_counts,
            x,
            y,
            p0=p0,
            sigma=errors,
            absolute_sigma=True,
            bounds=bounds,
            maxfev=CURVE_FIT_MAX_EVALS,
        )
    model = gaussian_counts(x, *popt)
    chi2 = float(np.sum(((y - model) / errors) ** 2))
    return popt, pcov, chi2, int(x.size - len(popt))


def _fit_likelihood(x, y, p0, bounds):
    def _nll(*params):
        mu = gaussian_counts(x, *params)
        mu = np.clip(mu, 1e-300, None)
        return float(np.sum(mu - y * np.log(mu)))

    m = Minuit(_nll, *p0, name=_PARAM_ORDER)
    m.errordef = Minuit.LIKELIHOOD
    m.print_level = 0
    for name, lo, hi in zip(_PARAM_ORDER, bounds[0], bounds[1]):
        m.limits[name] = (lo, None if np.isinf(hi) else hi)
    m.migrad()
    if not m.valid:
        m.simplex()
        m.migrad()
    if not m.valid:
        raise RuntimeError("Minuit did not find a valid minimum")
    m.hesse()
    popt = np.array([float(m.values[name]) for name in _PARAM_ORDER])
    pcov = np.array(m.covariance) if m.covariance is not None else None
    model = gaussian_counts(x, *popt)
    chi2 = float(np.sum((y - model) ** 2 / np.clip(y, 1, None)))
    return popt, pcov, chi2, int(x.size - len(popt))


def fit_gaussian_peak(spectrum: Spectrum, window=DEFAULT_FIT_WINDOW, method="likelihood") -> PeakFit:
    """Fit a single Gaussian to the bins of ``spectrum`` inside ``window``.

    Parameters
    ----------
    spectrum : Spectrum
        Histogrammed channel stream.
    window : tuple of float
        Channel range ``(lo, hi)``; bins whose centres fall inside are fitted.
    method : {"likelihood", "chi2"}
        ``"likelihood"`` minimises the binned Poisson negative
        log-likelihood with :mod:`iminuit` and is unbiased at low counts.
        ``"chi2"`` runs a bounded least-squares fit with ``sqrt(n)`` errors
        on the non-empty bins via :func:`scipy.optimize.curve_fit`; it is
        only reliable when the peak bins hold many counts.

    Returns
    -------
    ConvergedFit or FailedFit
        Fit failures are returned, never raised.
    """
    if method not in ("chi2", "likelihood"):
        raise ValueError(f"Unknown peak fit method: {method!r}")

    lo, hi = float(window[0]), float(window[1])
    window = (lo, hi)
    x_all = spectrum.centers
    sel = (x_all >= lo) & (x_all <= hi)
    x = x_all[sel]
    y = spectrum.counts[sel]

    if np.count_nonzero(y) < MIN_FIT_BINS:
        return FailedFit("no counts in fit window", window, method)

    bin_width = spectrum.bin_width
    p0 = _initial_guess(x, y, lo, hi, bin_width)
    bounds = (
        [0.0, lo, 1e-3 * bin_width],
        [np.inf, hi, hi - lo],
    )

    try:
        if method == "chi2":
            popt, pcov, chi2, ndf = _fit_chi2(x, y, p0, bounds)
        else:
            popt, pcov, chi2, ndf = _fit_likelihood(x, y, p0, bounds)
    except (RuntimeError, ValueError) as e:
        return FailedFit(f"solver failed: {e}", window, method)

    if not np.all(np.isfinite(popt)):
        return FailedFit("non-finite fit parameters", window, method)
    if pcov is None or not np.all(np.isfinite(pcov)):
        return FailedFit("covariance matrix not finite", window, method)

    amplitude, mean, sigma = (float(v) for v in popt)
    if amplitude <= 0 or sigma <= 0:
        return FailedFit("degenerate peak shape", window, method)

    logger.debug(
        "Peak fit (%s): amplitude=%.3g mean=%.2f sigma=%.2f chi2/ndf=%.3g",
        method,
        amplitude,
        mean,
        sigma,
        chi2 / ndf if ndf > 0 else math.nan,
    )
    return ConvergedFit(
        amplitude=amplitude,
        mean=mean,
        sigma=sigma,
        bin_width=bin_width,
        window=window,
        method=method,
        covariance=np.asarray(pcov, dtype=float),
        chi2=chi2,
        ndf=ndf,
    )


# -----------------------------------------------------
# End of fitting.py
# -----------------------------------------------------
