"""Tau: exponential-decay fit of the track-duration frequency distribution."""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from glycopaint.core.constants import TAU_SCALE
from glycopaint.core.models import Track

logger = logging.getLogger(__name__)

MAX_FUNCTION_EVALUATIONS = 10_000


class TauStatus(Enum):
    """Outcome of a Tau calculation."""

    SUCCESS = "success"
    INSUFFICIENT_POINTS = "insufficient_points"
    NO_FIT = "no_fit"
    R_SQUARED_TOO_LOW = "r_squared_too_low"


@dataclass(frozen=True)
class ExponentialFit:
    """Parameters of ``y = amplitude * exp(-rate * x) + baseline``.

    Attributes:
        amplitude: Fitted amplitude.
        rate: Fitted decay rate, in 1 / (unit of x).
        baseline: Fitted constant offset.
        r_squared: Coefficient of determination on the input data.
        converged: False when the optimizer failed; the other fields are
            then NaN.
    """

    amplitude: float
    rate: float
    baseline: float
    r_squared: float
    converged: bool = True

    @classmethod
    def failed(cls) -> ExponentialFit:
        nan = float("nan")
        return cls(amplitude=nan, rate=nan, baseline=nan, r_squared=nan, converged=False)

    @property
    def tau(self) -> float:
        """Time constant of the decay, scaled by TAU_SCALE."""
        return TAU_SCALE / self.rate if self.rate > 0 else float("nan")


@dataclass(frozen=True)
class TauResult:
    """Result of :func:`calculate_tau`.

    ``tau`` and ``r_squared`` are NaN unless ``status`` is SUCCESS. The
    attempted fit, if any, is kept in ``fit``.
    """

    status: TauStatus
    tau: float = float("nan")
    r_squared: float = float("nan")
    fit: ExponentialFit | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is TauStatus.SUCCESS


def exponential_decay(x: np.ndarray, amplitude: float, rate: float, baseline: float) -> np.ndarray:
    return amplitude * np.exp(-rate * x) + baseline


def frequency_distribution(durations: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    """Distinct durations in ascending order and how often each occurs.

    Non-finite durations (blank cells in a track table) are left out.
    """
    arr = np.asarray(durations, dtype=np.float64)
    values, counts = np.unique(arr[np.isfinite(arr)], return_counts=True)
    return values, counts.astype(np.float64)


def _initial_guess(x: np.ndarray, y: np.ndarray) -> list[float]:
    """Heuristic starting point [amplitude, rate, baseline] for the optimizer."""
    min_y, max_y, max_x = float(y.min()), float(y.max()), float(x.max())

    baseline = max(0.0, min_y)
    amplitude = max(1e-6, max_y - baseline)

    # log-linear regression of the part of the curve above the baseline
    eps = max(1e-6, 0.01 * amplitude)
    above = (y - baseline) > eps
    if np.count_nonzero(above) >= 2 and np.ptp(x[above]) > 0:
        slope = np.polyfit(x[above], np.log(y[above] - baseline), 1)[0]
        rate = max(1e-9, -float(slope))
    else:
        rate = 1.0 / max(1e-3, max_x)

    amplitude = min(max(amplitude, 1e-9), 1e9)
    rate = min(max(rate, 1e-9), 1e3)
    baseline = min(max(baseline, 0.0), max(1.0, max_y))
    return [amplitude, rate, baseline]


def r_squared(y: np.ndarray, predicted: np.ndarray) -> float:
    """Coefficient of determination, NaN when ``y`` is constant."""
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0:
        return float("nan")
    ss_res = float(np.sum((y - predicted) ** 2))
    return 1.0 - ss_res / ss_tot


def fit_exponential_decay(x: Sequence[float], y: Sequence[float]) -> ExponentialFit:
    """Fit a single-exponential decay with non-linear least squares.

    Never raises for numerical problems: a failed optimization is
    reported with ``converged=False``.
    """
    from scipy.optimize import OptimizeWarning, curve_fit

    x_arr = np.asarray(x, dtype=np.float64)
    y_arr = np.asarray(y, dtype=np.float64)
    if x_arr.shape != y_arr.shape or x_arr.size < 2:
        return ExponentialFit.failed()

    p0 = _initial_guess(x_arr, y_arr)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", OptimizeWarning)
            warnings.simplefilter("ignore", RuntimeWarning)
            popt, _ = curve_fit(
                exponential_decay, x_arr, y_arr, p0=p0, maxfev=MAX_FUNCTION_EVALUATIONS,
            )
    except (RuntimeError, TypeError, ValueError) as exc:
        logger.debug("Exponential fit did not converge: %s", exc)
        return ExponentialFit.failed()

    amplitude, rate, baseline = (float(p) for p in popt)
    with np.errstate(over="ignore", invalid="ignore"):
        predicted = exponential_decay(x_arr, amplitude, rate, baseline)
    return ExponentialFit(
        amplitude=amplitude,
        rate=rate,
        baseline=baseline,
        r_squared=r_squared(y_arr, predicted),
    )


def calculate_tau(
    tracks: Sequence[Track],
    min_tracks: int,
    min_r_squared: float,
) -> TauResult:
    """Calculate Tau from the durations of ``tracks``.

    Args:
        tracks: Tracks whose durations form the distribution.
        min_tracks: Minimum number of tracks needed to attempt a fit.
        min_r_squared: Fits with a lower R² are rejected.

    Returns:
        TauResult. Tau is in milliseconds when durations are in seconds.
    """
    if len(tracks) < min_tracks:
        return TauResult(status=TauStatus.INSUFFICIENT_POINTS)

    x, y = frequency_distribution([t.duration for t in tracks])
    if x.size < 2:
        return TauResult(status=TauStatus.NO_FIT)

    fit = fit_exponential_decay(x, y)
    if not fit.converged or not fit.rate > 0:
        return TauResult(status=TauStatus.NO_FIT, fit=fit)

    tau = fit.tau
    if not (math.isfinite(tau) and math.isfinite(fit.r_squared)):
        return TauResult(status=TauStatus.NO_FIT, fit=fit)
    if fit.r_squared < min_r_squared:
        return TauResult(status=TauStatus.R_SQUARED_TOO_LOW, fit=fit)

    return TauResult(status=TauStatus.SUCCESS, tau=tau, r_squared=fit.r_squared, fit=fit)
