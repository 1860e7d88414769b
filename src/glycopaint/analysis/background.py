"""Background estimation from per-square track counts."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from glycopaint.core.models import BackgroundEstimate

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10
CONVERGENCE_TOLERANCE = 0.01


def estimate_background(counts: Sequence[int]) -> BackgroundEstimate:
    """Estimate the mean track count of background squares.

    Squares with counts above ``mean + 2 * std`` are trimmed repeatedly
    until the mean changes by less than 1% or ``MAX_ITERATIONS`` is
    reached. Signal squares are assumed to be a minority with high counts.

    Args:
        counts: Track count per square.

    Returns:
        BackgroundEstimate with the converged mean and the positions of the
        squares that remained in the background set.
    """
    values = np.asarray(counts, dtype=np.float64)
    if values.size == 0:
        return BackgroundEstimate(mean=float("nan"))

    mean = float(values.mean())
    if mean == 0:
        return BackgroundEstimate(mean=0.0)

    current = np.arange(values.size)
    iterations = 0
    for iterations in range(1, MAX_ITERATIONS + 1):
        previous = mean
        std = float(np.sqrt(np.mean((values[current] - mean) ** 2)))
        threshold = mean + 2 * std

        filtered = current[values[current] <= threshold]
        if filtered.size == 0:
            break

        mean = float(values[filtered].mean())
        current = filtered

        if mean == 0 or abs(mean - previous) / previous < CONVERGENCE_TOLERANCE:
            break

    logger.debug(
        "Background converged to %.2f tracks over %d squares after %d iterations",
        mean, current.size, iterations,
    )
    return BackgroundEstimate(
        mean=mean,
        indices=tuple(int(i) for i in current),
        track_count=int(values[current].sum()),
        iterations=iterations,
    )


def average_smallest_nonzero(counts: Sequence[int], n: int) -> float:
    """Mean of the ``n`` smallest non-zero counts, 0.0 when there are none."""
    nonzero = sorted(c for c in counts if c > 0)[:max(n, 1)]
    if not nonzero:
        return 0.0
    return float(np.mean(nonzero))
