"""Square grid generation and assignment of tracks to squares."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from glycopaint.core.config import ImageGeometry
from glycopaint.core.constants import SUPPORTED_GRID_SIZES
from glycopaint.core.exceptions import ConfigurationError
from glycopaint.core.models import Square, Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionResult:
    """Tracks split over the squares of a recording.

    Attributes:
        tracks_by_square: One tuple of tracks per square, in square order.
        unassigned: Tracks whose centroid lies outside every square.
    """

    tracks_by_square: tuple[tuple[Track, ...], ...]
    unassigned: tuple[Track, ...]

    @property
    def counts(self) -> list[int]:
        return [len(t) for t in self.tracks_by_square]


def grid_side(number_of_squares: int) -> int:
    """Number of squares along one edge of the grid.

    Raises:
        ConfigurationError: If the count is not one of the supported layouts.
    """
    if number_of_squares not in SUPPORTED_GRID_SIZES:
        raise ConfigurationError(
            f"Unsupported number of squares: {number_of_squares!r}. "
            f"Must be one of {sorted(SUPPORTED_GRID_SIZES)}"
        )
    return math.isqrt(number_of_squares)


def generate_squares(
    recording_name: str,
    number_of_squares: int,
    geometry: ImageGeometry | None = None,
) -> tuple[Square, ...]:
    """Create the row-major square grid for a recording."""
    geometry = geometry or ImageGeometry()
    side = grid_side(number_of_squares)
    width = geometry.image_width / side
    height = geometry.image_height / side

    squares = []
    square_number = 0
    for row in range(side):
        for col in range(side):
            squares.append(Square(
                recording_name=recording_name,
                square_number=square_number,
                row=row,
                col=col,
                x0=col * width,
                y0=row * height,
                x1=(col + 1) * width,
                y1=(row + 1) * height,
            ))
            square_number += 1
    return tuple(squares)


def validate_grid(squares: Sequence[Square], number_of_squares: int, recording: str | None = None) -> int:
    """Check that ``squares`` form the configured grid and return its side.

    Raises:
        ConfigurationError: If the grid size or the row/column indices are off.
    """
    try:
        side = grid_side(number_of_squares)
    except ConfigurationError as exc:
        raise ConfigurationError(str(exc), recording=recording) from None

    if len(squares) != number_of_squares:
        raise ConfigurationError(
            f"expected {number_of_squares} squares, got {len(squares)}",
            recording=recording,
        )
    for sq in squares:
        if not (0 <= sq.row < side and 0 <= sq.col < side):
            raise ConfigurationError(
                f"square {sq.square_number} has row/column ({sq.row}, {sq.col}) "
                f"outside a {side}x{side} grid",
                recording=recording,
            )
    if len({(sq.row, sq.col) for sq in squares}) != number_of_squares:
        raise ConfigurationError(
            "squares do not cover every row/column position of the grid",
            recording=recording,
        )
    return side


def partition_tracks(tracks: Sequence[Track], squares: Sequence[Square]) -> PartitionResult:
    """Assign each track to the square that contains its centroid.

    The lower bounds of a square are inclusive and the upper bounds
    exclusive, except for squares in the last row or column where the
    upper bound is inclusive so tracks on the image edge are kept.
    A track that matches several squares goes to the first one.
    """
    if not squares:
        return PartitionResult(tracks_by_square=(), unassigned=tuple(tracks))

    last_row = max(sq.row for sq in squares)
    last_col = max(sq.col for sq in squares)

    xs = np.array([t.x for t in tracks], dtype=np.float64)
    ys = np.array([t.y for t in tracks], dtype=np.float64)
    owner = np.full(len(tracks), -1, dtype=np.int64)

    for i, sq in enumerate(squares):
        left, right = min(sq.x0, sq.x1), max(sq.x0, sq.x1)
        top, bottom = min(sq.y0, sq.y1), max(sq.y0, sq.y1)

        in_x = (xs >= left) & ((xs <= right) if sq.col == last_col else (xs < right))
        in_y = (ys >= top) & ((ys <= bottom) if sq.row == last_row else (ys < bottom))
        owner[in_x & in_y & (owner < 0)] = i

    tracks_by_square = tuple(
        tuple(tracks[j] for j in np.flatnonzero(owner == i)) for i in range(len(squares))
    )
    unassigned = tuple(tracks[j] for j in np.flatnonzero(owner < 0))

    if unassigned:
        logger.warning(
            "%d of %d tracks fall outside the square grid",
            len(unassigned), len(tracks),
        )
    logger.debug(
        "Assigned %d tracks to %d squares",
        len(tracks) - len(unassigned), len(squares),
    )
    return PartitionResult(tracks_by_square=tracks_by_square, unassigned=unassigned)
