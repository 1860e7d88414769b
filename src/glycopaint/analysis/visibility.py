"""Visibility filter: decide which squares are selected as signal."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from glycopaint.analysis.neighbours import NeighbourRule, get_neighbour_rule
from glycopaint.core.config import NeighbourMode
from glycopaint.core.models import Square, SquareAttributes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisibilityResult:
    """Selection state produced by one filter run.

    Attributes:
        selected: One flag per input square, in input order.
        label_numbers: Label per input square, None for unselected squares.
        basic_count: Squares that passed the threshold pass.
    """

    selected: tuple[bool, ...]
    label_numbers: tuple[int | None, ...]
    basic_count: int

    @property
    def selected_count(self) -> int:
        return sum(self.selected)


def passes_thresholds(
    square: Square,
    attributes: SquareAttributes,
    min_density_ratio: float,
    max_variability: float,
    min_r_squared: float,
) -> bool:
    """Threshold pass for a single square. Manually excluded squares never pass."""
    if square.manually_excluded or math.isnan(attributes.r_squared):
        return False
    return (
        attributes.density_ratio >= min_density_ratio
        and attributes.variability <= max_variability
        and attributes.r_squared >= min_r_squared
    )


def assign_label_numbers(squares: Sequence[Square], selected: Sequence[bool]) -> tuple[int | None, ...]:
    """Number the selected squares 0, 1, 2, ... in row-major grid order."""
    labels: list[int | None] = [None] * len(squares)
    order = sorted(range(len(squares)), key=lambda i: (squares[i].row, squares[i].col))
    next_label = 0
    for i in order:
        if selected[i]:
            labels[i] = next_label
            next_label += 1
    return tuple(labels)


def apply_visibility_filter(
    squares: Sequence[Square],
    attributes: Sequence[SquareAttributes],
    min_density_ratio: float,
    max_variability: float,
    min_r_squared: float,
    neighbour_mode: str | NeighbourMode | NeighbourRule = NeighbourMode.FREE,
) -> VisibilityResult:
    """Run the threshold pass and the neighbour pass from scratch.

    Args:
        squares: Squares of one recording.
        attributes: Computed attributes, aligned with ``squares``.
        min_density_ratio: Minimum density ratio.
        max_variability: Maximum variability.
        min_r_squared: Minimum R² (NaN never passes).
        neighbour_mode: Mode name or a NeighbourRule instance.

    Returns:
        VisibilityResult with selection flags and label numbers.

    Raises:
        ValueError: If ``squares`` and ``attributes`` differ in length.
    """
    if len(squares) != len(attributes):
        raise ValueError(
            f"Got {len(squares)} squares but {len(attributes)} attribute sets"
        )
    rule = neighbour_mode if isinstance(neighbour_mode, NeighbourRule) else get_neighbour_rule(neighbour_mode)

    basic = [
        passes_thresholds(sq, attr, min_density_ratio, max_variability, min_r_squared)
        for sq, attr in zip(squares, attributes)
    ]
    basic_count = sum(basic)

    candidates = {(sq.row, sq.col) for sq, ok in zip(squares, basic) if ok}
    kept = rule.supported(candidates)
    selected = tuple(ok and (sq.row, sq.col) in kept for sq, ok in zip(squares, basic))

    logger.debug(
        "Visibility filter [%s]: %d / %d pass thresholds, %d retained",
        rule.mode.value, basic_count, len(squares), sum(selected),
    )
    return VisibilityResult(
        selected=selected,
        label_numbers=assign_label_numbers(squares, selected),
        basic_count=basic_count,
    )
