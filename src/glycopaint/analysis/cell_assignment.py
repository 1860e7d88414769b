"""Assignment of grid squares to user-defined cells."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from glycopaint.core.models import Square

logger = logging.getLogger(__name__)

UNASSIGNED = 0


class CellAssigner:
    """Track which cell each square belongs to, with undo.

    Assignments are keyed by square number. Squares without an assignment
    carry cell id 0.
    """

    def __init__(self, assignments: dict[int, int] | None = None) -> None:
        self._assignments: dict[int, int] = dict(assignments or {})
        self._undo_stack: list[dict[int, int]] = []

    @classmethod
    def from_squares(cls, squares: Iterable[Square]) -> CellAssigner:
        """Start from the cell ids already present on ``squares``."""
        return cls({sq.square_number: sq.cell_id for sq in squares if sq.cell_id != UNASSIGNED})

    def assign(self, cell_id: int, square_numbers: Iterable[int]) -> int:
        """Assign ``cell_id`` to the given squares.

        An empty selection is a no-op and does not create an undo step.

        Returns:
            Number of squares assigned.

        Raises:
            ValueError: If cell_id is negative.
        """
        if cell_id < 0:
            raise ValueError(f"Cell id must be >= 0, got {cell_id}")
        numbers = set(square_numbers)
        if not numbers:
            return 0

        self._undo_stack.append(dict(self._assignments))
        for number in numbers:
            if cell_id == UNASSIGNED:
                self._assignments.pop(number, None)
            else:
                self._assignments[number] = cell_id
        logger.debug("Assigned %d squares to cell %d", len(numbers), cell_id)
        return len(numbers)

    def undo(self) -> bool:
        """Restore the state before the last assignment. Returns False if there is none."""
        if not self._undo_stack:
            return False
        self._assignments = self._undo_stack.pop()
        return True

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def cell_of(self, square_number: int) -> int:
        return self._assignments.get(square_number, UNASSIGNED)

    def squares_in(self, cell_id: int) -> list[int]:
        return sorted(n for n, c in self._assignments.items() if c == cell_id)

    @property
    def assignments(self) -> dict[int, int]:
        return dict(self._assignments)

    def apply(self, squares: Sequence[Square]) -> tuple[Square, ...]:
        """Return copies of ``squares`` carrying the current cell ids."""
        return tuple(replace(sq, cell_id=self.cell_of(sq.square_number)) for sq in squares)
