"""Neighbour rules used by the second pass of the visibility filter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from glycopaint.core.config import NeighbourMode
from glycopaint.core.exceptions import ConfigurationError

Position = tuple[int, int]


class NeighbourRule(ABC):
    """Decides which candidate squares have a supporting neighbour.

    Subclasses define ``offsets``: the (row, col) displacements that count
    as adjacent. The default ``supported`` looks each offset up in a set of
    occupied positions, so the cost is linear in the number of candidates.
    Rules with another notion of adjacency can override ``supported``.
    """

    @property
    @abstractmethod
    def mode(self) -> NeighbourMode:
        """The mode this rule implements."""

    @property
    @abstractmethod
    def offsets(self) -> tuple[Position, ...]:
        """(row, col) displacements that count as neighbours."""

    def supported(self, candidates: Iterable[Position]) -> set[Position]:
        """Return the candidates that have at least one candidate neighbour."""
        occupied = set(candidates)
        return {
            (r, c) for (r, c) in occupied
            if any((r + dr, c + dc) in occupied for dr, dc in self.offsets)
        }


class FreeNeighbours(NeighbourRule):
    """No neighbour constraint: every candidate is kept."""

    @property
    def mode(self) -> NeighbourMode:
        return NeighbourMode.FREE

    @property
    def offsets(self) -> tuple[Position, ...]:
        return ()

    def supported(self, candidates: Iterable[Position]) -> set[Position]:
        return set(candidates)


class RelaxedNeighbours(NeighbourRule):
    """Any of the 8 surrounding squares, corners included."""

    @property
    def mode(self) -> NeighbourMode:
        return NeighbourMode.RELAXED

    @property
    def offsets(self) -> tuple[Position, ...]:
        return tuple(
            (dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)
        )


class StrictNeighbours(NeighbourRule):
    """Only the 4 squares sharing an edge."""

    @property
    def mode(self) -> NeighbourMode:
        return NeighbourMode.STRICT

    @property
    def offsets(self) -> tuple[Position, ...]:
        return ((-1, 0), (1, 0), (0, -1), (0, 1))


_RULES: dict[NeighbourMode, NeighbourRule] = {
    NeighbourMode.FREE: FreeNeighbours(),
    NeighbourMode.RELAXED: RelaxedNeighbours(),
    NeighbourMode.STRICT: StrictNeighbours(),
}


def register_neighbour_rule(rule: NeighbourRule) -> None:
    """Replace the rule used for ``rule.mode``."""
    _RULES[rule.mode] = rule


def get_neighbour_rule(mode: str | NeighbourMode) -> NeighbourRule:
    """Look up the rule for a mode name (case-insensitive).

    Raises:
        ConfigurationError: If the mode is unknown.
    """
    return _RULES[NeighbourMode.parse(mode)]
