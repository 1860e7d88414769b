"""Tests for CellAssigner."""

import pytest

from glycopaint.analysis.cell_assignment import CellAssigner
from glycopaint.analysis.grid import generate_squares


class TestCellAssigner:
    def test_assign_and_apply(self):
        assigner = CellAssigner()
        assert assigner.assign(1, [3, 4]) == 2
        squares = assigner.apply(generate_squares("rec", 25))
        assert squares[3].cell_id == 1
        assert squares[4].cell_id == 1
        assert squares[5].cell_id == 0

    def test_reassign_overwrites(self):
        assigner = CellAssigner()
        assigner.assign(1, [3])
        assigner.assign(2, [3])
        assert assigner.cell_of(3) == 2

    def test_undo_restores_previous_state(self):
        assigner = CellAssigner()
        assigner.assign(1, [3, 4])
        assigner.assign(2, [4, 5])
        assert assigner.undo()
        assert assigner.assignments == {3: 1, 4: 1}
        assert assigner.undo()
        assert assigner.assignments == {}
        assert not assigner.undo()

    def test_empty_selection_is_noop(self):
        assigner = CellAssigner()
        assert assigner.assign(1, []) == 0
        assert not assigner.can_undo

    def test_assign_zero_clears(self):
        assigner = CellAssigner({3: 1})
        assigner.assign(0, [3])
        assert assigner.cell_of(3) == 0
        assert assigner.assignments == {}

    def test_negative_cell_id_raises(self):
        with pytest.raises(ValueError):
            CellAssigner().assign(-1, [1])

    def test_from_squares(self):
        squares = CellAssigner({2: 5, 7: 5}).apply(generate_squares("rec", 25))
        assigner = CellAssigner.from_squares(squares)
        assert assigner.squares_in(5) == [2, 7]

    def test_apply_does_not_modify_input(self):
        squares = generate_squares("rec", 25)
        CellAssigner({0: 9}).apply(squares)
        assert squares[0].cell_id == 0
