"""Tests for glycopaint.analysis.grid: square generation and track partitioning."""

from dataclasses import replace

import numpy as np
import pytest

from glycopaint.analysis.grid import (
    generate_squares,
    grid_side,
    partition_tracks,
    validate_grid,
)
from glycopaint.core.config import ImageGeometry
from glycopaint.core.exceptions import ConfigurationError
from glycopaint.core.models import Track


def _track(track_id: int, x: float, y: float) -> Track:
    return Track(recording_name="rec", track_id=track_id, x=x, y=y, duration=0.1)


class TestGenerateSquares:
    def test_row_major_numbering(self):
        squares = generate_squares("rec", 25)
        assert len(squares) == 25
        assert [sq.square_number for sq in squares] == list(range(25))
        assert (squares[0].row, squares[0].col) == (0, 0)
        assert (squares[1].row, squares[1].col) == (0, 1)
        assert (squares[5].row, squares[5].col) == (1, 0)

    def test_squares_tile_the_image(self):
        geo = ImageGeometry()
        squares = generate_squares("rec", 100, geo)
        assert sum(sq.area for sq in squares) == pytest.approx(geo.area)
        assert squares[-1].x1 == pytest.approx(geo.image_width)
        assert squares[-1].y1 == pytest.approx(geo.image_height)

    def test_unsupported_size_raises(self):
        with pytest.raises(ConfigurationError):
            generate_squares("rec", 50)

    def test_grid_side(self):
        assert grid_side(900) == 30


class TestValidateGrid:
    def test_valid_grid(self):
        assert validate_grid(generate_squares("rec", 25), 25) == 5

    def test_count_mismatch_names_recording(self):
        with pytest.raises(ConfigurationError, match="rec-9: expected 100 squares"):
            validate_grid(generate_squares("rec", 25), 100, recording="rec-9")

    def test_out_of_range_index_raises(self):
        squares = list(generate_squares("rec", 25))
        squares[3] = replace(squares[3], col=5)
        with pytest.raises(ConfigurationError, match="outside a 5x5 grid"):
            validate_grid(squares, 25)

    def test_duplicate_positions_raise(self):
        squares = [replace(sq, row=0, col=0) for sq in generate_squares("rec", 25)]
        with pytest.raises(ConfigurationError, match="row/column position"):
            validate_grid(squares, 25, recording="rec-9")


class TestPartitionTracks:
    def test_union_and_disjointness(self):
        geo = ImageGeometry()
        rng = np.random.default_rng(0)
        xs = rng.uniform(-5, geo.image_width + 5, 500)
        ys = rng.uniform(-5, geo.image_height + 5, 500)
        tracks = [_track(i, float(x), float(y)) for i, (x, y) in enumerate(zip(xs, ys))]

        result = partition_tracks(tracks, generate_squares("rec", 100, geo))

        ids = [t.track_id for group in result.tracks_by_square for t in group]
        ids += [t.track_id for t in result.unassigned]
        assert sorted(ids) == list(range(500))
        assert sum(result.counts) + len(result.unassigned) == 500

    def test_tracks_land_in_containing_square(self):
        squares = generate_squares("rec", 25)
        sq = squares[7]
        inside = _track(1, (sq.x0 + sq.x1) / 2, (sq.y0 + sq.y1) / 2)
        result = partition_tracks([inside], squares)
        assert result.counts[7] == 1

    def test_shared_edge_goes_to_one_square(self):
        squares = generate_squares("rec", 25)
        edge = _track(1, squares[1].x0, squares[1].y0)
        result = partition_tracks([edge], squares)
        assert sum(result.counts) == 1
        assert result.counts[1] == 1

    def test_far_image_edge_is_kept(self):
        geo = ImageGeometry()
        squares = generate_squares("rec", 25, geo)
        corner = _track(1, geo.image_width, geo.image_height)
        result = partition_tracks([corner], squares)
        assert result.counts[24] == 1
        assert result.unassigned == ()

    def test_outside_tracks_are_unassigned(self):
        squares = generate_squares("rec", 25)
        result = partition_tracks([_track(1, -1.0, 5.0)], squares)
        assert sum(result.counts) == 0
        assert len(result.unassigned) == 1

    def test_empty_tracks(self):
        result = partition_tracks([], generate_squares("rec", 25))
        assert result.counts == [0] * 25
