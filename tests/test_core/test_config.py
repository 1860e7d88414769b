"""Tests for glycopaint.core.config."""

import math

import pytest

from glycopaint.core.config import AnalysisConfig, ImageGeometry, NeighbourMode
from glycopaint.core.constants import IMAGE_WIDTH, RECORDING_DURATION
from glycopaint.core.exceptions import ConfigurationError, InvalidInputError


class TestNeighbourMode:
    @pytest.mark.parametrize("name", ["Free", "free", "FREE", " free "])
    def test_parse_is_case_insensitive(self, name):
        assert NeighbourMode.parse(name) is NeighbourMode.FREE

    def test_parse_passes_enum_through(self):
        assert NeighbourMode.parse(NeighbourMode.STRICT) is NeighbourMode.STRICT

    def test_parse_unknown_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown neighbour mode"):
            NeighbourMode.parse("Diagonal")


class TestImageGeometry:
    def test_defaults(self):
        geo = ImageGeometry()
        assert geo.image_width == pytest.approx(82.0864, abs=1e-4)
        assert geo.image_height == geo.image_width
        assert geo.recording_duration == pytest.approx(100.0)

    def test_square_area(self):
        geo = ImageGeometry()
        assert geo.square_area(400) == pytest.approx(IMAGE_WIDTH ** 2 / 400)

    @pytest.mark.parametrize("field", ["image_width", "image_height", "recording_duration"])
    def test_non_positive_raises(self, field):
        with pytest.raises(InvalidInputError, match=field):
            ImageGeometry(**{field: 0.0})

    def test_frozen(self):
        geo = ImageGeometry()
        with pytest.raises(AttributeError):
            geo.image_width = 1.0  # type: ignore[misc]


class TestAnalysisConfig:
    def test_defaults(self):
        cfg = AnalysisConfig()
        assert cfg.number_of_squares_in_recording == 400
        assert cfg.min_tracks_to_calculate_tau == 20
        assert cfg.min_required_r_squared == 0.1
        assert cfg.min_required_density_ratio == 0.1
        assert cfg.max_allowable_variability == 10.0
        assert cfg.neighbour_mode is NeighbourMode.FREE
        assert cfg.squares_per_row == 20

    def test_mode_string_is_parsed(self):
        cfg = AnalysisConfig(neighbour_mode="strict")
        assert cfg.neighbour_mode is NeighbourMode.STRICT

    @pytest.mark.parametrize("n", [25, 100, 225, 400, 900])
    def test_supported_grid_sizes(self, n):
        cfg = AnalysisConfig(number_of_squares_in_recording=n)
        assert cfg.squares_per_row ** 2 == n

    @pytest.mark.parametrize("n", [0, 16, 401, 1600])
    def test_unsupported_grid_raises(self, n):
        with pytest.raises(ConfigurationError, match="Unsupported number of squares"):
            AnalysisConfig(number_of_squares_in_recording=n)

    def test_unknown_mode_raises(self):
        with pytest.raises(ConfigurationError):
            AnalysisConfig(neighbour_mode="Loose")

    def test_min_tracks_too_small_raises(self):
        with pytest.raises(ConfigurationError, match="min_tracks_to_calculate_tau"):
            AnalysisConfig(min_tracks_to_calculate_tau=1)

    def test_nan_threshold_raises(self):
        with pytest.raises(ConfigurationError, match="min_required_r_squared"):
            AnalysisConfig(min_required_r_squared=math.nan)

    def test_background_fraction_range(self):
        with pytest.raises(ConfigurationError):
            AnalysisConfig(background_fraction=0.0)
        with pytest.raises(ConfigurationError):
            AnalysisConfig(background_fraction=1.5)

    def test_background_reference_squares(self):
        assert AnalysisConfig().number_of_background_reference_squares == 40
        assert AnalysisConfig(
            number_of_squares_in_recording=25, background_fraction=0.01,
        ).number_of_background_reference_squares == 1

    def test_recording_duration_constant(self):
        assert RECORDING_DURATION == pytest.approx(2000 * 0.05)
