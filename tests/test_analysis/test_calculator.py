"""Tests for glycopaint.analysis.calculator: the full square analysis of a recording."""

import math
from dataclasses import replace

import pytest

from glycopaint.analysis.calculator import (
    SquareAnalyzer,
    compute_recording_attributes,
    compute_square_attributes,
    reselect,
)
from glycopaint.analysis.metrics import SummaryMetricRegistry
from glycopaint.core.config import AnalysisConfig, ImageGeometry, NeighbourMode
from glycopaint.core.exceptions import ConfigurationError, InvalidInputError
from glycopaint.core.models import Track

# (1, 1), (1, 2), (3, 3) on a 5x5 grid
SIGNAL_NUMBERS = {6, 7, 18}


def _selected_numbers(analysis):
    return {sr.square.square_number for sr in analysis.selected_squares}


class TestComputeSquareAttributes:
    def test_background_excludes_signal_squares(self, recording, config):
        analysis = compute_square_attributes(recording, config)
        assert analysis.background.mean == pytest.approx(2.0)
        assert analysis.background.size == 22
        assert analysis.background.track_count == 44
        assert analysis.attributes is None
        assert analysis.revision == 1

    def test_signal_square_attributes(self, recording, config):
        analysis = compute_square_attributes(recording, config)
        attrs = analysis.squares[6].attributes
        square_area = analysis.squares[6].square.area

        assert attrs.number_of_tracks == 60
        assert attrs.density_ratio == pytest.approx(30.0)
        assert attrs.density == pytest.approx(round(60 / square_area / 100.0, 3))
        assert 60 < attrs.tau < 160
        assert attrs.tau == round(attrs.tau)
        assert attrs.r_squared > 0.9
        assert attrs.variability == pytest.approx(0.82, abs=0.01)
        assert attrs.max_track_duration == pytest.approx(0.4)
        assert attrs.median_diffusion_coefficient == pytest.approx(0.52)

    def test_density_uses_square_bounds(self, recording, config):
        # a larger geometry than the squares were cut from
        geometry = ImageGeometry(image_width=200.0, image_height=200.0)
        analysis = compute_square_attributes(recording, config, geometry)
        square = analysis.squares[6].square
        assert analysis.squares[6].attributes.density == pytest.approx(
            round(60 / square.area / 100.0, 3)
        )

    def test_attempted_fit_kept_below_minimum(self, recording):
        demanding = AnalysisConfig(number_of_squares_in_recording=25, min_required_r_squared=1.01)
        analysis = compute_square_attributes(recording, demanding)
        signal = analysis.squares[6]
        assert math.isnan(signal.attributes.tau)
        assert 60 < signal.fit_tau < 160
        assert signal.fit_r_squared > 0.9
        assert math.isnan(analysis.squares[0].fit_tau)
        assert _selected_numbers(analysis) == set()

    def test_background_square_has_no_tau(self, recording, config):
        analysis = compute_square_attributes(recording, config)
        attrs = analysis.squares[0].attributes
        assert attrs.number_of_tracks == 2
        assert math.isnan(attrs.tau)
        assert math.isnan(attrs.r_squared)
        assert attrs.density_ratio == pytest.approx(1.0)
        assert not analysis.squares[0].selected

    def test_empty_square_stays_nan(self, make_recording, config):
        rec = make_recording(background_tracks=0)
        analysis = compute_square_attributes(rec, config)
        attrs = analysis.squares[0].attributes
        assert attrs.number_of_tracks == 0
        assert math.isnan(attrs.density)
        assert math.isnan(attrs.variability)

    def test_selection_and_labels(self, recording, config):
        analysis = compute_square_attributes(recording, config)
        assert _selected_numbers(analysis) == SIGNAL_NUMBERS
        labels = {sr.square.square_number: sr.label_number for sr in analysis.squares}
        assert (labels[6], labels[7], labels[18]) == (0, 1, 2)
        assert labels[0] is None

    def test_tracks_kept_per_square(self, recording, config):
        analysis = compute_square_attributes(recording, config)
        assert sum(len(sr.tracks) for sr in analysis.squares) == len(recording.tracks)
        assert analysis.unassigned_tracks == ()
        assert analysis.warnings == ()

    def test_unassigned_tracks_warned(self, recording, config):
        stray = Track(recording_name=recording.name, track_id=999, x=-5.0, y=1.0, duration=0.1)
        rec = replace(recording, tracks=recording.tracks + (stray,))
        analysis = compute_square_attributes(rec, config)
        assert analysis.unassigned_tracks == (stray,)
        assert any("outside the square grid" in w for w in analysis.warnings)

    def test_grid_mismatch_raises(self, recording):
        with pytest.raises(ConfigurationError, match="rec-1"):
            compute_square_attributes(recording, AnalysisConfig(number_of_squares_in_recording=100))

    def test_non_positive_concentration_raises(self, make_recording, config):
        with pytest.raises(InvalidInputError, match="concentration"):
            compute_square_attributes(make_recording(concentration=0.0), config)

    def test_custom_summary_goes_to_extra(self, recording, config):
        registry = SummaryMetricRegistry()
        registry.register("max_diffusion_coefficient", "diffusion_coefficient", max)
        analysis = compute_square_attributes(recording, config, summaries=registry)
        extra = analysis.squares[6].attributes.extra
        assert extra["max_diffusion_coefficient"] == pytest.approx(0.54)

    def test_input_not_modified(self, recording, config):
        before = recording.squares
        compute_square_attributes(recording, config)
        assert recording.squares is before
        assert all(not sq.manually_excluded for sq in recording.squares)


class TestComputeRecordingAttributes:
    def test_recording_attributes(self, make_recording, config):
        rec = make_recording(concentration=0.001)
        analysis = compute_recording_attributes(compute_square_attributes(rec, config))
        attrs = analysis.attributes
        selected_area = sum(sr.square.area for sr in analysis.selected_squares)

        assert attrs.number_of_selected_squares == 3
        assert attrs.number_of_tracks == 3 * 60 + 22 * 2
        assert attrs.number_of_squares_in_background == 22
        assert attrs.number_of_tracks_in_background == 44
        assert attrs.average_tracks_in_background == pytest.approx(2.0)
        assert attrs.density == pytest.approx(round(180 / selected_area / 100.0 / 0.001, 2))
        assert 60 < attrs.tau < 160
        assert attrs.r_squared > 0.9

    def test_no_selected_squares(self, make_recording, config):
        rec = make_recording(signal=())
        analysis = compute_recording_attributes(compute_square_attributes(rec, config))
        attrs = analysis.attributes
        assert attrs.number_of_selected_squares == 0
        assert math.isnan(attrs.tau)
        assert math.isnan(attrs.density)


class TestReselect:
    def test_same_thresholds_are_idempotent(self, recording, config):
        analyzer = SquareAnalyzer(config)
        first = analyzer.analyze(recording)
        second = reselect(first)
        assert [sr.selected for sr in second.squares] == [sr.selected for sr in first.squares]
        assert [sr.label_number for sr in second.squares] == [sr.label_number for sr in first.squares]
        assert second.attributes == first.attributes
        assert second.revision == first.revision + 1

    def test_stricter_mode_selects_subset(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        strict = reselect(analysis, neighbour_mode="Strict")
        assert _selected_numbers(strict) == {6, 7}
        assert strict.config.neighbour_mode is NeighbourMode.STRICT
        assert strict.attributes.number_of_selected_squares == 2
        # the earlier analysis is untouched
        assert _selected_numbers(analysis) == SIGNAL_NUMBERS
        assert analysis.config.neighbour_mode is NeighbourMode.FREE

    def test_monotone_over_modes(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        free = _selected_numbers(reselect(analysis, neighbour_mode="Free"))
        relaxed = _selected_numbers(reselect(analysis, neighbour_mode="Relaxed"))
        strict = _selected_numbers(reselect(analysis, neighbour_mode="Strict"))
        assert strict <= relaxed <= free

    def test_threshold_change(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        none_selected = reselect(analysis, min_required_density_ratio=100.0)
        assert none_selected.selected_squares == []
        assert math.isnan(none_selected.attributes.tau)

    def test_lowered_r_squared_matches_full_run(self, recording, config):
        demanding = replace(config, min_required_r_squared=1.01)
        preview = reselect(SquareAnalyzer(demanding).analyze(recording), min_required_r_squared=0.1)
        fresh = SquareAnalyzer(config).analyze(recording)
        assert _selected_numbers(preview) == _selected_numbers(fresh) == SIGNAL_NUMBERS
        for number in SIGNAL_NUMBERS:
            assert preview.squares[number].attributes.tau == fresh.squares[number].attributes.tau
            assert (
                preview.squares[number].attributes.r_squared
                == fresh.squares[number].attributes.r_squared
            )
        assert preview.attributes.tau == fresh.attributes.tau
        assert preview.attributes.density == fresh.attributes.density

    def test_raised_r_squared_matches_full_run(self, recording, config):
        preview = reselect(SquareAnalyzer(config).analyze(recording), min_required_r_squared=1.01)
        fresh = SquareAnalyzer(replace(config, min_required_r_squared=1.01)).analyze(recording)
        assert _selected_numbers(preview) == _selected_numbers(fresh) == set()
        assert all(math.isnan(sr.attributes.tau) for sr in preview.squares)

    def test_warnings_not_shared_mutable(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        assert isinstance(analysis.warnings, tuple)
        assert isinstance(reselect(analysis).warnings, tuple)

    def test_manual_exclusion(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        updated = reselect(analysis, excluded_squares=[7])
        assert _selected_numbers(updated) == {6, 18}
        assert updated.squares[7].square.manually_excluded
        assert updated.squares[7].label_number is None
        assert updated.squares[18].label_number == 1

    def test_invalid_mode_raises(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        with pytest.raises(ConfigurationError):
            reselect(analysis, neighbour_mode="Sideways")


class TestSquareAnalyzer:
    def test_defaults(self):
        analyzer = SquareAnalyzer()
        assert analyzer.config == AnalysisConfig()
        assert analyzer.geometry == ImageGeometry()

    def test_analyze_fills_attributes(self, recording, config):
        analysis = SquareAnalyzer(config).analyze(recording)
        assert analysis.attributes is not None
        assert analysis.recording_name == "rec-1"

    def test_reselect_delegates(self, recording, config):
        analyzer = SquareAnalyzer(config)
        analysis = analyzer.reselect(analyzer.analyze(recording), neighbour_mode="Relaxed")
        assert analysis.revision == 2
