"""
Unit tests for mouse trajectory geometry.
"""
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import math

import pytest
from trajectory import analyze_trajectory, TrajectoryPoint


def _points(*coords):
    return [TrajectoryPoint(*c) for c in coords]


def _turn(angle, length=10.0):
    """Three points whose single interior turn has the given angle (radians)."""
    return _points(
        (0.0, 0.0),
        (length, 0.0),
        (length + length * math.cos(angle), length * math.sin(angle)),
    )


class TestValidity:
    """Test short and empty samples."""

    @pytest.mark.parametrize("sample", [None, [], _points((0, 0), (10, 0))])
    def test_too_few_points(self, sample):
        summary = analyze_trajectory(sample)
        assert summary.valid is False
        assert summary.to_dict() == {"valid": False, "points": 0, "distance": 0}


class TestGeometry:
    """Test distance and turn angle ratios."""

    def test_collinear_points(self):
        """A straight line is fully smooth with no corrections."""
        summary = analyze_trajectory(_points((0, 0), (10, 0), (20, 0)))

        assert summary.valid is True
        assert summary.points == 3
        assert summary.distance == 20
        assert summary.smooth_ratio == 1.0
        assert summary.correction_ratio == 0.0

    def test_distance_is_path_length(self):
        summary = analyze_trajectory(_points((0, 0), (3, 4), (6, 8), (6, 18)))
        assert summary.distance == 20

    def test_overlap_band_counts_twice(self):
        """A turn of 0.095 rad is both smooth and a correction."""
        summary = analyze_trajectory(_turn(0.095))
        assert summary.smooth_ratio == 1.0
        assert summary.correction_ratio == 1.0

    def test_moderate_turn_is_correction(self):
        summary = analyze_trajectory(_turn(0.3))
        assert summary.smooth_ratio == 0.0
        assert summary.correction_ratio == 1.0

    def test_sharp_turn_is_neither(self):
        summary = analyze_trajectory(_turn(1.5))
        assert summary.smooth_ratio == 0.0
        assert summary.correction_ratio == 0.0

    def test_zero_length_move_is_skipped(self):
        """Repeated points contribute no turn but still count as interior."""
        summary = analyze_trajectory(_points((0, 0), (0, 0), (10, 0), (20, 0)))
        assert summary.smooth_ratio == 0.5
        assert summary.distance == 20

    def test_accepts_mappings(self):
        sample = [{"x": 0, "y": 0}, {"x": 10, "y": 0}, {"x": 20, "y": 0}]
        assert analyze_trajectory(sample) == analyze_trajectory(_points((0, 0), (10, 0), (20, 0)))


class TestIntervalStats:
    """Test timing regularity of the samples."""

    def test_regular_timestamps_are_uniform(self):
        sample = _points((0, 0, 0), (10, 0, 16), (20, 0, 32), (30, 0, 48), (40, 0, 64))
        summary = analyze_trajectory(sample)

        assert summary.interval_stats is not None
        assert summary.interval_stats.is_uniform is True

    def test_first_timestamp_zero_counts(self):
        sample = _points((0, 0, 0), (10, 0, 10), (20, 0, 40), (30, 0, 45), (40, 0, 100))
        summary = analyze_trajectory(sample)

        assert summary.interval_stats is not None
        assert summary.interval_stats.valid is True

    def test_missing_timestamp_skips_stats(self):
        sample = _points((0, 0, 0), (10, 0, 16), (20, 0), (30, 0, 48), (40, 0, 64))
        assert analyze_trajectory(sample).interval_stats is None

    def test_three_points_have_no_stats(self):
        sample = _points((0, 0, 0), (10, 0, 16), (20, 0, 32))
        assert analyze_trajectory(sample).interval_stats is None

    def test_to_dict_layout(self):
        data = analyze_trajectory(_points((0, 0), (10, 0), (20, 0))).to_dict()
        assert data == {
            "valid": True,
            "points": 3,
            "distance": 20,
            "smoothRatio": 1.0,
            "correctionRatio": 0.0,
            "intervalStats": None,
        }


class TestNonFiniteGeometry:
    """Test coordinates that overflow or are NaN."""

    def test_overflowing_path_length(self):
        summary = analyze_trajectory(_points((0, 0), (1e308, 1e308), (-1e308, 0)))

        assert summary.valid is True
        assert summary.distance == 0
        assert summary.smooth_ratio == 0.0
        assert summary.correction_ratio == 0.0

    def test_nan_coordinate(self):
        sample = [{"x": 0, "y": 0}, {"x": float("nan"), "y": 0}, {"x": 20, "y": 0}, {"x": 30, "y": 0}]
        summary = analyze_trajectory(sample)

        assert summary.valid is True
        assert summary.distance == 0
        assert summary.smooth_ratio == 0.0

    def test_infinite_timestamp(self):
        sample = _points((0, 0, 0), (10, 0, 16), (20, 0, float("inf")), (30, 0, 48), (40, 0, 64))
        assert analyze_trajectory(sample).interval_stats.valid is False
