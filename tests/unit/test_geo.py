"""
Unit tests for the flat-earth projection and angle helpers
"""

import math
import os
import sys

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.geo import (
    FlatEarthTransformer,
    centroid,
    circular_mean_deg,
    euclidean_distance_2d,
    haversine_m,
    rotate_deg,
)
from common.utils import angle_diff_deg, wrap_deg


ORIGIN = (19.0613, 47.4740)


class TestFlatEarthTransformer:
    """Test cases for FlatEarthTransformer"""

    @pytest.mark.parametrize("handedness", ["neu", "nwu"])
    @pytest.mark.parametrize("orientation", [0.0, 30.0, 135.0, 270.0, -45.0])
    def test_round_trip_within_operating_radius(self, handedness, orientation):
        """Test to_geo(to_local(p)) reproduces p within 1e-6 degrees"""
        tr = FlatEarthTransformer(ORIGIN, orientation, handedness)
        rng = np.random.default_rng(42)
        for _ in range(50):
            # up to ~2 km from the origin
            p = (ORIGIN[0] + rng.uniform(-0.025, 0.025), ORIGIN[1] + rng.uniform(-0.018, 0.018))
            back = tr.to_geo(tr.to_local(p))
            assert back[0] == pytest.approx(p[0], abs=1e-6)
            assert back[1] == pytest.approx(p[1], abs=1e-6)

    def test_local_round_trip(self):
        """Test to_local(to_geo(xy)) reproduces xy"""
        tr = FlatEarthTransformer(ORIGIN, 72.5, "nwu")
        for xy in [(0.0, 0.0), (10.0, -3.0), (-250.0, 800.0)]:
            back = tr.to_local(tr.to_geo(xy))
            assert back[0] == pytest.approx(xy[0], abs=1e-6)
            assert back[1] == pytest.approx(xy[1], abs=1e-6)

    def test_origin_maps_to_zero(self):
        """Test the origin projects onto (0, 0)"""
        tr = FlatEarthTransformer(ORIGIN, 40.0, "neu")
        x, y = tr.to_local(ORIGIN)
        assert x == pytest.approx(0.0, abs=1e-9)
        assert y == pytest.approx(0.0, abs=1e-9)
        assert tr.to_geo((0.0, 0.0)) == pytest.approx(ORIGIN)

    def test_north_is_x_axis_at_zero_orientation(self):
        """Test a point due north lies on the positive X axis"""
        tr = FlatEarthTransformer(ORIGIN, 0.0, "neu")
        x, y = tr.to_local((ORIGIN[0], ORIGIN[1] + 0.001))
        assert x > 100.0
        assert y == pytest.approx(0.0, abs=1e-9)

    def test_handedness_flips_second_axis(self):
        """Test east is +Y for neu and -Y for nwu"""
        east = (ORIGIN[0] + 0.001, ORIGIN[1])
        _, y_neu = FlatEarthTransformer(ORIGIN, 0.0, "neu").to_local(east)
        _, y_nwu = FlatEarthTransformer(ORIGIN, 0.0, "nwu").to_local(east)
        assert y_neu > 0
        assert y_nwu == pytest.approx(-y_neu)

    @pytest.mark.parametrize("handedness", ["neu", "nwu"])
    def test_orientation_is_clockwise_from_north(self, handedness):
        """Test orientation 90 points the X axis east"""
        tr = FlatEarthTransformer(ORIGIN, 90.0, handedness)
        lon, lat = tr.to_geo((10.0, 0.0))
        assert lon > ORIGIN[0]
        assert lat == pytest.approx(ORIGIN[1], abs=1e-9)

    def test_scale_matches_great_circle_distance(self):
        """Test projected distances agree with haversine at short range"""
        tr = FlatEarthTransformer(ORIGIN, 0.0, "neu")
        p = (ORIGIN[0] + 0.002, ORIGIN[1] + 0.001)
        x, y = tr.to_local(p)
        d_flat = math.hypot(x, y)
        d_hav = haversine_m(ORIGIN[1], ORIGIN[0], p[1], p[0])
        assert d_flat == pytest.approx(d_hav, rel=5e-3)

    def test_accepts_numeric_string_orientation(self):
        """Test orientation stored as a string is accepted"""
        tr = FlatEarthTransformer(ORIGIN, "12.5", "nwu")
        assert tr.orientation_deg == pytest.approx(12.5)

    def test_requires_origin(self):
        """Test construction without an origin fails"""
        with pytest.raises(ValueError, match="origin"):
            FlatEarthTransformer(None, 0.0, "nwu")

    def test_rejects_unknown_handedness(self):
        """Test unknown axis convention fails"""
        with pytest.raises(ValueError, match="coordinate system type"):
            FlatEarthTransformer(ORIGIN, 0.0, "enu")

    @pytest.mark.parametrize("bad", ["north", float("nan"), float("inf"), None])
    def test_rejects_invalid_orientation(self, bad):
        """Test non-numeric or non-finite orientation fails"""
        with pytest.raises(ValueError, match="orientation"):
            FlatEarthTransformer(ORIGIN, bad, "nwu")

    def test_frame_rotation_sign(self):
        """Test heading changes map to opposite in-frame rotations for neu/nwu"""
        assert FlatEarthTransformer(ORIGIN, 0.0, "neu").frame_rotation_deg(15.0) == 15.0
        assert FlatEarthTransformer(ORIGIN, 0.0, "nwu").frame_rotation_deg(15.0) == -15.0


class TestAngleHelpers:
    """Test cases for circular statistics and vector helpers"""

    def test_circular_mean_wraps_around_north(self):
        """Test mean of 350 and 10 is north, not south"""
        mean = circular_mean_deg([350.0, 10.0])
        assert abs(angle_diff_deg(mean, 0.0)) < 1e-9

    def test_circular_mean_skips_unknown_headings(self):
        """Test None headings are ignored"""
        assert circular_mean_deg([None, 90.0, None]) == pytest.approx(90.0)

    def test_circular_mean_without_headings_is_zero(self):
        """Test no usable heading yields 0"""
        assert circular_mean_deg([]) == 0.0
        assert circular_mean_deg([None, None]) == 0.0

    def test_circular_mean_range(self):
        """Test result lies in [0, 360)"""
        mean = circular_mean_deg([260.0, 280.0])
        assert mean == pytest.approx(270.0)

    def test_rotate_deg(self):
        """Test counter-clockwise rotation"""
        x, y = rotate_deg((1.0, 0.0), 90.0)
        assert x == pytest.approx(0.0, abs=1e-12)
        assert y == pytest.approx(1.0)

    def test_centroid(self):
        """Test arithmetic mean of points and empty input"""
        assert centroid([(0, 0), (10, 0), (0, 10)]) == pytest.approx((10 / 3, 10 / 3))
        assert centroid([]) == (0.0, 0.0)

    def test_euclidean_distance(self):
        assert euclidean_distance_2d((0, 0), (3, 4)) == pytest.approx(5.0)

    def test_wrap_and_diff(self):
        """Test angle wrapping and signed difference"""
        assert wrap_deg(-30.0) == pytest.approx(330.0)
        assert wrap_deg(725.0) == pytest.approx(5.0)
        assert angle_diff_deg(5.0, 355.0) == pytest.approx(10.0)
        assert angle_diff_deg(355.0, 5.0) == pytest.approx(-10.0)
