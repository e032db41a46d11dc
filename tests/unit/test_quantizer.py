"""Unit tests for cache key quantization."""

import sys

import pytest

from offline_geocoder.quantizer import quantize


class TestQuantize:
    """Test coordinate -> cache key mapping."""

    def test_gorakhpur_key(self):
        """Test the documented example key."""
        assert quantize(26.7606, 83.3732) == "26.761,83.373"

    def test_deterministic(self):
        """Test repeated calls give the same key."""
        keys = {quantize(51.50735, -0.12776) for _ in range(10)}
        assert keys == {"51.507,-0.128"}

    def test_same_cell_same_key(self):
        """Test nearby points in one rounding cell share a key."""
        assert quantize(26.76061, 83.37321) == quantize(26.76064, 83.37324)

    def test_adjacent_cells_differ(self):
        """Test points in neighbouring cells get different keys."""
        assert quantize(26.7601, 83.3732) != quantize(26.7611, 83.3732)

    @pytest.mark.parametrize(
        ("lat", "lng", "expected"),
        [
            (27.0, 83.0, "27,83"),
            (26.76, 83.3, "26.76,83.3"),
            (0.0, 0.0, "0,0"),
            (-0.0001, 0.0001, "0,0"),
            (-33.86785, 151.20732, "-33.868,151.207"),
            (-0.5, -179.9996, "-0.5,-180"),
            (90.0, 180.0, "90,180"),
        ],
    )
    def test_canonical_formatting(self, lat, lng, expected):
        """Test keys carry no float noise, trailing zeros or negative zero."""
        assert quantize(lat, lng) == expected

    def test_half_rounds_up(self):
        """Test exact halves round towards positive infinity."""
        # 0.0625 * 1000 == 62.5 exactly in binary floating point
        assert quantize(0.0625, -0.0625) == "0.063,-0.062"

    def test_no_float_noise(self):
        """Test values whose float product is inexact still format cleanly."""
        key = quantize(1.0005 + 1e-9, 2.675)
        assert key == "1.001,2.675"
        assert all(len(part.split(".")[-1]) <= 3 for part in key.split(","))

    @pytest.mark.parametrize("value", [sys.float_info.max, -sys.float_info.max, 1e306])
    def test_extreme_finite_values(self, value):
        """Test magnitudes whose scaled value overflows a float still produce a key."""
        assert quantize(value, 0.0) == f"{int(value)},0"
        assert quantize(0.0, value) == f"0,{int(value)}"
