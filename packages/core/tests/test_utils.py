"""Tests for utility functions."""

import pytest

from packages.core.utils import (
    clamp,
    ensure_dir,
    format_duration,
    frame_count,
    parse_color,
    safe_filename,
    sample_count,
    seconds_to_sample,
)


class TestClamp:
    """Tests for clamp."""

    def test_within_range(self):
        assert clamp(5, 0, 10) == 5

    def test_below_and_above(self):
        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10


class TestFrameCount:
    """Tests for frame_count."""

    def test_whole_seconds(self):
        """Test ten seconds at 30 fps."""
        assert frame_count(10.0, 30) == 300

    def test_partial_frame_rounds_up(self):
        """Test a partial frame still needs a frame."""
        assert frame_count(0.01, 30) == 1
        assert frame_count(1.01, 30) == 31

    def test_float_noise(self):
        """Test products like 10.000000000000002 * 30 do not add a frame."""
        assert frame_count(0.1 * 3 * 10 / 3, 30) == 30

    def test_non_positive(self):
        """Test zero or negative inputs give no frames."""
        assert frame_count(0, 30) == 0
        assert frame_count(-1, 30) == 0
        assert frame_count(5, 0) == 0


class TestSampleCount:
    """Tests for sample_count and seconds_to_sample."""

    def test_ceil(self):
        assert sample_count(1.0, 48000) == 48000
        assert sample_count(0.5 / 48000, 48000) == 1

    def test_zero(self):
        assert sample_count(0, 48000) == 0

    def test_seconds_to_sample(self):
        assert seconds_to_sample(1.5, 48000) == 72000
        assert seconds_to_sample(0, 48000) == 0


class TestParseColor:
    """Tests for parse_color."""

    @pytest.mark.parametrize("value,expected", [
        ("#000000", (0, 0, 0)),
        ("#ffffff", (255, 255, 255)),
        ("#FF8000", (255, 128, 0)),
        ("#f80", (255, 136, 0)),
        ("102030", (16, 32, 48)),
    ])
    def test_valid(self, value, expected):
        assert parse_color(value) == expected

    @pytest.mark.parametrize("value", ["", "#12", "#gggggg", "red"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_color(value)


class TestSafeFilename:
    """Tests for safe_filename."""

    def test_plain_name_unchanged(self):
        assert safe_filename("my-export_1") == "my-export_1"

    def test_replaces_unsafe_characters(self):
        assert safe_filename("a/b:c") == "a_b_c"

    def test_fallback_when_empty(self):
        assert safe_filename("   ") == "localcut-export"
        assert safe_filename("..", fallback="out") == "out"


class TestFormatDuration:
    """Tests for format_duration."""

    def test_seconds(self):
        assert format_duration(1.5) == "1.5s"

    def test_minutes(self):
        assert format_duration(150) == "2m 30s"


class TestEnsureDir:
    """Tests for ensure_dir."""

    def test_creates_nested(self, tmp_path):
        path = tmp_path / "a" / "b"

        assert ensure_dir(path) == path
        assert path.is_dir()
