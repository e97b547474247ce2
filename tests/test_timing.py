"""
Tests for duration formatting and estimates
"""
import pytest

from substack_kg.utils.timing import estimate_remaining_time, format_duration


class TestFormatDuration:
    """Test format_duration"""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (45.9, "45s"),
        (192, "3m 12s"),
        (3900, "1h 5m"),
        (-5, "0s"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestEstimateRemainingTime:
    """Test estimate_remaining_time"""

    def test_linear_estimate(self):
        assert estimate_remaining_time(60, processed=2, total=6) == "2m 0s"

    def test_nothing_processed(self):
        assert estimate_remaining_time(10, processed=0, total=6) is None

    def test_finished(self):
        assert estimate_remaining_time(60, processed=6, total=6) == "0s"
