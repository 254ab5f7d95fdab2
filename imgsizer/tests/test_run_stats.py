"""Tests for RunStats class."""

import time

from imgsizer.run_stats import RunStats


class TestRunStats:
    """Tests for RunStats class."""

    def test_default_values(self):
        """Test default values."""
        stats = RunStats()

        assert stats.succeeded == []
        assert stats.skipped == []
        assert stats.failed == []
        assert stats.completed_count == 0

    def test_push(self):
        """Test outcomes land in the right list."""
        stats = RunStats()
        stats.push(True, 'written')
        stats.push(False, 'broken')

        assert stats.succeeded == ['written']
        assert stats.failed == ['broken']

    def test_extend_keeps_order(self):
        """Test merging appends in order."""
        first = RunStats(succeeded=['a'], skipped=['s1'])
        second = RunStats(succeeded=['b'], skipped=['s2'], failed=['f'])

        first.extend(second)

        assert first.succeeded == ['a', 'b']
        assert first.skipped == ['s1', 's2']
        assert first.failed == ['f']
        assert first.completed_count == 5

    def test_elapsed_seconds(self):
        """Test elapsed time calculation."""
        stats = RunStats(start_time=time.time() - 10)
        assert 9.9 < stats.elapsed_seconds < 11

    def test_rate_per_minute(self):
        """Test rate calculation."""
        stats = RunStats(succeeded=['x'] * 60, start_time=time.time() - 60)
        assert 55 < stats.rate_per_minute < 65
