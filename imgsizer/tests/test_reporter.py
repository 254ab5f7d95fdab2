"""Tests for Reporter class."""

import io
import logging
import sys

from imgsizer.reporter import Reporter
from imgsizer.run_stats import RunStats


class TestReporter:
    """Tests for Reporter class."""

    def test_init_default_output(self):
        """Test default output is stdout."""
        reporter = Reporter()
        assert reporter.output == sys.stdout

    def test_format_duration(self):
        """Test duration formatting."""
        reporter = Reporter()

        assert reporter._format_duration(30) == '30.0 seconds'
        assert reporter._format_duration(90) == '1.5 minutes'
        assert reporter._format_duration(3600) == '1.0 hours'

    def test_log_entries(self, caplog):
        """Test failures log at ERROR and skips at WARNING."""
        stats = RunStats(skipped=['up to date'], failed=['broken'])

        with caplog.at_level(logging.INFO):
            Reporter(output=io.StringIO()).log_entries(stats)

        levels = {record.getMessage(): record.levelno for record in caplog.records}
        assert levels['Resizer failed for 1 files'] == logging.ERROR
        assert levels['0: broken'] == logging.ERROR
        assert levels['Resizer skipped 1 images'] == logging.WARNING
        assert levels['0: up to date'] == logging.WARNING

    def test_log_entries_clean_run(self, caplog):
        """Test nothing is logged for a clean run."""
        with caplog.at_level(logging.INFO):
            Reporter(output=io.StringIO()).log_entries(RunStats(succeeded=['a']))

        assert caplog.records == []

    def test_report_summary(self):
        """Test summary report generation."""
        output = io.StringIO()
        stats = RunStats(succeeded=['a', 'b'], skipped=['c'], failed=['d'])

        Reporter(output=output).report_summary(stats, queue_len=3)

        result = output.getvalue()
        assert 'RESIZE SUMMARY' in result
        assert 'Source images:     3' in result
        assert 'Derivatives saved: 2' in result
        assert 'Failed:            1' in result

    def test_report_all_up_to_date(self):
        """Test the up to date notice."""
        output = io.StringIO()

        Reporter(output=output).report(RunStats(skipped=['a']), queue_len=1)

        assert 'already up to date' in output.getvalue()
