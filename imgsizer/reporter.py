"""
Reporter - End-of-run report of a resize run.
"""

import logging
import sys
from typing import Optional, TextIO

from .run_stats import RunStats


class Reporter:
    """
    Logs failures and skips and prints a run summary.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def log_entries(self, stats: RunStats) -> None:
        """Failures at ERROR and skips at WARNING, one line per entry."""
        if stats.failed:
            self.logger.error(f"Resizer failed for {len(stats.failed)} files")
            for i, message in enumerate(stats.failed):
                self.logger.error(f"{i}: {message}")

        if stats.skipped:
            self.logger.warning(f"Resizer skipped {len(stats.skipped)} images")
            for i, message in enumerate(stats.skipped):
                self.logger.warning(f"{i}: {message}")

    def report_summary(self, stats: RunStats, queue_len: int) -> None:
        """
        Print the run summary.

        Args:
            stats: Run-wide statistics
            queue_len: Number of source images in the queue
        """
        self._print("=" * 70)
        self._print("RESIZE SUMMARY")
        self._print("=" * 70)
        self._print()
        self._print(f"  Source images:     {queue_len:,}")
        self._print(f"  Derivatives saved: {len(stats.succeeded):,}")
        self._print(f"  Up to date:        {len(stats.skipped):,}")
        self._print(f"  Failed:            {len(stats.failed):,}")
        self._print(f"  Duration:          {self._format_duration(stats.elapsed_seconds)}")
        self._print()

        if not stats.failed and not stats.succeeded and stats.skipped:
            self._print("✓ All derivatives already up to date!")
            self._print()

    def report(self, stats: RunStats, queue_len: int) -> None:
        """Log the entries, then print the summary."""
        self.log_entries(stats)
        self.report_summary(stats, queue_len)
