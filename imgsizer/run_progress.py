"""
RunProgress - Tracks and displays chunk progress during a run.
"""

import logging
from typing import Optional, Sequence

from .run_stats import RunStats


class RunProgress:
    """
    Progress hook for the orchestrator with optional per-derivative output.
    """

    def __init__(
        self,
        show_files: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print every derivative outcome as chunks join
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.logger = logger or logging.getLogger(__name__)
        self.totals = RunStats()

    def on_chunk_started(self, index: int, items: Sequence) -> None:
        """Called before the tasks of a chunk are submitted."""
        sources = ", ".join(str(item.source) for item in items)
        self.logger.debug(f"Proceed to chunk {index + 1} of {len(items)} source images [{sources}]")

    def on_chunk_joined(self, index: int, stats: RunStats) -> None:
        """
        Called once every task of a chunk has joined.

        Args:
            index: Zero-based chunk index
            stats: Merged statistics of this chunk only
        """
        self.totals.extend(stats)

        if self.show_files:
            for message in stats.succeeded:
                print(f"  [OK] {message}")
            for message in stats.skipped:
                print(f"  [SKIP] {message}")
            for message in stats.failed:
                print(f"  [ERROR] {message}")

        self.logger.info(
            f"Chunk {index + 1} done: {len(self.totals.succeeded)} written, "
            f"{len(self.totals.skipped)} up to date, {len(self.totals.failed)} failed "
            f"({self.totals.rate_per_minute:.1f}/min)"
        )
