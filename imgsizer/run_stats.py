"""
RunStats - Result accounting for a resize run.
"""

import time
from dataclasses import dataclass, field
from typing import List


@dataclass
class RunStats:
    """
    Statistics for a run, or for a single task before it is merged.

    Attributes:
        succeeded: Messages for derivatives written
        skipped: Messages for derivatives already up to date
        failed: Error messages for derivatives or sources that failed
        start_time: Start timestamp
    """
    succeeded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    def push(self, ok: bool, message: str) -> None:
        """Record the outcome of one derivative."""
        if ok:
            self.succeeded.append(message)
        else:
            self.failed.append(message)

    def extend(self, other: 'RunStats') -> None:
        """Append another instance's entries, keeping their order."""
        self.succeeded.extend(other.succeeded)
        self.skipped.extend(other.skipped)
        self.failed.extend(other.failed)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def completed_count(self) -> int:
        """Total recorded (succeeded + skipped + failed)."""
        return len(self.succeeded) + len(self.skipped) + len(self.failed)

    @property
    def rate_per_minute(self) -> float:
        """Derivatives written per minute."""
        if self.elapsed_seconds > 0:
            return len(self.succeeded) / self.elapsed_seconds * 60
        return 0.0
