"""
Orchestrator - Runs the resize and shape passes over the queue in chunks.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional, Sequence

from .actions import resize_action
from .config import RunContext
from .derivative_writer import DerivativeWriter
from .exceptions import ImgsizerError, JoinFailure
from .run_progress import RunProgress
from .run_stats import RunStats
from .scanner import QueueItem
from .shapes import transform_action
from .sinks import ActiveSinks


# unit(source, target_dir, context, sinks, writer) -> RunStats
Unit = Callable[..., RunStats]


def chunked(queue: Sequence[QueueItem], size: int) -> Iterator[List[QueueItem]]:
    """Split the queue into consecutive chunks of at most size items."""
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got {size}")
    for start in range(0, len(queue), size):
        yield list(queue[start:start + size])


class Orchestrator:
    """
    Fans out one task per queue item, a chunk at a time.

    Every task of a chunk is joined before the next chunk starts. Each task
    gets its own copy of the sinks and its own RunStats, merged here after
    the join.
    """

    def __init__(
        self,
        context: RunContext,
        sinks: ActiveSinks,
        writer: Optional[DerivativeWriter] = None,
        unit: Unit = resize_action,
        shape_unit: Unit = transform_action,
        progress: Optional[RunProgress] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize orchestrator.

        Args:
            context: Run context
            sinks: Sinks enabled for the run
            writer: Derivative writer shared by all tasks
            unit: Work done per item in the resize pass
            shape_unit: Work done per item in the shape pass
            progress: Optional progress hook
            logger: Optional logger instance
        """
        self.context = context
        self.sinks = sinks
        self.writer = writer or DerivativeWriter()
        self.unit = unit
        self.shape_unit = shape_unit
        self.progress = progress
        self.logger = logger or logging.getLogger(__name__)

    def run(self, queue: Sequence[QueueItem]) -> RunStats:
        """
        Resize pass over the queue.

        Raises:
            JoinFailure: A task could not be joined
        """
        self.logger.info(
            f"Processing resize queue of {len(queue)} files in chunks of "
            f"{self.context.chunk_size} images concurrently..."
        )
        return self._run_chunks(queue, self.unit)

    def run_shapes(self, queue: Sequence[QueueItem]) -> RunStats:
        """
        Shape pass over the queue, against the derivatives of the resize pass.

        Raises:
            JoinFailure: A task could not be joined
        """
        if self.context.transform_size is None:
            self.logger.info("Transform variant is none, skipping shapes")
            return RunStats()

        self.logger.info(
            f"Processing transform queue of {len(queue)} files in chunks of "
            f"{self.context.chunk_size} images concurrently..."
        )
        return self._run_chunks(queue, self.shape_unit)

    def run_all(self, queue: Sequence[QueueItem], shapes: bool = True) -> RunStats:
        """Resize pass followed by the shape pass."""
        stats = self.run(queue)
        if shapes:
            stats.extend(self.run_shapes(queue))
        return stats

    def _run_chunks(self, queue: Sequence[QueueItem], unit: Unit) -> RunStats:
        stats = RunStats()

        for index, chunk in enumerate(chunked(queue, self.context.chunk_size)):
            if self.progress:
                self.progress.on_chunk_started(index, chunk)

            chunk_stats = RunStats()

            with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
                futures = [
                    executor.submit(self._task, unit, item, self.sinks.clone())
                    for item in chunk
                ]
                # Barrier: every future of the chunk is joined here
                for future in futures:
                    try:
                        result = future.result()
                    except Exception as e:
                        raise JoinFailure(f"Failed to join concurrently running resizer tasks: {e}") from e
                    chunk_stats.extend(result)

            stats.extend(chunk_stats)

            if self.progress:
                self.progress.on_chunk_joined(index, chunk_stats)

        return stats

    def _task(self, unit: Unit, item: QueueItem, sinks: ActiveSinks) -> RunStats:
        """Run the unit for one item, turning its errors into a failed entry."""
        try:
            return unit(item.source, item.target_dir, self.context, sinks, self.writer)
        except ImgsizerError as e:
            message = str(e)
            if not message.startswith(str(item.source)):
                message = f"{item.source}: {message}"
            self.logger.debug(f"Task failed: {message}")
        except Exception as e:
            self.logger.exception(f"Unexpected error processing {item.source}")
            message = f"{item.source}: {e}"

        stats = RunStats()
        stats.push(False, message)
        return stats
