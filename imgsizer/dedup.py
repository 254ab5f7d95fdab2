"""
Dedup - Decides which derivatives still need to be produced.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .derivative_spec import DerivativeSpec
from .exceptions import TransportError
from .sinks import ActiveSinks, Sink


logger = logging.getLogger(__name__)


def is_duplicate(
    sink: Sink,
    spec: DerivativeSpec,
    checksum: str,
    log: Optional[logging.Logger] = None
) -> bool:
    """
    True when the sink already holds this derivative with a matching checksum.

    A failed lookup counts as "not a duplicate" so the derivative gets
    regenerated rather than silently left stale.
    """
    log = log or logger

    try:
        stored = sink.read_checksum(spec.output_path)
    except TransportError as e:
        log.error(f"Duplicate check failed on {sink.name} for {spec.output_path}: {e}")
        return False

    if stored is None:
        return False

    if stored != checksum:
        log.info(f"{spec.output_path} has changed on {sink.name}, overwrite...")
        return False

    log.debug(f"{spec.output_path} already exists on {sink.name} with the same checksum")
    return True


def partition_resizables(
    checksum: str,
    candidates: Sequence[DerivativeSpec],
    sinks: ActiveSinks,
    log: Optional[logging.Logger] = None
) -> Tuple[List[DerivativeSpec], List[DerivativeSpec]]:
    """
    Split candidates into (surviving, duplicates).

    A candidate is a duplicate only when every active sink holds it with
    the same checksum. With no active sink nothing is a duplicate.
    """
    surviving = []
    duplicates = []

    for spec in candidates:
        if len(sinks) > 0 and all(is_duplicate(sink, spec, checksum, log) for sink in sinks):
            duplicates.append(spec)
        else:
            surviving.append(spec)

    return surviving, duplicates


def filter_resizables(
    checksum: str,
    candidates: Sequence[DerivativeSpec],
    sinks: ActiveSinks,
    log: Optional[logging.Logger] = None
) -> List[DerivativeSpec]:
    """Candidates that still need to be resized and written."""
    surviving, _ = partition_resizables(checksum, candidates, sinks, log)
    return surviving
