"""
Resize action - Produces the fixed derivative catalog of one source image.

Catalog per source:
    og, xl, lg      scaled to fit, source aspect ratio kept
    md, sm, xs      center-cropped squares
    gray/md|sm|xs   desaturated center-cropped squares
"""

import logging
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from .config import RunContext
from .derivative_spec import ResizeMode
from .derivative_writer import DerivativeWriter, Encoder
from .run_stats import RunStats
from .sinks import ActiveSinks
from .source_loader import load_source
from .target_size import TargetSize


logger = logging.getLogger(__name__)

FIT_SIZES = (TargetSize.ORIGINAL, TargetSize.XL, TargetSize.LG)
CROP_SIZES = (TargetSize.MD, TargetSize.SM, TargetSize.XS)


def resize_action(
    source: Union[str, Path],
    target_dir: Union[str, PurePosixPath],
    context: RunContext,
    sinks: ActiveSinks,
    writer: Optional[DerivativeWriter] = None
) -> RunStats:
    """
    Decode one source and write every derivative that is not up to date.

    Args:
        source: Source image path
        target_dir: Sink-relative directory; derivatives land in <target_dir>/<stem>/
        context: Run context
        sinks: Sinks of this task
        writer: Derivative writer (default: new DerivativeWriter)

    Returns:
        RunStats for this source

    Raises:
        SourceUnreadable: Source can't be read or decoded
        UnsupportedFormat: Source format has no output mapping
    """
    writer = writer or DerivativeWriter()
    stats = RunStats()

    descriptor, image = load_source(source, target_dir, context.checksum_algorithm)

    fit_items = [(context.px(size), size.value) for size in FIT_SIZES]
    crop_items = [(context.px(size), size.value) for size in CROP_SIZES]

    stats.extend(writer.resize_group(image, descriptor, fit_items, ResizeMode.FIT, sinks))
    stats.extend(writer.resize_group(image, descriptor, crop_items, ResizeMode.CROP, sinks))

    gray_descriptor = descriptor.grayscale()
    gray_image = image.convert(gray_descriptor.pixel_layout.value)

    stats.extend(writer.resize_group(
        gray_image, gray_descriptor, crop_items, ResizeMode.CROP, sinks,
        Encoder.for_descriptor(gray_descriptor)
    ))

    logger.debug(
        f"{descriptor.source_path}: {len(stats.succeeded)} written, "
        f"{len(stats.skipped)} up to date, {len(stats.failed)} failed"
    )

    return stats
