"""
Shape pipeline - Second pass cutting shapes out of an already resized
derivative.

Input is <target_dir>/<stem>/<size>.jpeg|png as stored on a sink; output
is <target_dir>/<stem>/shapes/<shape>.png.
"""

import logging
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple, Union

from PIL import Image

from .config import RunContext
from .derivative_spec import ResizeMode
from .derivative_writer import DerivativeWriter, Encoder
from .exceptions import GeometryError, TransportError
from .geometry import SHAPES, cut_shape, square_crop
from .run_stats import RunStats
from .scale import Fixed, LockedHeight, LockedWidth, ScaleRef
from .sinks import ActiveSinks
from .source_loader import OutputFormat, PixelLayout, SourceDescriptor, load_source
from .target_size import TargetSize


logger = logging.getLogger(__name__)

SHAPES_DIR = 'shapes'


def shape_scale(width: int, height: int) -> ScaleRef:
    """Scale reference of a cropped shape."""
    if width == height:
        return Fixed(width, height)
    if width > height:
        return LockedWidth(width)
    return LockedHeight(height)


def shape_descriptor(base: SourceDescriptor, image: Image.Image) -> SourceDescriptor:
    """Fresh descriptor for a cropped shape image."""
    width, height = image.size
    return base.with_dimensions(width, height, shape_scale(width, height))


def find_resized(
    stem_dir: PurePosixPath,
    size: TargetSize,
    sinks: ActiveSinks
) -> Optional[Tuple[PurePosixPath, bytes]]:
    """
    Fetch the resized derivative feeding the shape pass.

    Tries <size>.jpeg then <size>.png on every sink in order.

    Returns:
        Tuple of (path, bytes), or None when no sink holds it
    """
    for extension in (OutputFormat.LOSSY.extension, OutputFormat.LOSSLESS.extension):
        path = stem_dir / f"{size.value}.{extension}"
        for sink in sinks:
            try:
                data = sink.read_bytes(path)
            except TransportError as e:
                logger.error(f"Failed to read {path} from {sink.name}: {e}")
                continue
            if data is not None:
                return path, data
        logger.debug(f"Skipping transform for {path} as it doesn't exist")
    return None


def transform_action(
    source: Union[str, Path],
    target_dir: Union[str, PurePosixPath],
    context: RunContext,
    sinks: ActiveSinks,
    writer: Optional[DerivativeWriter] = None
) -> RunStats:
    """
    Cut every shape out of one source's resized derivative.

    Args:
        source: Original source image path (only its stem is used)
        target_dir: Sink-relative directory the first pass wrote to
        context: Run context, transform_size selects the input derivative
        sinks: Sinks of this task
        writer: Derivative writer (default: new DerivativeWriter)

    Returns:
        RunStats for this source, empty when there is nothing to transform
    """
    writer = writer or DerivativeWriter()
    stats = RunStats()

    size = context.transform_size
    if size is None:
        return stats

    stem_dir = PurePosixPath(target_dir) / Path(source).stem
    found = find_resized(stem_dir, size, sinks)
    if found is None:
        return stats

    resized_path, data = found
    descriptor, image = load_source(
        Path(str(resized_path)), stem_dir, context.checksum_algorithm, data=data
    )

    # Everything below works on an RGBA square
    square = square_crop(image.convert('RGBA'))
    side = square.width
    base = replace(
        descriptor,
        width=side,
        height=side,
        scale=Fixed(side, side),
        target_path=stem_dir / SHAPES_DIR,
        target_format=OutputFormat.LOSSLESS,
        pixel_layout=PixelLayout.RGBA,
    )

    edge = context.px(size)
    for shape_id, make_mask in SHAPES.items():
        try:
            shape = cut_shape(square, make_mask(side))
        except GeometryError as e:
            stats.push(False, f"{base.target_file_path(shape_id)}: {e}")
            continue

        stats.extend(writer.resize_group(
            shape, shape_descriptor(base, shape), [(edge, shape_id)],
            ResizeMode.FIT, sinks, Encoder.LOSSLESS
        ))

    return stats
