"""
DerivativeWriter - Resizes, encodes and persists derivatives.
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageOps

from .dedup import partition_resizables
from .derivative_spec import DerivativeSpec, ResizeMode, build_specs
from .exceptions import DerivativeError, TransportError
from .run_stats import RunStats
from .scale import resolve, resolve_square
from .sinks import ActiveSinks
from .source_loader import OutputFormat, PixelLayout, SourceDescriptor


class Encoder(Enum):
    """Encoders a derivative can be written with."""
    LOSSLESS = 'lossless'
    LOSSLESS_GRAY = 'lossless-gray'
    LOSSY = 'lossy'
    LOSSY_GRAY = 'lossy-gray'

    @classmethod
    def for_descriptor(cls, descriptor: SourceDescriptor) -> 'Encoder':
        """Pick the encoder matching a descriptor's format and layout."""
        gray = descriptor.pixel_layout.channels < 3
        if descriptor.target_format is OutputFormat.LOSSLESS:
            return cls.LOSSLESS_GRAY if gray else cls.LOSSLESS
        return cls.LOSSY_GRAY if gray else cls.LOSSY

    @property
    def content_type(self) -> str:
        if self in (Encoder.LOSSLESS, Encoder.LOSSLESS_GRAY):
            return 'image/png'
        return 'image/jpeg'


class DerivativeWriter:
    """
    Produces derivatives from a decoded source image using Pillow.
    """

    def __init__(
        self,
        quality: int = 85,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize derivative writer.

        Args:
            quality: JPEG quality for lossy output (default: 85)
            logger: Optional logger instance
        """
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

    def dimensions(
        self,
        descriptor: SourceDescriptor,
        spec: DerivativeSpec,
        mode: ResizeMode
    ) -> Tuple[int, int]:
        """Destination dimensions of a derivative."""
        if mode is ResizeMode.CROP:
            return resolve_square(descriptor.width, descriptor.height, spec.edge)
        return resolve(descriptor.scale, descriptor.width, descriptor.height, spec.edge)

    def resize(
        self,
        image: Image.Image,
        width: int,
        height: int,
        mode: ResizeMode,
        layout: PixelLayout
    ) -> Image.Image:
        """
        Resize into a destination buffer of the given size and layout.

        CROP center-crops the source to the destination aspect ratio
        before scaling; FIT scales the whole source.
        """
        if width <= 0 or height <= 0 or image.width <= 0 or image.height <= 0:
            raise DerivativeError(
                f"Can't resize {image.width}x{image.height} image to {width}x{height}"
            )

        try:
            if mode is ResizeMode.CROP:
                resized = ImageOps.fit(
                    image, (width, height),
                    method=Image.Resampling.LANCZOS,
                    centering=(0.5, 0.5)
                )
            else:
                resized = image.resize((width, height), Image.Resampling.LANCZOS)
        except (ValueError, OSError) as e:
            raise DerivativeError(f"Failed to resize image to {width}x{height}: {e}") from e

        if resized.mode != layout.value:
            resized = resized.convert(layout.value)
        return resized

    def encode(self, image: Image.Image, encoder: Encoder) -> bytes:
        """Encode a pixel buffer to bytes."""
        output = io.BytesIO()

        try:
            if encoder is Encoder.LOSSLESS:
                image.convert('RGBA').save(output, format='PNG', optimize=True)
            elif encoder is Encoder.LOSSLESS_GRAY:
                image.convert('LA').save(output, format='PNG', optimize=True)
            elif encoder is Encoder.LOSSY:
                image.convert('RGB').save(output, format='JPEG', quality=self.quality, optimize=True)
            elif encoder is Encoder.LOSSY_GRAY:
                image.convert('L').save(output, format='JPEG', quality=self.quality, optimize=True)
            else:
                raise DerivativeError(f"Unknown encoder: {encoder!r}")
        except (ValueError, OSError) as e:
            raise DerivativeError(f"Failed to encode {encoder.value} image: {e}") from e

        return output.getvalue()

    def write(
        self,
        image: Image.Image,
        spec: DerivativeSpec,
        mode: ResizeMode,
        descriptor: SourceDescriptor,
        encoder: Encoder,
        sinks: ActiveSinks
    ) -> str:
        """
        Resize, encode and persist one derivative to every sink.

        A failing sink does not stop the remaining ones, and sinks that
        were already written are left as they are.

        Returns:
            Success message

        Raises:
            DerivativeError: Resizing or encoding failed
            TransportError: At least one sink failed
        """
        width, height = self.dimensions(descriptor, spec, mode)

        self.logger.debug(
            f"Resizing input image {spec.derivative_id.upper()} to path {spec.output_path} "
            f"to width: {width} and height: {height}..."
        )

        try:
            resized = self.resize(image, width, height, mode, descriptor.pixel_layout)
            data = self.encode(resized, encoder)
        except DerivativeError as e:
            raise DerivativeError(f"{spec.output_path}: {e}") from e

        written = []
        errors = []
        for sink in sinks:
            try:
                sink.write(spec.output_path, data, encoder.content_type)
                sink.write_checksum(spec.output_path, descriptor.checksum)
                written.append(sink.name)
            except TransportError as e:
                errors.append(f"{sink.name}: {e}")

        if errors:
            done = f" (written to {', '.join(written)})" if written else ""
            raise TransportError(f"{spec.output_path}: {'; '.join(errors)}{done}")

        return (
            f"Resized image {spec.output_path} / {spec.derivative_id} "
            f"saved successfully to {', '.join(written) or 'no sink'}"
        )

    def resize_group(
        self,
        image: Image.Image,
        descriptor: SourceDescriptor,
        items: Sequence[Tuple[int, str]],
        mode: ResizeMode,
        sinks: ActiveSinks,
        encoder: Optional[Encoder] = None
    ) -> RunStats:
        """
        Produce a group of derivatives sharing source, mode and encoder.

        Derivatives already stored with the source checksum are skipped;
        the rest are written concurrently, each write with its own copy of
        the sinks, and each outcome is recorded.

        Args:
            image: Source pixels in the descriptor's layout
            descriptor: Source descriptor
            items: (edge, derivative id) pairs
            mode: Resize mode
            sinks: Active sinks of this task
            encoder: Encoder, chosen from the descriptor when None

        Returns:
            RunStats for this group
        """
        stats = RunStats()
        encoder = encoder or Encoder.for_descriptor(descriptor)
        specs = build_specs(descriptor, items)

        surviving, duplicates = partition_resizables(descriptor.checksum, specs, sinks, self.logger)

        for spec in duplicates:
            stats.skipped.append(f"Image {spec.output_path} already up to date")

        if not surviving:
            self.logger.debug(f"Image {descriptor.source_path} already resized to {descriptor.target_path}")
            return stats

        with ThreadPoolExecutor(max_workers=len(surviving)) as executor:
            futures = {
                executor.submit(self.write, image, spec, mode, descriptor, encoder, sinks.clone()): spec
                for spec in surviving
            }
            for future in as_completed(futures):
                spec = futures[future]
                try:
                    stats.push(True, future.result())
                except (DerivativeError, TransportError) as e:
                    self.logger.debug(f"Derivative failed: {e}")
                    stats.push(False, str(e))
                except Exception as e:
                    self.logger.exception(f"Unexpected error writing {spec.output_path}")
                    stats.push(False, f"{spec.output_path}: {e}")

        return stats
