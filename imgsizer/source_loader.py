"""
Source loading - Decodes source images into descriptors and pixel data.
"""

import hashlib
import io
import logging
import zlib
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .exceptions import SourceUnreadable, UnsupportedFormat
from .scale import ScaleRef, scale_ref_for


logger = logging.getLogger(__name__)


class OutputFormat(Enum):
    """Output format of a source's derivatives."""
    LOSSLESS = 'png'
    LOSSY = 'jpeg'

    @property
    def extension(self) -> str:
        return self.value

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"


class PixelLayout(Enum):
    """Channel layout of a pixel buffer, valued by its Pillow mode."""
    RGBA = 'RGBA'
    RGB = 'RGB'
    LA = 'LA'
    L = 'L'

    @property
    def channels(self) -> int:
        return len(self.value)

    @property
    def has_alpha(self) -> bool:
        return self.value.endswith('A')


# Formats that can carry transparency export as PNG, the rest as JPEG
LOSSLESS_SOURCE_FORMATS = {'PNG', 'GIF', 'WEBP', 'BMP', 'TIFF'}
LOSSY_SOURCE_FORMATS = {'JPEG', 'MPO', 'JPEG2000', 'PPM', 'TGA', 'PCX'}


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Canonical description of one decoded source image.

    Attributes:
        width: Pixel width (positive)
        height: Pixel height (positive)
        scale: Scale reference used to resolve derivative sizes
        source_path: Path of the source file
        target_path: Sink-relative directory holding the derivatives
        target_name: Source file name without extension
        target_format: Output format of the derivatives
        pixel_layout: Channel layout of the pixel data
        checksum: Content checksum of the decoded pixels
    """
    width: int
    height: int
    scale: ScaleRef
    source_path: Path
    target_path: PurePosixPath
    target_name: str
    target_format: OutputFormat
    pixel_layout: PixelLayout
    checksum: str

    def __post_init__(self):
        if self.width <= 0:
            raise SourceUnreadable(f"{self.source_path}: width can't be zero")
        if self.height <= 0:
            raise SourceUnreadable(f"{self.source_path}: height can't be zero")

    def with_dimensions(self, width: int, height: int, scale: ScaleRef) -> 'SourceDescriptor':
        """Return a copy describing a cropped image."""
        return replace(self, width=width, height=height, scale=scale)

    def grayscale(self) -> 'SourceDescriptor':
        """Return a copy describing the desaturated branch under gray/."""
        layout = PixelLayout.LA if self.pixel_layout.has_alpha else PixelLayout.L
        return replace(self, target_path=self.target_path / 'gray', pixel_layout=layout)

    def target_file_path(self, derivative_id: str) -> PurePosixPath:
        return self.target_path / f"{derivative_id}.{self.target_format.extension}"


def compute_checksum(data: bytes, algorithm: str = 'adler32') -> str:
    """
    Checksum raw pixel bytes.

    Args:
        data: Decoded pixel bytes
        algorithm: 'adler32' (decimal string) or 'sha256' (hex digest)
    """
    if algorithm == 'adler32':
        return str(zlib.adler32(data))
    if algorithm == 'sha256':
        return hashlib.sha256(data).hexdigest()
    raise ValueError(f"Unknown checksum algorithm: {algorithm!r}")


def classify_format(image_format: Optional[str]) -> Tuple[OutputFormat, PixelLayout]:
    """Map a decoded Pillow format to the derivative format and layout."""
    if image_format in LOSSLESS_SOURCE_FORMATS:
        return OutputFormat.LOSSLESS, PixelLayout.RGBA
    if image_format in LOSSY_SOURCE_FORMATS:
        return OutputFormat.LOSSY, PixelLayout.RGB
    raise UnsupportedFormat(f"Unsupported image format: {image_format}")


def load_source(
    source: Union[str, Path],
    target_dir: Union[str, PurePosixPath],
    checksum_algorithm: str = 'adler32',
    data: Optional[bytes] = None,
) -> Tuple[SourceDescriptor, Image.Image]:
    """
    Decode a source image and describe it.

    Args:
        source: Path of the source image
        target_dir: Sink-relative directory for this source's derivatives
        checksum_algorithm: Checksum algorithm for dedup
        data: Already fetched image bytes; read from source when None

    Returns:
        Tuple of (descriptor, image converted to the descriptor's layout)
    """
    source = Path(source)

    if data is None and not source.is_file():
        raise SourceUnreadable(f"{source}: not a file")

    try:
        with Image.open(io.BytesIO(data) if data is not None else source) as img:
            img.load()
            image_format = img.format
            target_format, layout = classify_format(image_format)
            converted = img.convert(layout.value)
    except UnsupportedFormat as e:
        raise UnsupportedFormat(f"{source}: {e}") from e
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise SourceUnreadable(f"{source}: Source image failed to load: {e}") from e

    width, height = converted.size
    checksum = compute_checksum(converted.tobytes(), checksum_algorithm)

    descriptor = SourceDescriptor(
        width=width,
        height=height,
        scale=scale_ref_for(width, height),
        source_path=source,
        target_path=PurePosixPath(target_dir) / source.stem,
        target_name=source.stem,
        target_format=target_format,
        pixel_layout=layout,
        checksum=checksum,
    )

    logger.debug(
        f"Loaded {image_format} image {source} ({width}x{height}), "
        f"exporting as {target_format.extension}"
    )

    return descriptor, converted
