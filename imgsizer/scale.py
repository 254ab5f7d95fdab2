"""
Scale references and the resolver that turns a requested edge length into
concrete destination dimensions.
"""

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class LockedWidth:
    """Landscape source: the width is the reference edge."""
    edge: int


@dataclass(frozen=True)
class LockedHeight:
    """Portrait or square source: the height is the reference edge."""
    edge: int


@dataclass(frozen=True)
class Fixed:
    """Square output bounded by the given dimensions."""
    width: int
    height: int


ScaleRef = Union[LockedWidth, LockedHeight, Fixed]


def scale_ref_for(width: int, height: int) -> ScaleRef:
    """Pick the scale reference of a freshly loaded source."""
    if width > height:
        return LockedWidth(width)
    return LockedHeight(height)


def resolve(scale: ScaleRef, width: int, height: int, requested: int) -> Tuple[int, int]:
    """
    Resolve destination dimensions for a requested edge length.

    The locked variants never upscale: a request above the locked edge
    returns the original dimensions. Below it, the moving edge is computed
    first and the locked edge is derived back from it with integer
    division, capped at the request. The moving edge is clamped to one
    pixel before the locked edge is derived. This two-step rule keeps the
    rounding of earlier runs so stored derivatives stay comparable; it is
    reproducible, not exact.

    Args:
        scale: Scale reference of the source
        width: Source width in pixels
        height: Source height in pixels
        requested: Requested edge length in pixels (must be positive)

    Returns:
        Tuple of (width, height), both at least 1
    """
    if requested <= 0:
        raise ValueError(f"Requested edge must be positive, got {requested}")

    if isinstance(scale, LockedWidth):
        if requested > scale.edge:
            return width, height
        h = max(requested * height // scale.edge, 1)
        w = max(min(h * scale.edge // height, requested), 1)
        return w, h

    if isinstance(scale, LockedHeight):
        if requested > scale.edge:
            return width, height
        w = max(requested * width // scale.edge, 1)
        h = max(min(w * scale.edge // width, requested), 1)
        return w, h

    if isinstance(scale, Fixed):
        if scale.width >= requested and scale.height >= requested:
            return requested, requested
        side = min(scale.width, scale.height)
        return side, side

    raise TypeError(f"Unknown scale reference: {scale!r}")


def resolve_square(width: int, height: int, requested: int) -> Tuple[int, int]:
    """Resolve a square crop of the source, never larger than its short edge."""
    return resolve(Fixed(width, height), width, height, requested)
