"""
Geometry - Shape masks and the compositing used to cut shapes out of a
square image.

A mask is a transparent square canvas with the shape drawn in the marker
color. Compositing replaces every marker pixel with the source pixel at the
same coordinates; the result is then cropped to its content.
"""

import math
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .exceptions import GeometryError


TRANSPARENT = (0, 0, 0, 0)
WHITE = (255, 255, 255, 100)

Point = Tuple[int, int]


def polygon_points(r: int, sides: int) -> List[Point]:
    """Vertices of a regular polygon inscribed in a circle of radius r at (r, r)."""
    points = []
    for i in range(sides):
        rotation = (2.0 * math.pi / sides) * i
        x = r * math.cos(rotation) + r
        y = r * math.sin(rotation) + r
        points.append((math.floor(x), math.floor(y)))
    return points


def star_points(size: int) -> List[Point]:
    """Ten points alternating between the outer and inner radius of a star."""
    div2 = size // 2
    step = (2.0 * math.pi) / 10.0
    points = []

    for i in range(1, 11):
        r = div2 if i % 2 == 1 else div2 // 2
        rotation = step * i
        x = r * math.sin(rotation) + div2
        y = r * math.cos(rotation) + div2
        points.append((math.floor(x), math.floor(y)))

    return points


def cross_points(size: int) -> List[Point]:
    """Twelve points of a plus-shaped cross with arms a third of the side wide."""
    d = size // 3
    return [
        (d, 0), (d * 2, 0), (d * 2, d), (size, d),
        (size, d * 2), (d * 2, d * 2), (d * 2, size), (d, size),
        (d, d * 2), (0, d * 2), (0, d), (d, d),
    ]


def multi_rect_boxes(size: int, count: int) -> List[Tuple[int, int, int, int]]:
    """
    Full-width horizontal bands separated by padding.

    Returns:
        List of (left, top, right, bottom) boxes, inclusive
    """
    if count < 2:
        raise GeometryError(f"Multi rect needs at least 2 rows, got {count}")

    # 2 and 3 rows get a wider padding
    if count == 2:
        padding_sizer = count + 2
    elif count == 3:
        padding_sizer = count + 1
    else:
        padding_sizer = count

    div = size // count
    padding = div // padding_sizer

    # Visible separators: count - 1 below 4 rows, count - 2 from there on
    margin_sizer = count - 1 if count in (2, 3) else count - 2
    margin = padding // margin_sizer + div
    height = div - padding

    boxes = []
    if height <= 0:
        return boxes

    for i in range(count):
        y = i * margin
        boxes.append((0, y, size - 1, y + height - 1))
    return boxes


def blank_canvas(size: int) -> Image.Image:
    if size <= 0:
        raise GeometryError(f"Canvas size must be positive, got {size}")
    return Image.new('RGBA', (size, size), TRANSPARENT)


def polygon_mask(size: int, points: List[Point]) -> Image.Image:
    canvas = blank_canvas(size)
    ImageDraw.Draw(canvas).polygon(points, fill=WHITE)
    return canvas


def circle_mask(size: int) -> Image.Image:
    canvas = blank_canvas(size)
    r = size // 2
    ImageDraw.Draw(canvas).ellipse((0, 0, 2 * r, 2 * r), fill=WHITE)
    return canvas


def multi_rect_mask(size: int, count: int) -> Image.Image:
    canvas = blank_canvas(size)
    draw = ImageDraw.Draw(canvas)
    for box in multi_rect_boxes(size, count):
        draw.rectangle(box, fill=WHITE)
    return canvas


def triangle_mask(size: int, degrees: int) -> Image.Image:
    """
    Triangle pointing right, rotated clockwise by 0, 90, 180 or 270 degrees
    (right, down, left, up).
    """
    canvas = polygon_mask(size, polygon_points(size // 2, 3))

    if degrees == 0:
        return canvas
    if degrees == 90:
        return canvas.transpose(Image.Transpose.ROTATE_270)
    if degrees == 180:
        return canvas.transpose(Image.Transpose.ROTATE_180)
    if degrees == 270:
        return canvas.transpose(Image.Transpose.ROTATE_90)
    raise GeometryError(f"Triangle rotation must be a multiple of 90, got {degrees}")


def substitute_color(
    target: Image.Image,
    source: Image.Image,
    color: Tuple[int, int, int, int] = WHITE
) -> Image.Image:
    """
    Replace every target pixel equal to color with the source pixel at the
    same coordinates. Only exact matches are replaced.
    """
    if target.size != source.size:
        raise GeometryError(f"Mask {target.size} and source {source.size} differ in size")

    canvas = np.array(target.convert('RGBA'))
    pixels = np.asarray(source.convert('RGBA'))

    marked = np.all(canvas == np.array(color, dtype=np.uint8), axis=-1)
    canvas[marked] = pixels[marked]

    return Image.fromarray(canvas)


def content_bbox(image: Image.Image) -> Optional[Tuple[int, int, int, int]]:
    """Bounding box (left, top, right, bottom) of pixels that are not TRANSPARENT."""
    pixels = np.asarray(image.convert('RGBA'))
    content = np.any(pixels != np.array(TRANSPARENT, dtype=np.uint8), axis=-1)

    rows = np.flatnonzero(content.any(axis=1))
    cols = np.flatnonzero(content.any(axis=0))
    if rows.size == 0:
        return None

    return int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1


def tight_crop(image: Image.Image) -> Image.Image:
    """Crop away transparent rows and columns around the content."""
    bbox = content_bbox(image)
    if bbox is None:
        raise GeometryError("Shape has no visible pixels")
    return image.crop(bbox)


def square_crop(image: Image.Image) -> Image.Image:
    """Largest centered square of an image."""
    width, height = image.size
    if width >= height:
        side, x, y = height, (width - height) // 2, 0
    else:
        side, x, y = width, 0, (height - width) // 2
    return image.crop((x, y, x + side, y + side))


def cut_shape(source: Image.Image, mask: Image.Image) -> Image.Image:
    """Composite source through a mask and crop to the content."""
    return tight_crop(substitute_color(mask, source, WHITE))


MaskFactory = Callable[[int], Image.Image]

# Shape id -> mask factory, in output order
SHAPES: Dict[str, MaskFactory] = {
    'round': circle_mask,
    'hex': lambda size: polygon_mask(size, polygon_points(size // 2, 6)),
    'sep': lambda size: polygon_mask(size, polygon_points(size // 2, 7)),
    'sq45': lambda size: polygon_mask(size, polygon_points(size // 2, 4)),
    'right': lambda size: triangle_mask(size, 0),
    'left': lambda size: triangle_mask(size, 180),
    'down': lambda size: triangle_mask(size, 90),
    'up': lambda size: triangle_mask(size, 270),
    'row2': lambda size: multi_rect_mask(size, 2),
    'row3': lambda size: multi_rect_mask(size, 3),
    'row4': lambda size: multi_rect_mask(size, 4),
    'cross': lambda size: polygon_mask(size, cross_points(size)),
    'star': lambda size: polygon_mask(size, star_points(size)),
}
