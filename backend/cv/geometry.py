"""
Mask geometry helpers: bounding boxes, centers and direction vectors.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from cv.config import MAX_MASK_COVERAGE
from cv.types import ZERO, BoundingBox, Point


def bounding_box(mask: np.ndarray) -> Optional[BoundingBox]:
    """
    Minimal rectangle enclosing every non-zero pixel of a mask.

    Args:
        mask: 2D array (any dtype); non-zero means subject present.

    Returns:
        BoundingBox in pixel units, or None when the mask is empty.
    """
    if mask.ndim == 3:
        mask = mask[..., 0]
    ys, xs = np.nonzero(mask)
    if xs.size == 0:
        return None
    x0, x1 = int(xs.min()), int(xs.max())
    y0, y1 = int(ys.min()), int(ys.max())
    return BoundingBox(x=x0, y=y0, width=x1 - x0 + 1, height=y1 - y0 + 1)


def center(rect: BoundingBox) -> Point:
    return rect.center


def displacement(a: Point, b: Point) -> Point:
    return a - b


def normalize(vector: Point) -> Point:
    length = vector.length
    if length == 0:
        return ZERO
    return Point(vector.x / length, vector.y / length)


def is_valid_box(
    box: Optional[BoundingBox],
    mask_shape: tuple[int, ...],
    max_coverage: float = MAX_MASK_COVERAGE,
) -> bool:
    """Reject missing boxes and boxes covering most of the frame in either dimension."""
    if box is None:
        return False
    height, width = mask_shape[:2]
    return box.width < width * max_coverage and box.height < height * max_coverage
