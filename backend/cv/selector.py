"""
Best-frame selection for action shots.

The subject's dominant direction of motion is estimated from the first and
last usable masks; the mask sequence is then walked backward from the most
recent ("hero") frame, keeping frames whose subject has moved far enough
along that axis since the previously kept frame.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from cv.config import MAX_MASK_COVERAGE, MIN_SPACING_FACTOR
from cv.geometry import bounding_box, displacement, is_valid_box, normalize
from cv.types import ZERO, BoundingBox, Point

logger = logging.getLogger(__name__)


def _valid_box(mask: np.ndarray, max_coverage: float) -> Optional[BoundingBox]:
    box = bounding_box(mask)
    return box if is_valid_box(box, mask.shape, max_coverage) else None


def dominant_direction(
    masks: Sequence[np.ndarray],
    max_coverage: float = MAX_MASK_COVERAGE,
) -> Point:
    """
    Unit vector from the last valid subject center to the first one.

    The start center comes from the first mask with any box (no size filter);
    the end center from the last mask whose box passes the coverage filter.
    Returns (0, 0) when either is missing or both coincide.
    """
    start: Optional[Point] = None
    for mask in masks:
        box = bounding_box(mask)
        if box is not None:
            start = box.center
            break

    end: Optional[Point] = None
    for mask in reversed(masks):
        box = _valid_box(mask, max_coverage)
        if box is not None:
            end = box.center
            break

    if start is None or end is None or start == end:
        return ZERO
    return normalize(displacement(start, end))


def select_frames(
    masks: Sequence[np.ndarray],
    direction: Point | None = None,
    max_coverage: float = MAX_MASK_COVERAGE,
    spacing_factor: float = MIN_SPACING_FACTOR,
) -> List[int]:
    """
    Indices of the masks to composite, in chronological order.

    The most recent valid mask is always kept. Walking backward, a valid mask
    is kept only if its center lies strictly further than
    ``spacing_factor * (prev_size + cur_size) / 4`` from the previously kept
    one along the dominant axis.
    """
    if direction is None:
        direction = dominant_direction(masks, max_coverage)
    axis = direction.dominant_axis()

    selected: List[int] = []
    previous: Optional[BoundingBox] = None

    for i in range(len(masks) - 1, -1, -1):
        box = _valid_box(masks[i], max_coverage)
        if box is None:
            continue

        if previous is None:
            previous = box
            selected.append(i)
            continue

        distance = abs(previous.center[axis] - box.center[axis])
        bound = (previous.size_along(axis) + box.size_along(axis)) / 4.0
        if distance > bound * spacing_factor:
            previous = box
            selected.append(i)

    selected.reverse()
    logger.debug("Selected %d of %d frames along %s", len(selected), len(masks), axis.name)
    return selected
