"""
Internal data structures for the CV pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np


class Axis(IntEnum):
    X = 0
    Y = 1


@dataclass(frozen=True)
class Point:
    """2D point or vector in mask pixel coordinates."""
    x: float
    y: float

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __getitem__(self, axis: int) -> float:
        return self.y if axis == Axis.Y else self.x

    @property
    def length(self) -> float:
        return float(np.hypot(self.x, self.y))

    def dominant_axis(self) -> Axis:
        """X when |x| >= |y| (ties go to X), else Y."""
        return Axis.X if abs(self.x) >= abs(self.y) else Axis.Y


ZERO = Point(0.0, 0.0)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box around the non-zero pixels of a mask."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def size_along(self, axis: int) -> float:
        return self.height if axis == Axis.Y else self.width
