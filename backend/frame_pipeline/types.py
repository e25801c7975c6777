"""Types for the frame pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Protocol

import numpy as np

from cv.types import ZERO, Point


class FrameStatus(IntEnum):
    FAILURE = -1
    SUCCESS = 1


class CompositionStatus(IntEnum):
    DEGRADED = -1
    SUCCESS = 1


class PipelineObserver(Protocol):
    """Receives progress and composition events on the dispatcher thread."""

    def on_frame_processed(self, status: FrameStatus, processed_count: int, remaining_count: int) -> None: ...

    def on_composition_finished(self, status: CompositionStatus, image: Optional[np.ndarray]) -> None: ...


@dataclass
class CompositionResult:
    """Outcome of one composite_frames() call."""

    status: CompositionStatus
    image: Optional[np.ndarray]
    indices: List[int] = field(default_factory=list)
    direction: Point = ZERO


@dataclass(frozen=True)
class PipelineCounts:
    """Point-in-time snapshot of the store."""

    submitted: int
    processed: int
    masks: int
    remaining: int
    processing: bool
    epoch: int

    def to_dict(self) -> dict:
        return {
            "submitted": self.submitted,
            "processed": self.processed,
            "masks": self.masks,
            "remaining": self.remaining,
            "status": "processing" if self.processing else "idle",
            "epoch": self.epoch,
        }
