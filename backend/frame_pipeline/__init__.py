"""Frame pipeline package."""

from .exceptions import (
    EmptySelectionError,
    InvalidFrameError,
    ModelLoadError,
    PipelineError,
    SegmentationFailedError,
)
from .processor import FrameProcessor
from .store import FrameStore
from .types import (
    CompositionResult,
    CompositionStatus,
    FrameStatus,
    PipelineCounts,
    PipelineObserver,
)

__all__ = [
    "CompositionResult",
    "CompositionStatus",
    "EmptySelectionError",
    "FrameProcessor",
    "FrameStatus",
    "FrameStore",
    "InvalidFrameError",
    "ModelLoadError",
    "PipelineCounts",
    "PipelineError",
    "PipelineObserver",
    "SegmentationFailedError",
]
