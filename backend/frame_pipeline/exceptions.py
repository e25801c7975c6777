"""Custom exceptions for the frame pipeline."""


class PipelineError(Exception):
    """Base frame pipeline exception."""


class InvalidFrameError(PipelineError):
    """Raised when a submitted frame is not a color image array."""


class SegmentationFailedError(PipelineError):
    """Raised when the segmentation model fails or returns a malformed mask."""


class EmptySelectionError(PipelineError):
    """Raised when no frame passes the bounding-box filters during compositing."""


class ModelLoadError(PipelineError):
    """Raised when a segmentation model cannot be created."""
