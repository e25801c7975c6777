"""
Pydantic models for API request/response validation.
"""
from typing import Literal

from pydantic import BaseModel


class SessionStatus(BaseModel):
    """
    Snapshot of the capture session.
    Counts follow submitted >= processed >= masks.
    """
    submitted: int                        # Frames accepted since the last reset
    processed: int                        # Frames cropped and resized
    masks: int                            # Frames with a segmentation mask
    remaining: int                        # Frames waiting in the queue
    status: Literal["idle", "processing"]
    epoch: int                            # Incremented by every reset


class FrameUploadResponse(SessionStatus):
    queued: int       # Queue length right after this upload
    started: bool     # Whether this upload started a processing pass


class ProcessResponse(SessionStatus):
    started: bool
