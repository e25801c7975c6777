"""Lock-guarded frame, processed-frame and mask storage."""
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, List, Optional, Tuple

import numpy as np

from frame_pipeline.types import PipelineCounts

logger = logging.getLogger(__name__)


class FrameStore:
    """
    Raw frame FIFO plus index-aligned processed frames and masks.

    One lock covers the three sequences, the processing flag and the session
    epoch. Appends carry the epoch seen when their frame was dequeued so that
    results computed before a reset never leak into the next session.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._frames: Deque[np.ndarray] = deque()
        self._processed: List[np.ndarray] = []
        self._masks: List[np.ndarray] = []
        self._processing = False
        self._epoch = 0
        self._submitted = 0

    # ---------- Raw frames ----------

    def submit_frame(self, frame: np.ndarray) -> int:
        with self._lock:
            self._frames.append(frame)
            self._submitted += 1
            return len(self._frames)

    def frame_available(self) -> bool:
        with self._lock:
            return len(self._frames) > 0

    def take_next_frame(self) -> Optional[np.ndarray]:
        """Pop the oldest frame, or None when the queue is empty."""
        with self._lock:
            if not self._frames:
                logger.debug("take_next_frame() called on an empty queue")
                return None
            return self._frames.popleft()

    # ---------- Processing state ----------

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._processing

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    def try_begin_processing(self) -> bool:
        """Set the processing flag; False if a pass is already running."""
        with self._lock:
            if self._processing:
                return False
            self._processing = True
            return True

    def take_next_or_idle(self) -> Optional[Tuple[np.ndarray, int]]:
        """Pop the oldest frame with the current epoch, or clear the flag when empty."""
        with self._lock:
            if not self._frames:
                self._processing = False
                self._idle.notify_all()
                return None
            return self._frames.popleft(), self._epoch

    def end_processing(self) -> None:
        with self._lock:
            self._processing = False
            self._idle.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: not self._processing, timeout=timeout)

    # ---------- Results ----------

    def append_processed_frame(self, image: np.ndarray, epoch: int) -> bool:
        with self._lock:
            if epoch != self._epoch:
                return False
            self._processed.append(image)
            return True

    def append_mask(self, mask: np.ndarray, epoch: int) -> bool:
        with self._lock:
            if epoch != self._epoch or len(self._masks) >= len(self._processed):
                return False
            self._masks.append(mask)
            return True

    def discard_unmatched_frame(self, epoch: int) -> bool:
        """Drop the trailing processed frame whose mask never arrived."""
        with self._lock:
            if epoch != self._epoch or len(self._processed) <= len(self._masks):
                return False
            self._processed.pop()
            return True

    def processed_frames(self) -> List[np.ndarray]:
        with self._lock:
            return list(self._processed)

    def masks(self) -> List[np.ndarray]:
        with self._lock:
            return list(self._masks)

    def snapshot(self) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        """Processed frames and masks captured under one lock acquisition."""
        with self._lock:
            return list(self._processed), list(self._masks)

    def counts(self) -> PipelineCounts:
        with self._lock:
            return PipelineCounts(
                submitted=self._submitted,
                processed=len(self._processed),
                masks=len(self._masks),
                remaining=len(self._frames),
                processing=self._processing,
                epoch=self._epoch,
            )

    def reset(self) -> int:
        """Clear every sequence and start a new epoch; the processing flag is left alone."""
        with self._lock:
            self._frames.clear()
            self._processed.clear()
            self._masks.clear()
            self._submitted = 0
            self._epoch += 1
            return self._epoch
