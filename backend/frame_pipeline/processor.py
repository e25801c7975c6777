"""Single-worker frame processing loop and action shot composition."""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, List, Optional

import cv2
import numpy as np

from cv.compositor import CompositeMode, compose
from cv.config import MAX_MASK_COVERAGE, MIN_SPACING_FACTOR, TARGET_SIZE
from cv.imaging import coerce_mask, prepare_frame
from cv.selector import dominant_direction, select_frames
from cv.types import Point
from frame_pipeline.events import EventDispatcher
from frame_pipeline.exceptions import (
    EmptySelectionError,
    InvalidFrameError,
    SegmentationFailedError,
)
from frame_pipeline.store import FrameStore
from frame_pipeline.types import (
    CompositionResult,
    CompositionStatus,
    FrameStatus,
    PipelineCounts,
    PipelineObserver,
)

if TYPE_CHECKING:
    from cv.segmenters import Segmenter

logger = logging.getLogger(__name__)


class FrameProcessor:
    """
    Queue frames, segment them one at a time on a background thread and
    compose an action shot from the results on demand.

    State is Idle or Processing. ``process_frames()`` starts a worker only
    when Idle; the worker drains the queue and returns to Idle when it is
    empty or after the first segmentation failure.
    """

    def __init__(
        self,
        segmenter: Segmenter,
        observers: Optional[List[PipelineObserver]] = None,
        target_size: int = TARGET_SIZE,
        composite_mode: CompositeMode | str = CompositeMode.LAST,
        max_coverage: float = MAX_MASK_COVERAGE,
        spacing_factor: float = MIN_SPACING_FACTOR,
    ):
        self._segmenter = segmenter
        self._store = FrameStore()
        self._events = EventDispatcher(observers)
        self._target_size = target_size
        self._composite_mode = CompositeMode(composite_mode)
        self._max_coverage = max_coverage
        self._spacing_factor = spacing_factor
        self._worker: threading.Thread | None = None

    @property
    def store(self) -> FrameStore:
        return self._store

    @property
    def events(self) -> EventDispatcher:
        return self._events

    @property
    def is_processing(self) -> bool:
        return self._store.is_processing

    def add_observer(self, observer: PipelineObserver) -> None:
        self._events.add_observer(observer)

    def remove_observer(self, observer: PipelineObserver) -> None:
        self._events.remove_observer(observer)

    def counts(self) -> PipelineCounts:
        return self._store.counts()

    # ---------- Input ----------

    def submit_frame(self, frame: np.ndarray) -> int:
        """Queue a BGR frame; returns the number of frames waiting."""
        if not isinstance(frame, np.ndarray) or frame.ndim != 3 or frame.shape[2] not in (3, 4):
            raise InvalidFrameError("Frame must be an HxWx3 (or HxWx4) image array")
        if frame.shape[0] == 0 or frame.shape[1] == 0:
            raise InvalidFrameError("Frame must not be empty")
        if frame.dtype != np.uint8:
            raise InvalidFrameError(f"Frame must be uint8, got {frame.dtype}")
        if frame.shape[2] == 4:
            frame = frame[..., :3]
        # The store owns the frame from here on.
        frame = np.ascontiguousarray(frame)
        frame.setflags(write=False)
        return self._store.submit_frame(frame)

    def process_frames(self) -> bool:
        """Start a processing pass unless one is already running."""
        if not self._store.try_begin_processing():
            return False
        self._worker = threading.Thread(target=self._run, name="frame-processor", daemon=True)
        self._worker.start()
        return True

    def reset(self) -> None:
        """Clear all stored frames and masks; in-flight results are dropped."""
        epoch = self._store.reset()
        logger.info("Pipeline reset (epoch=%d)", epoch)

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        return self._store.wait_idle(timeout)

    def shutdown(self, timeout: float = 5.0) -> None:
        self._store.wait_idle(timeout)
        worker = self._worker
        if worker is not None:
            worker.join(timeout=timeout)
        self._events.close(timeout=timeout)

    # ---------- Processing loop ----------

    def _run(self) -> None:
        try:
            while True:
                item = self._store.take_next_or_idle()
                if item is None:
                    return
                frame, epoch = item
                if not self._process_one(frame, epoch):
                    self._store.end_processing()
                    return
        except Exception:
            logger.exception("Frame processor crashed")
            self._store.end_processing()

    def _process_one(self, frame: np.ndarray, epoch: int) -> bool:
        """Segment one frame. Returns False to stop the pass (fail-stop)."""
        try:
            image = prepare_frame(frame, self._target_size)
        except (cv2.error, ValueError) as exc:
            if self._store.epoch != epoch:
                logger.debug("Ignoring resize failure from stale epoch %d", epoch)
                return True
            return self._fail_stop(f"could not resize frame: {exc}")

        image.setflags(write=False)
        if not self._store.append_processed_frame(image, epoch):
            logger.debug("Dropping frame from stale epoch %d", epoch)
            return True

        try:
            mask = self._segment(image)
        except SegmentationFailedError as exc:
            # Rollback fails only when a reset cleared the session meanwhile.
            if not self._store.discard_unmatched_frame(epoch):
                logger.debug("Ignoring segmentation failure from stale epoch %d", epoch)
                return True
            return self._fail_stop(str(exc))

        mask.setflags(write=False)
        if not self._store.append_mask(mask, epoch):
            logger.debug("Ignoring late mask from epoch %d", epoch)
            return True

        counts = self._store.counts()
        self._events.frame_processed(FrameStatus.SUCCESS, counts.processed, counts.remaining)
        return True

    def _fail_stop(self, reason: str) -> bool:
        logger.error("Segmentation failed: %s", reason)
        counts = self._store.counts()
        self._events.frame_processed(FrameStatus.FAILURE, counts.processed, counts.remaining)
        return False

    def _segment(self, image: np.ndarray) -> np.ndarray:
        try:
            result = self._segmenter.segment(image)
        except Exception as exc:
            raise SegmentationFailedError(f"segmenter raised {type(exc).__name__}: {exc}") from exc
        try:
            return coerce_mask(result, self._target_size)
        except ValueError as exc:
            raise SegmentationFailedError(str(exc)) from exc

    # ---------- Composition ----------

    def dominant_direction(self) -> Point:
        return dominant_direction(self._store.masks(), self._max_coverage)

    def best_frame_indices(self) -> List[int]:
        return select_frames(
            self._store.masks(),
            max_coverage=self._max_coverage,
            spacing_factor=self._spacing_factor,
        )

    def composite_frames(self, mode: CompositeMode | str | None = None) -> CompositionResult:
        """
        Select the best frames and compose the action shot.

        Never raises for an empty selection: the most recent processed frame
        (or None when nothing was processed) is returned with a DEGRADED
        status. Observers get exactly one on_composition_finished per call.
        """
        mode = CompositeMode(mode) if mode is not None else self._composite_mode
        frames, masks = self._store.snapshot()
        # Masks trail processed frames while a segmentation is in flight.
        frames_with_masks = frames[:len(masks)]

        direction = dominant_direction(masks, self._max_coverage)
        indices = select_frames(
            masks,
            direction=direction,
            max_coverage=self._max_coverage,
            spacing_factor=self._spacing_factor,
        )

        try:
            if not indices:
                raise EmptySelectionError(f"no usable mask among {len(masks)}")
            image = compose(frames_with_masks, masks, indices, mode=mode)
            result = CompositionResult(CompositionStatus.SUCCESS, image, indices, direction)
            logger.info("Composed action shot from frames %s (mode=%s)", indices, mode.value)
        except EmptySelectionError as exc:
            fallback = frames[-1].copy() if frames else None
            logger.warning("Composition degraded: %s", exc)
            result = CompositionResult(CompositionStatus.DEGRADED, fallback, [], direction)

        self._events.composition_finished(result.status, result.image)
        return result
