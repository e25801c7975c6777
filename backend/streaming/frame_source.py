"""
Throttled frame source feeding the action shot pipeline.
"""
from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Tuple

import cv2
import numpy as np

from common.config import CAPTURE_FPS

logger = logging.getLogger(__name__)


@dataclass
class FramePacket:
    frame_index: int
    timestamp: float
    frame: np.ndarray


FrameListener = Callable[[FramePacket], None]


class FrameThrottle:
    """Pass at most ``fps`` frames per second of presentation time."""

    def __init__(self, fps: float = CAPTURE_FPS) -> None:
        self.interval = (1.0 / fps) if fps and fps > 0 else 0.0
        self._last: float | None = None

    def accept(self, timestamp: float) -> bool:
        if self._last is not None and (timestamp - self._last) < self.interval:
            return False
        self._last = timestamp
        return True

    def reset(self) -> None:
        self._last = None


class FrameSource:
    def __init__(self, source: str | int, max_fps: float = CAPTURE_FPS, realtime: bool = False) -> None:
        self.source = source
        self.realtime = realtime
        self._throttle = FrameThrottle(max_fps)
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._listeners: List[FrameListener] = []
        self._async_subscribers: List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []
        self._thread_subscribers: List[queue.Queue] = []
        self._start_wall = time.monotonic()
        self._frame_index = 0
        self.delivered = 0

    def start(self) -> None:
        # Single capture thread feeds listeners and subscribers.
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return

            self._stopped.clear()
            self._thread = threading.Thread(target=self._run, name="frame-source", daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_listener(self, listener: FrameListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def subscribe_async(self, loop: asyncio.AbstractEventLoop, maxsize: int = 5) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        with self._lock:
            self._async_subscribers.append((loop, q))
        return q

    def unsubscribe_async(self, q: asyncio.Queue) -> None:
        with self._lock:
            self._async_subscribers = [(loop, sub) for (loop, sub) in self._async_subscribers if sub is not q]

    def subscribe_thread(self, maxsize: int = 5) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=maxsize)
        with self._lock:
            self._thread_subscribers.append(q)
        return q

    def unsubscribe_thread(self, q: queue.Queue) -> None:
        with self._lock:
            self._thread_subscribers = [sub for sub in self._thread_subscribers if sub is not q]

    def offer(self, frame: np.ndarray, timestamp: float) -> bool:
        """Throttle and deliver one captured frame. Returns True if delivered."""
        self._frame_index += 1
        if not self._throttle.accept(timestamp):
            return False
        self._broadcast(FramePacket(frame_index=self._frame_index, timestamp=timestamp, frame=frame))
        self.delivered += 1
        return True

    def _broadcast(self, packet: FramePacket) -> None:
        with self._lock:
            listeners = list(self._listeners)
            async_subscribers = list(self._async_subscribers)
            thread_subscribers = list(self._thread_subscribers)

        for listener in listeners:
            try:
                listener(packet)
            except Exception:
                logger.exception("Frame listener failed on frame %d", packet.frame_index)

        for loop, q in async_subscribers:
            def enqueue_async(queue_ref: asyncio.Queue = q, payload: FramePacket = packet) -> None:
                if queue_ref.full():
                    try:
                        queue_ref.get_nowait()
                    except asyncio.QueueEmpty:
                        pass
                try:
                    queue_ref.put_nowait(payload)
                except asyncio.QueueFull:
                    pass

            loop.call_soon_threadsafe(enqueue_async)

        for q in thread_subscribers:
            if q.full():
                try:
                    q.get_nowait()
                except queue.Empty:
                    pass
            try:
                q.put_nowait(packet)
            except queue.Full:
                pass

    def _timestamp_from_capture(self, cap: cv2.VideoCapture) -> float:
        # Prefer capture timestamps so throttling follows the source timeline.
        pos_msec = cap.get(cv2.CAP_PROP_POS_MSEC)
        if pos_msec and pos_msec > 0:
            return pos_msec / 1000.0

        # Presentation time of the frame about to be offered, zero-based like POS_MSEC.
        fps = cap.get(cv2.CAP_PROP_FPS)
        if fps and fps > 1:
            return self._frame_index / fps

        return time.monotonic() - self._start_wall

    def _run(self) -> None:
        cap = cv2.VideoCapture(self.source)
        if not cap.isOpened():
            logger.error("Failed to open source: %s", self.source)
            return

        fps = cap.get(cv2.CAP_PROP_FPS)
        frame_interval = (1.0 / fps) if fps and fps > 1 else None
        next_frame_time = time.monotonic()
        self._start_wall = time.monotonic()
        self._frame_index = 0
        self._throttle.reset()

        try:
            while not self._stopped.is_set():
                ret, frame = cap.read()
                if not ret:
                    break

                timestamp = self._timestamp_from_capture(cap)
                self.offer(frame, timestamp)

                # File sources are paced at source FPS only when asked to mimic a camera.
                if self.realtime and frame_interval is not None:
                    next_frame_time += frame_interval
                    sleep_time = next_frame_time - time.monotonic()
                    if sleep_time > 0:
                        time.sleep(sleep_time)
        finally:
            cap.release()
            logger.info("Frame source finished: %d frames read, %d delivered", self._frame_index, self.delivered)
