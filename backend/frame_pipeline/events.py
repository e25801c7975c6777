"""Ordered delivery of pipeline events to observers."""
from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from typing import List, Optional, Tuple

import numpy as np

from frame_pipeline.types import CompositionStatus, FrameStatus, PipelineObserver

logger = logging.getLogger(__name__)

_STOP = object()


def frame_processed_payload(status: FrameStatus, processed_count: int, remaining_count: int) -> dict:
    return {
        "type": "frame_processed",
        "status": "success" if status == FrameStatus.SUCCESS else "failure",
        "processed_count": processed_count,
        "remaining_count": remaining_count,
        "sent_at_ms": time.time() * 1000.0,
    }


def composition_payload(status: CompositionStatus, image: Optional[np.ndarray]) -> dict:
    return {
        "type": "composition_finished",
        "status": "success" if status == CompositionStatus.SUCCESS else "degraded",
        "has_image": image is not None,
        "width": int(image.shape[1]) if image is not None else 0,
        "height": int(image.shape[0]) if image is not None else 0,
        "sent_at_ms": time.time() * 1000.0,
    }


class EventDispatcher:
    """
    Single thread draining an event queue so observers see events in the
    order they were emitted. Observer errors are logged and skipped.
    """

    def __init__(self, observers: Optional[List[PipelineObserver]] = None):
        self._observers: List[PipelineObserver] = list(observers or [])
        self._lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="pipeline-events", daemon=True)
        self._thread.start()

    def add_observer(self, observer: PipelineObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: PipelineObserver) -> None:
        with self._lock:
            self._observers = [o for o in self._observers if o is not observer]

    def frame_processed(self, status: FrameStatus, processed_count: int, remaining_count: int) -> None:
        self._queue.put(("on_frame_processed", (status, processed_count, remaining_count)))

    def composition_finished(self, status: CompositionStatus, image: Optional[np.ndarray]) -> None:
        self._queue.put(("on_composition_finished", (status, image)))

    def flush(self, timeout: float | None = None) -> bool:
        """Block until every event emitted so far has been delivered."""
        if not self._thread.is_alive():
            return self._queue.empty()
        done = threading.Event()
        self._queue.put(done)
        return done.wait(timeout)

    def close(self, timeout: float = 5.0) -> None:
        if not self._thread.is_alive():
            return
        self._queue.put(_STOP)
        self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            self._deliver(item)

    def _deliver(self, item: Tuple[str, tuple]) -> None:
        method, args = item
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                getattr(observer, method)(*args)
            except Exception:
                logger.exception("Observer %r failed handling %s", observer, method)


class EventBroadcaster:
    """Observer that fans event payloads out to asyncio and thread subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._async_subscribers: List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []
        self._thread_subscribers: List[queue.Queue] = []

    def subscribe_async(self, loop: asyncio.AbstractEventLoop, maxsize: int = 100) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        with self._lock:
            self._async_subscribers.append((loop, q))
        return q

    def unsubscribe_async(self, q: asyncio.Queue) -> None:
        with self._lock:
            self._async_subscribers = [(loop, sub) for (loop, sub) in self._async_subscribers if sub is not q]

    def subscribe_thread(self, maxsize: int = 100) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=maxsize)
        with self._lock:
            self._thread_subscribers.append(q)
        return q

    def unsubscribe_thread(self, q: queue.Queue) -> None:
        with self._lock:
            self._thread_subscribers = [sub for sub in self._thread_subscribers if sub is not q]

    def on_frame_processed(self, status: FrameStatus, processed_count: int, remaining_count: int) -> None:
        self._broadcast(frame_processed_payload(status, processed_count, remaining_count))

    def on_composition_finished(self, status: CompositionStatus, image: Optional[np.ndarray]) -> None:
        self._broadcast(composition_payload(status, image))

    def _broadcast(self, payload: dict) -> None:
        with self._lock:
            async_subscribers = list(self._async_subscribers)
            thread_subscribers = list(self._thread_subscribers)

        for loop, q in async_subscribers:
            def enqueue_async(queue_ref: asyncio.Queue = q, item: dict = payload) -> None:
                if queue_ref.full():
                    try:
                        queue_ref.get_nowait()
                    except asyncio.QueueEmpty:
                        pass
                try:
                    queue_ref.put_nowait(item)
                except asyncio.QueueFull:
                    pass

            try:
                loop.call_soon_threadsafe(enqueue_async)
            except RuntimeError:
                # Subscriber's loop already closed.
                self.unsubscribe_async(q)

        for q in thread_subscribers:
            if q.full():
                try:
                    q.get_nowait()
                except queue.Empty:
                    pass
            try:
                q.put_nowait(payload)
            except queue.Full:
                pass
