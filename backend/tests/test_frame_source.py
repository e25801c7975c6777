"""Tests for FrameThrottle and FrameSource delivery (no real capture device)."""
from __future__ import annotations

import asyncio

import cv2
import numpy as np
import pytest

from streaming.frame_source import FrameSource, FrameThrottle
from tests.fakes import make_frame


class TestFrameThrottle:
    def test_first_frame_always_passes(self):
        assert FrameThrottle(10).accept(123.0) is True

    def test_drops_frames_inside_interval(self):
        throttle = FrameThrottle(10)
        accepted = [ts for ts in (0.0, 0.05, 0.1, 0.15, 0.2) if throttle.accept(ts)]
        assert accepted == pytest.approx([0.0, 0.1, 0.2])

    def test_zero_fps_disables_throttling(self):
        throttle = FrameThrottle(0)
        assert all(throttle.accept(0.0) for _ in range(3))

    def test_reset_accepts_next_frame(self):
        throttle = FrameThrottle(1)
        throttle.accept(5.0)
        assert throttle.accept(5.1) is False
        throttle.reset()
        assert throttle.accept(5.1) is True


class TestOffer:
    def test_listener_receives_throttled_packets(self):
        source = FrameSource("unused.mp4", max_fps=2)
        received = []
        source.add_listener(received.append)

        for i in range(10):
            source.offer(make_frame(value=i), timestamp=i * 0.25)

        assert [p.frame_index for p in received] == [1, 3, 5, 7, 9]
        assert received[1].frame[0, 0, 0] == 2
        assert source.delivered == 5

    def test_listener_error_does_not_block_others(self):
        source = FrameSource("unused.mp4", max_fps=0)
        seen = []

        def _broken(packet):
            raise RuntimeError("boom")

        source.add_listener(_broken)
        source.add_listener(seen.append)
        assert source.offer(make_frame(), 0.0) is True
        assert len(seen) == 1

    def test_thread_subscriber_drops_oldest(self):
        source = FrameSource("unused.mp4", max_fps=0)
        q = source.subscribe_thread(maxsize=2)
        for i in range(4):
            source.offer(make_frame(value=i), float(i))

        indices = [q.get_nowait().frame_index for _ in range(2)]
        assert indices == [3, 4]
        assert q.empty()

    def test_unsubscribed_thread_queue_gets_nothing(self):
        source = FrameSource("unused.mp4", max_fps=0)
        q = source.subscribe_thread()
        source.unsubscribe_thread(q)
        source.offer(make_frame(), 0.0)
        assert q.empty()

    def test_async_subscriber(self):
        source = FrameSource("unused.mp4", max_fps=0)

        async def _run():
            q = source.subscribe_async(asyncio.get_running_loop(), maxsize=2)
            source.offer(np.zeros((4, 4, 3), dtype=np.uint8), 0.0)
            packet = await asyncio.wait_for(q.get(), timeout=2)
            source.unsubscribe_async(q)
            return packet

        packet = asyncio.run(_run())
        assert packet.frame_index == 1
        assert packet.frame.shape == (4, 4, 3)


class TestCaptureLoop:
    def test_unopenable_source_finishes_without_delivery(self, tmp_path):
        source = FrameSource(str(tmp_path / "missing.mp4"), max_fps=5)
        source.start()
        source.join(timeout=5)
        assert not source.is_running
        assert source.delivered == 0


class _Capture:
    """Stand-in for cv2.VideoCapture.get() with fixed properties."""

    def __init__(self, pos_msec: float = 0.0, fps: float = 0.0):
        self._props = {cv2.CAP_PROP_POS_MSEC: pos_msec, cv2.CAP_PROP_FPS: fps}

    def get(self, prop):
        return self._props.get(prop, 0.0)


class TestCaptureTimestamps:
    def test_prefers_position_msec(self):
        source = FrameSource("unused.mp4")
        assert source._timestamp_from_capture(_Capture(pos_msec=1500.0, fps=30)) == pytest.approx(1.5)

    def test_fps_fallback_is_zero_based_presentation_time(self):
        source = FrameSource("unused.mp4", max_fps=0)
        received = []
        source.add_listener(received.append)
        cap = _Capture(fps=10)

        for _ in range(3):
            source.offer(make_frame(), source._timestamp_from_capture(cap))

        assert [p.frame_index for p in received] == [1, 2, 3]
        assert [p.timestamp for p in received] == pytest.approx([0.0, 0.1, 0.2])

    def test_first_frame_fallback_does_not_collide_with_position(self):
        # Files report POS_MSEC 0 for the first frame, then the real position.
        source = FrameSource("unused.mp4", max_fps=10)
        received = []
        source.add_listener(received.append)

        for pos_msec in (0.0, 100.0, 200.0):
            source.offer(make_frame(), source._timestamp_from_capture(_Capture(pos_msec=pos_msec, fps=10)))

        assert [p.frame_index for p in received] == [1, 2, 3]
