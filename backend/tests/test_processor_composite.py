"""Tests for FrameProcessor.composite_frames: selection contract and fallbacks."""
from __future__ import annotations

import numpy as np

from cv.types import Point
from frame_pipeline import CompositionStatus
from tests.fakes import FakeSegmenter, box_mask, make_frame

SIZE = 64


def _run(proc, n_frames: int):
    for i in range(n_frames):
        proc.submit_frame(make_frame(SIZE, SIZE, value=i + 1))
    proc.process_frames()
    assert proc.wait_until_idle(timeout=5)


def _scripted(masks):
    return FakeSegmenter(script=list(masks))


class TestComposite:
    def test_selects_spaced_frames_and_returns_hero(self, processor_factory, observer):
        masks = [box_mask(SIZE, x, 30, 4, 4) for x in (0, 1, 2, 3, 10)]
        proc = processor_factory(segmenter=_scripted(masks), target_size=SIZE)
        _run(proc, 5)

        result = proc.composite_frames()
        assert result.status == CompositionStatus.SUCCESS
        assert result.indices == [1, 3, 4]
        assert result.direction == Point(-1.0, 0.0)
        assert np.array_equal(result.image, proc.store.processed_frames()[4])

        assert proc.events.flush(timeout=2)
        assert len(observer.compositions) == 1
        assert observer.compositions[0][0] == CompositionStatus.SUCCESS

    def test_accessors_match_composition(self, processor_factory):
        masks = [box_mask(SIZE, x, 30, 4, 4) for x in (0, 20, 40)]
        proc = processor_factory(segmenter=_scripted(masks), target_size=SIZE)
        _run(proc, 3)
        assert proc.best_frame_indices() == [0, 1, 2]
        assert proc.dominant_direction() == Point(-1.0, 0.0)

    def test_overlay_mode_keeps_selection(self, processor_factory):
        masks = [box_mask(SIZE, x, 30, 4, 4) for x in (0, 1, 2, 3, 10)]
        proc = processor_factory(segmenter=_scripted(masks), target_size=SIZE)
        _run(proc, 5)

        last = proc.composite_frames(mode="last")
        overlay = proc.composite_frames(mode="overlay")
        assert overlay.indices == last.indices == [1, 3, 4]
        assert overlay.status == CompositionStatus.SUCCESS
        # Subject of frame 3 (value 4) is painted onto the hero (value 5) at
        # full strength; the older frame 1 is blended in fainter.
        assert overlay.image[31, 5].tolist() == [4, 4, 4]
        assert overlay.image[31, 1].tolist() != [5, 5, 5]
        assert last.image[31, 5].tolist() == [5, 5, 5]

    def test_empty_selection_falls_back_to_last_frame(self, processor_factory, observer):
        empty = np.zeros((SIZE, SIZE), dtype=np.uint8)
        proc = processor_factory(segmenter=_scripted([empty, empty, empty]), target_size=SIZE)
        _run(proc, 3)

        result = proc.composite_frames()
        assert result.status == CompositionStatus.DEGRADED
        assert result.indices == []
        assert int(result.image[0, 0, 0]) == 3

        assert proc.events.flush(timeout=2)
        assert observer.compositions[0][0] == CompositionStatus.DEGRADED
        assert observer.compositions[0][1] is not None

    def test_oversized_masks_only_is_degraded(self, processor_factory):
        big = box_mask(SIZE, 0, 0, int(SIZE * 0.8), 10)
        proc = processor_factory(segmenter=_scripted([big, big]), target_size=SIZE)
        _run(proc, 2)
        result = proc.composite_frames()
        assert result.status == CompositionStatus.DEGRADED

    def test_nothing_processed(self, processor_factory, observer):
        proc = processor_factory()
        result = proc.composite_frames()
        assert result.status == CompositionStatus.DEGRADED
        assert result.image is None
        assert proc.events.flush(timeout=2)
        assert observer.compositions == [(CompositionStatus.DEGRADED, None)]

    def test_one_event_per_call(self, processor_factory, observer):
        proc = processor_factory()
        _run(proc, 2)
        for _ in range(3):
            proc.composite_frames()
        assert proc.events.flush(timeout=2)
        assert len(observer.compositions) == 3

    def test_composite_after_reset_is_degraded(self, processor_factory):
        proc = processor_factory()
        _run(proc, 3)
        proc.reset()
        result = proc.composite_frames()
        assert result.status == CompositionStatus.DEGRADED
        assert result.image is None
