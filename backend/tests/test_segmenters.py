"""Tests for the YOLO segmenter adapter (model mocked, no weights needed)."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from cv.segmenters import YoloSegmenter, get_segmenter
from frame_pipeline import ModelLoadError


class _Tensor:
    def __init__(self, array):
        self._array = np.asarray(array)

    def cpu(self):
        return self

    def numpy(self):
        return self._array


def _segmenter(monkeypatch, result, **kwargs) -> YoloSegmenter:
    model = MagicMock(return_value=[result])
    monkeypatch.setattr(YoloSegmenter, "_load_model", lambda self, path: model)
    return YoloSegmenter(**kwargs)


def _result(masks, classes):
    return SimpleNamespace(
        masks=SimpleNamespace(data=_Tensor(masks)),
        boxes=SimpleNamespace(cls=_Tensor(classes)),
    )


class TestYoloSegmenter:
    def test_unions_subject_class_masks(self, monkeypatch):
        masks = np.zeros((3, 8, 8), dtype=np.float32)
        masks[0, 0:2, 0:2] = 1.0
        masks[1, 6:8, 6:8] = 1.0
        masks[2, 3:5, 3:5] = 1.0
        seg = _segmenter(monkeypatch, _result(masks, [0, 0, 2]), subject_classes={0})

        mask = seg.segment(np.zeros((8, 8, 3), dtype=np.uint8))

        assert mask.dtype == np.uint8
        assert mask[0, 0] == 255 and mask[7, 7] == 255
        assert mask[4, 4] == 0

    def test_no_detections_gives_empty_mask(self, monkeypatch):
        seg = _segmenter(monkeypatch, SimpleNamespace(masks=None, boxes=None))
        mask = seg.segment(np.zeros((16, 16, 3), dtype=np.uint8))
        assert mask.shape == (16, 16)
        assert not mask.any()

    def test_low_resolution_masks_are_resized(self, monkeypatch):
        masks = np.ones((1, 4, 4), dtype=np.float32)
        seg = _segmenter(monkeypatch, _result(masks, [0]))
        mask = seg.segment(np.zeros((8, 8, 3), dtype=np.uint8))
        assert mask.shape == (8, 8)
        assert mask.all()


class TestGetSegmenter:
    def test_unknown_name_raises(self):
        with pytest.raises(ModelLoadError):
            get_segmenter("sam")
