"""
Foreground segmentation models.

A segmenter takes a square BGR ProcessedFrame and returns a single-channel
mask of the same size where non-zero pixels mark the subject.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Protocol

import cv2
import numpy as np

from common.config import MODELS_DIR
from cv.config import (
    SEGMENTER_CONFIDENCE,
    SEGMENTER_MASK_THRESHOLD,
    SEGMENTER_MODEL,
    SUBJECT_CLASSES,
)
from frame_pipeline.exceptions import ModelLoadError

logger = logging.getLogger(__name__)


class Segmenter(Protocol):
    def segment(self, image: np.ndarray) -> np.ndarray: ...


class YoloSegmenter:
    """Union of YOLO instance masks for the subject classes."""

    def __init__(
        self,
        model_path: str | None = None,
        confidence: float = SEGMENTER_CONFIDENCE,
        subject_classes: Iterable[int] = SUBJECT_CLASSES,
        mask_threshold: float = SEGMENTER_MASK_THRESHOLD,
    ):
        self.confidence = confidence
        self.subject_classes = set(subject_classes)
        self.mask_threshold = mask_threshold
        self._device = "cpu"
        self.model = self._load_model(model_path)

    def _load_model(self, model_path: str | None):
        try:
            import torch
            from ultralytics import YOLO
        except ImportError as exc:
            raise ModelLoadError(f"YOLO segmenter unavailable: {exc}") from exc

        self._device = "cuda" if torch.cuda.is_available() else "cpu"
        logger.info("Segmenter device: %s", self._device)

        candidates = []
        if model_path:
            candidates += [Path(model_path), MODELS_DIR / model_path]
        candidates.append(MODELS_DIR / SEGMENTER_MODEL)

        for path in candidates:
            if path.exists():
                logger.info("Loading segmentation model from: %s", path)
                return YOLO(str(path))

        # Fall back to the hub name so ultralytics downloads the weights.
        name = model_path or SEGMENTER_MODEL
        logger.info("Loading default segmentation model: %s", name)
        try:
            return YOLO(name)
        except Exception as exc:
            raise ModelLoadError(f"Failed to load segmentation model '{name}'") from exc

    def segment(self, image: np.ndarray) -> np.ndarray:
        height, width = image.shape[:2]
        result = self.model(
            image,
            conf=self.confidence,
            imgsz=max(height, width),
            device=self._device,
            retina_masks=True,
            verbose=False,
        )[0]

        mask = np.zeros((height, width), dtype=np.uint8)
        if result.masks is None or result.boxes is None:
            return mask

        masks_np = result.masks.data.cpu().numpy()
        cls_all = result.boxes.cls.cpu().numpy().astype(int)
        for i in range(masks_np.shape[0]):
            if int(cls_all[i]) not in self.subject_classes:
                continue
            m = masks_np[i]
            if m.shape != (height, width):
                m = cv2.resize(m, (width, height), interpolation=cv2.INTER_NEAREST)
            mask[m > self.mask_threshold] = 255
        return mask


def get_segmenter(name: str = "yolo", model_path: str | None = None) -> Segmenter:
    if name == "yolo":
        return YoloSegmenter(model_path=model_path)
    raise ModelLoadError(f"Unknown segmenter '{name}'")
