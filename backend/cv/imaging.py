"""
Image helpers: square crop, resize, mask coercion and PNG codec.
"""
from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np


def center_square_crop(frame: np.ndarray) -> np.ndarray:
    """Crop the centered square (side = min(width, height)) out of a frame."""
    height, width = frame.shape[:2]
    side = min(width, height)
    ox = (width - side) // 2
    oy = (height - side) // 2
    return frame[oy:oy + side, ox:ox + side]


def resize_square(image: np.ndarray, size: int) -> np.ndarray:
    if image.shape[0] == size and image.shape[1] == size:
        return image.copy()
    # INTER_AREA for downscaling camera frames, INTER_LINEAR when upscaling.
    interpolation = cv2.INTER_AREA if image.shape[0] > size else cv2.INTER_LINEAR
    return cv2.resize(image, (size, size), interpolation=interpolation)


def prepare_frame(frame: np.ndarray, size: int) -> np.ndarray:
    """Frame -> ProcessedFrame (centered square crop resized to size x size)."""
    return resize_square(center_square_crop(frame), size)


def coerce_mask(result, size: int) -> np.ndarray:
    """
    Turn a segmenter output into a single-channel uint8 mask (0 or 255).

    Accepts a 2D array, an HxWx1 array, or a non-empty sequence whose first
    element is one of those. Anything else raises ValueError.
    """
    if result is None:
        raise ValueError("segmenter returned no result")
    if isinstance(result, Sequence) and not isinstance(result, (str, bytes)):
        if len(result) == 0:
            raise ValueError("segmenter returned an empty result list")
        result = result[0]
    if not isinstance(result, np.ndarray):
        raise ValueError(f"unexpected mask type {type(result).__name__}")
    if result.ndim == 3 and result.shape[2] == 1:
        result = result[..., 0]
    if result.ndim != 2:
        raise ValueError(f"expected a single-channel mask, got shape {result.shape}")
    if result.shape != (size, size):
        raise ValueError(f"mask shape {result.shape} does not match {size}x{size}")
    return np.where(result > 0, 255, 0).astype(np.uint8)


def encode_png(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()


def decode_image(data: bytes) -> np.ndarray | None:
    """Decode an uploaded image (any format OpenCV reads) into a BGR array."""
    if not data:
        return None
    arr = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)
