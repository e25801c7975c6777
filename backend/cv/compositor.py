"""
Action shot composition from selected frames and their masks.
"""
from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np

from cv.config import OVERLAY_ALPHA, OVERLAY_MIN_ALPHA


class CompositeMode(str, Enum):
    LAST = "last"
    OVERLAY = "overlay"


def threshold_subject(image: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Keep the image's pixels where the mask is set, zero elsewhere."""
    subject = np.zeros_like(image)
    keep = mask > 0
    subject[keep] = image[keep]
    return subject


def composite_overlay(
    base: np.ndarray,
    overlay: np.ndarray,
    overlay_mask: np.ndarray,
    alpha: float,
) -> np.ndarray:
    """out = base * (1 - s) + overlay * s, with s = alpha where the overlay mask is set."""
    strength = np.where(overlay_mask > 0, alpha, 0.0).astype(np.float32)[..., None]
    out = base.astype(np.float32) * (1.0 - strength) + overlay.astype(np.float32) * strength
    return np.clip(out, 0, 255).astype(np.uint8)


def compose(
    frames: Sequence[np.ndarray],
    masks: Sequence[np.ndarray],
    indices: Sequence[int],
    mode: CompositeMode | str = CompositeMode.LAST,
    alpha: float = OVERLAY_ALPHA,
    min_alpha: float = OVERLAY_MIN_ALPHA,
) -> np.ndarray:
    """
    Build the final image for a non-empty selection.

    LAST returns the frame at the last selected index. OVERLAY paints the
    subjects of the earlier selected frames onto that frame, oldest first
    and faintest, then repaints the hero subject on top.
    """
    if not indices:
        raise ValueError("compose() needs at least one selected index")
    mode = CompositeMode(mode)
    hero = indices[-1]
    image = frames[hero].copy()
    if mode is CompositeMode.LAST or len(indices) == 1:
        return image

    alphas = np.linspace(min_alpha, alpha, num=len(indices) - 1)
    for idx, strength in zip(indices[:-1], alphas):
        subject = threshold_subject(frames[idx], masks[idx])
        image = composite_overlay(image, subject, masks[idx], float(strength))

    return composite_overlay(image, frames[hero], masks[hero], 1.0)
