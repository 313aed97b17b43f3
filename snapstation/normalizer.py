"""Turn raw camera frames into canonical, orientation-correct bitmaps."""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np


def crop_box(raw_width: int, raw_height: int, target_ratio: float) -> Tuple[int, int, int, int]:
    """Return the centred ``(x, y, w, h)`` crop of a raw frame for ``target_ratio``.

    A source relatively wider than the target loses its sides, a relatively
    taller one loses its top and bottom.
    """
    if raw_width <= 0 or raw_height <= 0:
        raise ValueError(f"Invalid frame size {raw_width}x{raw_height}")
    if not target_ratio > 0:
        raise ValueError(f"target_ratio must be positive, got {target_ratio!r}")

    cam_ratio = raw_width / raw_height
    if cam_ratio > target_ratio:
        crop_height = raw_height
        crop_width = min(raw_width, max(1, round(raw_height * target_ratio)))
        offset_x = (raw_width - crop_width) // 2
        offset_y = 0
    else:
        crop_width = raw_width
        crop_height = min(raw_height, max(1, round(raw_width / target_ratio)))
        offset_x = 0
        offset_y = (raw_height - crop_height) // 2

    return offset_x, offset_y, crop_width, crop_height


def normalize_frame(raw: np.ndarray, target_ratio: float, mirror: bool) -> np.ndarray:
    """Center-crop ``raw`` to ``target_ratio`` and optionally mirror the crop.

    The flip is applied to the cropped region, so the crop stays centred on
    the same pixels whether or not the frame is mirrored.
    """
    if raw is None or raw.size == 0:
        raise ValueError("Cannot normalize an empty frame")

    if raw.ndim == 2:
        raw = cv2.cvtColor(raw, cv2.COLOR_GRAY2BGR)
    elif raw.shape[2] == 4:
        raw = cv2.cvtColor(raw, cv2.COLOR_BGRA2BGR)

    raw_height, raw_width = raw.shape[:2]
    x, y, w, h = crop_box(raw_width, raw_height, target_ratio)
    cropped = raw[y:y + h, x:x + w]

    if mirror:
        return cv2.flip(cropped, 1)
    return np.ascontiguousarray(cropped)


__all__ = ["crop_box", "normalize_frame"]
