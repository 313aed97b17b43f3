"""Non-destructive display filters applied to a cached composite."""

from __future__ import annotations

from typing import Callable, Dict, Tuple

import cv2
import numpy as np

from snapstation.models import FilterId

# Colour matrices operate on BGR pixels and produce BGR output.
_SEPIA_KERNEL = np.array(
    [
        [0.131, 0.534, 0.272],
        [0.168, 0.686, 0.349],
        [0.189, 0.769, 0.393],
    ],
    dtype=np.float32,
)

_NOIR_KERNEL = np.array(
    [
        [0.114, 0.587, 0.299],
        [0.114, 0.587, 0.299],
        [0.114, 0.587, 0.299],
    ],
    dtype=np.float32,
) * 1.15


def _identity(image: np.ndarray) -> np.ndarray:
    return image.copy()


def _grayscale(image: np.ndarray) -> np.ndarray:
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


def _sepia(image: np.ndarray) -> np.ndarray:
    toned = cv2.transform(image.astype(np.float32), _SEPIA_KERNEL)
    return np.clip(toned, 0, 255).astype(np.uint8)


def _vivid(image: np.ndarray) -> np.ndarray:
    hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV).astype(np.float32)
    hsv[..., 1] = np.clip(hsv[..., 1] * 1.4, 0, 255)
    boosted = cv2.cvtColor(hsv.astype(np.uint8), cv2.COLOR_HSV2BGR)
    return cv2.convertScaleAbs(boosted, alpha=1.1, beta=-10)


def _fade(image: np.ndarray) -> np.ndarray:
    return cv2.convertScaleAbs(image, alpha=0.8, beta=40)


def _noir(image: np.ndarray) -> np.ndarray:
    mono = cv2.transform(image.astype(np.float32), _NOIR_KERNEL)
    contrasted = (mono - 128.0) * 1.3 + 128.0
    return np.clip(contrasted, 0, 255).astype(np.uint8)


FILTERS: Dict[FilterId, Callable[[np.ndarray], np.ndarray]] = {
    FilterId.NONE: _identity,
    FilterId.GRAYSCALE: _grayscale,
    FilterId.SEPIA: _sepia,
    FilterId.VIVID: _vivid,
    FilterId.FADE: _fade,
    FilterId.NOIR: _noir,
}
FILTER_ORDER: Tuple[FilterId, ...] = tuple(FILTERS)


def apply_filter(image: np.ndarray, filter_id: FilterId) -> np.ndarray:
    """Return a filtered copy of ``image``; the input is never modified."""
    return FILTERS[FilterId(filter_id)](image)


def next_filter(current: FilterId) -> FilterId:
    index = FILTER_ORDER.index(FilterId(current))
    return FILTER_ORDER[(index + 1) % len(FILTER_ORDER)]


__all__ = ["FILTERS", "FILTER_ORDER", "apply_filter", "next_filter"]
