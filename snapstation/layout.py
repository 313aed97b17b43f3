"""Slot geometry for composites of any shot count and layout variant."""

from __future__ import annotations

import math
from typing import List, Tuple

from snapstation.models import CompositeLayout, Layout, SlotZone

GAP = 20
PADDING = 40
FOOTER_HEIGHT = 120
MAX_HEIGHT = 3000


def scaled(value: float, factor: float) -> int:
    """Floor ``value`` after applying ``factor``."""
    return int(math.floor(value * factor))


def grid_shape(shot_count: int, layout: Layout) -> Tuple[int, int]:
    """Return ``(columns, rows)`` for a shot count and layout."""
    if shot_count == 6 and layout is Layout.GRID:
        return 2, 3
    if shot_count == 4 and layout is Layout.GRID:
        return 2, 2
    return 1, shot_count


def compute_layout(shot_count: int, layout: Layout, frame_width: int, frame_height: int) -> CompositeLayout:
    """Compute the composite size, scale factor and row-major slot zones.

    When the natural height exceeds ``MAX_HEIGHT`` every length, including
    the overall size, is multiplied by ``MAX_HEIGHT / natural_height`` and
    floored, so drawing and hit-testing share one coordinate space.
    """
    if shot_count < 1:
        raise ValueError(f"shot_count must be positive, got {shot_count}")
    if frame_width <= 0 or frame_height <= 0:
        raise ValueError(f"Invalid frame size {frame_width}x{frame_height}")

    columns, rows = grid_shape(shot_count, layout)
    natural_width = columns * frame_width + (columns - 1) * GAP + 2 * PADDING
    natural_height = rows * frame_height + (rows - 1) * GAP + 2 * PADDING + FOOTER_HEIGHT

    if natural_height > MAX_HEIGHT:
        scale_factor = MAX_HEIGHT / natural_height
        width = scaled(natural_width, scale_factor)
        # natural_height * scale_factor can land a hair under the ceiling in floating point
        height = MAX_HEIGHT
    else:
        scale_factor = 1.0
        width = natural_width
        height = natural_height

    zones: List[SlotZone] = []
    for index in range(shot_count):
        col = index % columns
        row = index // columns
        x = PADDING + col * (frame_width + GAP)
        y = PADDING + row * (frame_height + GAP)
        zones.append(
            SlotZone(
                index=index,
                x=scaled(x, scale_factor),
                y=scaled(y, scale_factor),
                w=scaled(frame_width, scale_factor),
                h=scaled(frame_height, scale_factor),
            )
        )

    return CompositeLayout(
        width=width,
        height=height,
        natural_width=natural_width,
        natural_height=natural_height,
        scale_factor=scale_factor,
        columns=columns,
        rows=rows,
        zones=tuple(zones),
    )


__all__ = [
    "FOOTER_HEIGHT",
    "GAP",
    "MAX_HEIGHT",
    "PADDING",
    "compute_layout",
    "grid_shape",
    "scaled",
]
