"""Data models used across the photo booth."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np


class Layout(str, Enum):
    """Arrangement variant of the composite."""

    STRIP = "strip"
    GRID = "grid"
    SINGLE = "single"


class Facing(str, Enum):
    """Which physical camera is active."""

    FRONT = "front"
    BACK = "back"

    @property
    def mirrored(self) -> bool:
        return self is Facing.FRONT

    def toggled(self) -> "Facing":
        return Facing.BACK if self is Facing.FRONT else Facing.FRONT


class FilterId(str, Enum):
    """Named visual filters applied when displaying or exporting."""

    NONE = "none"
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    VIVID = "vivid"
    FADE = "fade"
    NOIR = "noir"


@dataclass(frozen=True)
class CaptureConfiguration:
    """User-chosen shot count, layout variant and target aspect ratio."""

    shot_count: int = 4
    layout: Layout = Layout.GRID
    target_ratio: float = 4 / 3

    def __post_init__(self) -> None:
        if int(self.shot_count) != self.shot_count or self.shot_count < 1:
            raise ValueError(f"shot_count must be a positive integer, got {self.shot_count!r}")
        if not isinstance(self.layout, Layout):
            raise ValueError(f"Unknown layout: {self.layout!r}")
        if not self.target_ratio > 0:
            raise ValueError(f"target_ratio must be positive, got {self.target_ratio!r}")


@dataclass(frozen=True)
class PaperColor:
    """Background fill of the composite; dark paper flips the branding text to light."""

    name: str
    hex: str
    is_dark: bool = False

    @property
    def bgr(self) -> Tuple[int, int, int]:
        value = self.hex.lstrip("#")
        r = int(value[0:2], 16)
        g = int(value[2:4], 16)
        b = int(value[4:6], 16)
        return (b, g, r)


PAPER_PALETTE: Dict[str, PaperColor] = {
    "white": PaperColor("white", "#ffffff"),
    "black": PaperColor("black", "#000000", is_dark=True),
    "cream": PaperColor("cream", "#f5efe0"),
    "pink": PaperColor("pink", "#ffd6e0"),
    "sky": PaperColor("sky", "#d6ecff"),
}
DEFAULT_PAPER = PAPER_PALETTE["white"]


def paper_by_name(name: str) -> PaperColor:
    """Look up a palette entry, raising ``KeyError`` for unknown names."""
    return PAPER_PALETTE[name.strip().lower()]


@dataclass(eq=False)
class Frame:
    """One normalized captured bitmap destined for a single slot."""

    pixels: np.ndarray
    sequence_index: int

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


class FrameSet:
    """Ordered collection of frames, one per slot."""

    def __init__(self, frames: Optional[List[Frame]] = None) -> None:
        self._frames: List[Frame] = list(frames or [])

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]

    def frames(self) -> List[Frame]:
        return list(self._frames)

    def clear(self) -> None:
        self._frames.clear()

    def append(self, frame: Frame) -> None:
        self._frames.append(frame)

    def replace(self, index: int, frame: Frame) -> Frame:
        """Replace the frame at ``index`` in place, returning the previous one."""
        self._check_index(index)
        previous = self._frames[index]
        self._frames[index] = frame
        return previous

    def swap(self, first: int, second: int) -> None:
        self._check_index(first)
        self._check_index(second)
        self._frames[first], self._frames[second] = self._frames[second], self._frames[first]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._frames):
            raise IndexError(f"Slot index {index} out of range for {len(self._frames)} frames")


@dataclass(frozen=True)
class SlotZone:
    """Composite-space rectangle occupied by slot ``index``."""

    index: int
    x: int
    y: int
    w: int
    h: int

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.w and self.y <= py < self.y + self.h

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)


@dataclass(frozen=True)
class CompositeLayout:
    """Geometry of a composite: clamped size, scale factor and slot zones."""

    width: int
    height: int
    natural_width: int
    natural_height: int
    scale_factor: float
    columns: int
    rows: int
    zones: Tuple[SlotZone, ...]


@dataclass
class Composite:
    """Rendered composite buffers and the geometry they were drawn with."""

    layout: CompositeLayout
    base_image: np.ndarray
    clean_image: np.ndarray

    @property
    def width(self) -> int:
        return self.layout.width

    @property
    def height(self) -> int:
        return self.layout.height

    @property
    def scale_factor(self) -> float:
        return self.layout.scale_factor


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class SlotSelected:
    index: int


@dataclass(frozen=True)
class ConfirmRetake:
    index: int


@dataclass(frozen=True)
class RetakePending:
    index: int


InteractionState = Union[Idle, SlotSelected, ConfirmRetake, RetakePending]


__all__ = [
    "CaptureConfiguration",
    "Composite",
    "CompositeLayout",
    "ConfirmRetake",
    "DEFAULT_PAPER",
    "Facing",
    "FilterId",
    "Frame",
    "FrameSet",
    "Idle",
    "InteractionState",
    "Layout",
    "PAPER_PALETTE",
    "PaperColor",
    "RetakePending",
    "SlotSelected",
    "SlotZone",
    "paper_by_name",
]
