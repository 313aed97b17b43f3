"""Tap hit-testing and the select / swap / retake editing state machine."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence, Tuple

from snapstation.models import (
    ConfirmRetake,
    FrameSet,
    Idle,
    InteractionState,
    RetakePending,
    SlotSelected,
    SlotZone,
)


class TapOutcome(str, Enum):
    IGNORED = "ignored"
    SELECTED = "selected"
    SWAPPED = "swapped"
    CONFIRM_RETAKE = "confirm_retake"
    RETAKE = "retake"
    DECLINED = "declined"


def display_to_buffer(
    x: float,
    y: float,
    display_size: Tuple[float, float],
    buffer_size: Tuple[int, int],
) -> Tuple[float, float]:
    """Map a point on the displayed image into composite buffer coordinates.

    Sizes are ``(width, height)``.
    """
    display_width, display_height = display_size
    buffer_width, buffer_height = buffer_size
    if display_width <= 0 or display_height <= 0:
        return x, y
    return x * (buffer_width / display_width), y * (buffer_height / display_height)


def hit_test(zones: Sequence[SlotZone], x: float, y: float) -> Optional[int]:
    """Index of the first zone containing ``(x, y)``, or ``None``."""
    for zone in zones:
        if zone.contains(x, y):
            return zone.index
    return None


class InteractionStateMachine:
    """Track the editing mode of the review screen.

    Tapping a slot selects it. Tapping another slot swaps the two frames;
    tapping the same slot again asks for confirmation before a retake.
    Confirmation is non-blocking: the machine waits in ``ConfirmRetake``
    until :meth:`resolve_confirmation` is called.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("snapstation.interaction")
        self._state: InteractionState = Idle()

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def selected_index(self) -> Optional[int]:
        if isinstance(self._state, SlotSelected):
            return self._state.index
        return None

    def reset(self) -> None:
        self._state = Idle()

    def handle_tap(self, zones: Sequence[SlotZone], frames: FrameSet, x: float, y: float) -> TapOutcome:
        """Apply a tap at buffer coordinates ``(x, y)``."""
        if isinstance(self._state, (ConfirmRetake, RetakePending)):
            return TapOutcome.IGNORED

        index = hit_test(zones, x, y)
        if index is None or index >= len(frames):
            return TapOutcome.IGNORED

        if isinstance(self._state, Idle):
            self._state = SlotSelected(index)
            self.logger.debug("Selected slot %s", index)
            return TapOutcome.SELECTED

        selected = self._state.index
        if index == selected:
            self._state = ConfirmRetake(index)
            self.logger.debug("Slot %s tapped twice; awaiting retake confirmation", index)
            return TapOutcome.CONFIRM_RETAKE

        frames.swap(selected, index)
        self._state = Idle()
        self.logger.info("Swapped slots %s and %s", selected, index)
        return TapOutcome.SWAPPED

    def resolve_confirmation(self, accept: bool) -> TapOutcome:
        """Accept or decline a pending retake prompt."""
        if not isinstance(self._state, ConfirmRetake):
            return TapOutcome.IGNORED
        index = self._state.index
        if accept:
            self._state = RetakePending(index)
            return TapOutcome.RETAKE
        self._state = Idle()
        return TapOutcome.DECLINED

    def retake_finished(self) -> None:
        if isinstance(self._state, RetakePending):
            self._state = Idle()


__all__ = [
    "InteractionStateMachine",
    "TapOutcome",
    "display_to_buffer",
    "hit_test",
]
