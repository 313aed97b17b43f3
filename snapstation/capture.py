"""Camera access and the timed capture sequence."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

import cv2
import numpy as np

from snapstation.models import CaptureConfiguration, Facing, Frame, FrameSet
from snapstation.normalizer import normalize_frame


class CaptureSourceError(RuntimeError):
    """Raised when the camera cannot be opened or read."""


class CaptureBusyError(RuntimeError):
    """Raised when a capture is requested while another one is running."""


class CaptureSource(Protocol):
    def acquire(self, facing: Facing) -> None: ...

    def current_frame(self) -> np.ndarray: ...

    def release(self) -> None: ...


class Navigator(Protocol):
    def show_capture_screen(self) -> None: ...

    def show_review_screen(self) -> None: ...


class LoggingNavigator:
    """Navigator that only records screen changes in the log."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self.screen = "capture"

    def show_capture_screen(self) -> None:
        self.screen = "capture"
        self.logger.info("Showing capture screen")

    def show_review_screen(self) -> None:
        self.screen = "review"
        self.logger.info("Showing review screen")


class OpenCVCaptureSource:
    """Live frames from a ``cv2.VideoCapture`` device chosen by facing."""

    def __init__(
        self,
        device_map: Dict[Facing, int],
        *,
        ideal_width: int,
        ideal_height: int,
        logger: logging.Logger,
        capture_factory: Callable[[int], "cv2.VideoCapture"] = cv2.VideoCapture,
    ) -> None:
        self.device_map = device_map
        self.ideal_width = ideal_width
        self.ideal_height = ideal_height
        self.logger = logger
        self.capture_factory = capture_factory
        self.facing: Optional[Facing] = None
        self._capture: Optional[cv2.VideoCapture] = None

    def _open(self, device: int, constrained: bool) -> Optional["cv2.VideoCapture"]:
        capture = self.capture_factory(device)
        if not capture.isOpened():
            capture.release()
            return None
        if constrained:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.ideal_width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.ideal_height)
        ok, _ = capture.read()
        if not ok:
            capture.release()
            return None
        return capture

    def acquire(self, facing: Facing) -> None:
        """Open the device for ``facing``, retrying without the size request."""
        self.release()
        device = self.device_map[facing]

        capture = self._open(device, constrained=True)
        if capture is None:
            self.logger.warning(
                "Camera %s (%s) rejected %sx%s; retrying with default resolution",
                device,
                facing.value,
                self.ideal_width,
                self.ideal_height,
            )
            capture = self._open(device, constrained=False)
        if capture is None:
            raise CaptureSourceError(f"Unable to open camera {device} ({facing.value})")

        self._capture = capture
        self.facing = facing
        self.logger.info("Camera %s acquired for %s facing", device, facing.value)

    def current_frame(self) -> np.ndarray:
        if self._capture is None:
            raise CaptureSourceError("Camera has not been acquired")
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CaptureSourceError("Failed to read a frame from the camera")
        return frame

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None


@dataclass(frozen=True)
class CaptureTiming:
    """Durations (seconds) of the countdown, the pause between shots and the flash."""

    countdown_seconds: int = 3
    inter_shot_pause: float = 0.8
    flash_duration: float = 0.15
    tick_seconds: float = 1.0


class CaptureOrchestrator:
    """Drive the multi-shot sequence and single-slot retakes."""

    def __init__(
        self,
        source: CaptureSource,
        navigator: Navigator,
        *,
        timing: CaptureTiming,
        logger: logging.Logger,
        on_countdown: Optional[Callable[[int], None]] = None,
        on_flash: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self.source = source
        self.navigator = navigator
        self.timing = timing
        self.logger = logger
        self.on_countdown = on_countdown
        self.on_flash = on_flash
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    # ------------------------------------------------------------------
    # Capture modes
    # ------------------------------------------------------------------

    async def run_sequence(
        self,
        frames: FrameSet,
        config: CaptureConfiguration,
        facing: Facing,
    ) -> FrameSet:
        """Capture ``config.shot_count`` frames into ``frames`` from scratch."""
        self._enter("sequence")
        try:
            self.navigator.show_capture_screen()
            frames.clear()
            self.logger.info(
                "Starting %s-shot %s sequence (%s facing)",
                config.shot_count,
                config.layout.value,
                facing.value,
            )
            for index in range(config.shot_count):
                await self._countdown()
                frames.append(self._snap(index, config, facing))
                await self._flash()
                self.logger.info("Captured shot %s/%s", index + 1, config.shot_count)
                if index < config.shot_count - 1:
                    await asyncio.sleep(self.timing.inter_shot_pause)
            return frames
        finally:
            self._busy = False

    async def retake(
        self,
        frames: FrameSet,
        index: int,
        config: CaptureConfiguration,
        facing: Facing,
    ) -> Frame:
        """Replace ``frames[index]`` with a fresh shot; every other slot is untouched."""
        self._enter("retake")
        try:
            if not 0 <= index < len(frames):
                raise ValueError(f"Cannot retake slot {index} of {len(frames)}")
            self.navigator.show_capture_screen()
            self.logger.info("Retaking slot %s", index)
            await self._countdown()
            frame = self._snap(index, config, facing)
            frames.replace(index, frame)
            await self._flash()
            return frame
        finally:
            self._busy = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _enter(self, mode: str) -> None:
        if self._busy:
            raise CaptureBusyError(f"Cannot start {mode}: a capture is already running")
        self._busy = True

    def _snap(self, index: int, config: CaptureConfiguration, facing: Facing) -> Frame:
        raw = self.source.current_frame()
        pixels = normalize_frame(raw, config.target_ratio, mirror=facing.mirrored)
        return Frame(pixels=pixels, sequence_index=index)

    async def _countdown(self) -> None:
        for remaining in range(self.timing.countdown_seconds, 0, -1):
            if self.on_countdown:
                self.on_countdown(remaining)
            await asyncio.sleep(self.timing.tick_seconds)
        if self.on_countdown:
            self.on_countdown(0)

    async def _flash(self) -> None:
        if self.on_flash:
            self.on_flash(True)
        await asyncio.sleep(self.timing.flash_duration)
        if self.on_flash:
            self.on_flash(False)


__all__ = [
    "CaptureBusyError",
    "CaptureOrchestrator",
    "CaptureSource",
    "CaptureSourceError",
    "CaptureTiming",
    "LoggingNavigator",
    "Navigator",
    "OpenCVCaptureSource",
]
