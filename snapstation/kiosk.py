"""OpenCV window front-end driving a :class:`PhotoBooth` from keyboard and mouse."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from snapstation.app import PhotoBooth
from snapstation.capture import CaptureBusyError, CaptureSourceError
from snapstation.config import ASPECT_RATIO_PRESETS, Config
from snapstation.filters import next_filter
from snapstation.interaction import TapOutcome
from snapstation.models import PAPER_PALETTE, ConfirmRetake, Layout, SlotSelected

WINDOW_NAME = "SnapStation"
FRAME_INTERVAL = 1 / 30

KEY_ACTIONS = {
    ord(" "): "shutter",
    ord("f"): "filter",
    ord("p"): "paper",
    ord("c"): "camera",
    ord("g"): "grid",
    ord("s"): "strip",
    ord("r"): "ratio",
    ord("y"): "confirm",
    ord("n"): "decline",
    ord("d"): "download",
    ord("b"): "back",
    ord("q"): "quit",
    27: "quit",
    ord("1"): "count:1",
    ord("4"): "count:4",
    ord("6"): "count:6",
    ord("8"): "count:8",
}


def key_action(key: int) -> Optional[str]:
    if key < 0:
        return None
    return KEY_ACTIONS.get(key & 0xFF)


def fit_to_display(image: np.ndarray, max_width: int, max_height: int) -> np.ndarray:
    """Downscale ``image`` to fit inside ``max_width`` x ``max_height``."""
    height, width = image.shape[:2]
    factor = min(1.0, max_width / width, max_height / height)
    if factor >= 1.0:
        return image
    size = (max(1, int(width * factor)), max(1, int(height * factor)))
    return cv2.resize(image, size, interpolation=cv2.INTER_AREA)


class KioskNavigator:
    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self.screen = "capture"

    def show_capture_screen(self) -> None:
        self.screen = "capture"

    def show_review_screen(self) -> None:
        self.screen = "review"
        self.logger.info("Review screen ready")


class Kiosk:
    """Single-window kiosk: live preview while capturing, composite while reviewing."""

    def __init__(
        self,
        config: Config,
        *,
        logger: logging.Logger,
        max_display: Tuple[int, int] = (1280, 800),
    ) -> None:
        self.logger = logger
        self.max_display = max_display
        self.navigator = KioskNavigator(logger)
        self.booth = PhotoBooth.from_config(
            config,
            logger=logger,
            navigator=self.navigator,
            on_countdown=self._on_countdown,
            on_flash=self._on_flash,
        )
        self.countdown = 0
        self.flash = False
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._pending_taps: List[Tuple[int, int]] = []
        self._display_size: Optional[Tuple[int, int]] = None

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_countdown(self, remaining: int) -> None:
        self.countdown = remaining

    def _on_flash(self, active: bool) -> None:
        self.flash = active

    def _on_mouse(self, event, x, y, flags, param) -> None:
        if event == cv2.EVENT_LBUTTONDOWN:
            self._pending_taps.append((x, y))

    def _launch(self, coroutine) -> None:
        self._task = asyncio.ensure_future(coroutine)
        self._task.add_done_callback(self._log_task_result)

    def _log_task_result(self, task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Capture failed: %s", exc)

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    def handle_action(self, action: str) -> None:
        booth = self.booth
        try:
            if action == "quit":
                self.running = False
            elif action == "shutter":
                if self.navigator.screen == "capture" and not booth.capturing:
                    self._launch(booth.start_sequence())
            elif action == "filter":
                booth.set_filter(next_filter(booth.state.filter_id))
            elif action == "paper":
                names = list(PAPER_PALETTE)
                current = names.index(booth.state.paper.name) if booth.state.paper.name in names else -1
                booth.set_paper(names[(current + 1) % len(names)])
            elif action == "camera":
                booth.switch_facing()
            elif action in ("grid", "strip"):
                booth.set_format(booth.state.config.shot_count, Layout(action))
            elif action.startswith("count:"):
                booth.set_format(int(action.split(":", 1)[1]), booth.state.config.layout)
            elif action == "ratio":
                ratios = [value for _, value in ASPECT_RATIO_PRESETS]
                current = booth.state.config.target_ratio
                index = min(range(len(ratios)), key=lambda i: abs(ratios[i] - current))
                booth.set_aspect_ratio(ratios[(index + 1) % len(ratios)])
            elif action in ("confirm", "decline"):
                if isinstance(booth.machine.state, ConfirmRetake):
                    self._launch(booth.resolve_retake(action == "confirm"))
            elif action == "download":
                booth.export()
            elif action == "back":
                if not booth.capturing:
                    booth.back_to_capture()
        except (CaptureBusyError, CaptureSourceError, ValueError) as exc:
            self.logger.warning("Ignoring '%s': %s", action, exc)

    def _process_taps(self) -> None:
        taps, self._pending_taps = self._pending_taps, []
        if self.navigator.screen != "review" or self._display_size is None:
            return
        for x, y in taps:
            outcome = self.booth.handle_tap(x, y, self._display_size)
            if outcome is TapOutcome.CONFIRM_RETAKE:
                self.logger.info("Press 'y' to retake this photo or 'n' to keep it")

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _capture_view(self) -> np.ndarray:
        booth = self.booth
        try:
            frame = booth.source.current_frame()
        except CaptureSourceError:
            frame = np.zeros((480, 640, 3), dtype=np.uint8)
        if booth.state.facing.mirrored:
            frame = cv2.flip(frame, 1)
        view = fit_to_display(frame, *self.max_display).copy()

        if self.flash:
            view[:] = 255
        elif self.countdown > 0:
            text = str(self.countdown)
            scale = view.shape[0] / 120
            (w, h), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_DUPLEX, scale, 6)
            origin = ((view.shape[1] - w) // 2, (view.shape[0] + h) // 2)
            cv2.putText(view, text, origin, cv2.FONT_HERSHEY_DUPLEX, scale, (255, 255, 255), 6, cv2.LINE_AA)
        else:
            config = booth.state.config
            status = f"{config.shot_count} x {config.layout.value}  |  {booth.state.facing.value}  |  SPACE to start"
            cv2.putText(view, status, (16, 32), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2, cv2.LINE_AA)
        return view

    def _review_view(self) -> np.ndarray:
        image = self.booth.display_image()
        if image is None:
            self._display_size = None
            return np.zeros((480, 640, 3), dtype=np.uint8)
        view = fit_to_display(image, *self.max_display)
        self._display_size = (view.shape[1], view.shape[0])

        state = self.booth.machine.state
        prompt = None
        if isinstance(state, SlotSelected):
            prompt = "Tap another photo to swap, or the same one to retake"
        elif isinstance(state, ConfirmRetake):
            prompt = f"Retake photo {state.index + 1}? (y/n)"
        if prompt:
            view = view.copy()
            cv2.putText(view, prompt, (16, 32), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 255), 2, cv2.LINE_AA)
        return view

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run_async(self) -> None:
        self.booth.start()
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.setMouseCallback(WINDOW_NAME, self._on_mouse)
        self.running = True
        try:
            while self.running:
                self._process_taps()
                if self.navigator.screen == "review":
                    view = self._review_view()
                else:
                    view = self._capture_view()
                cv2.imshow(WINDOW_NAME, view)
                action = key_action(cv2.waitKey(1))
                if action:
                    self.handle_action(action)
                await asyncio.sleep(FRAME_INTERVAL)
        finally:
            if self._task is not None and not self._task.done():
                self._task.cancel()
            self.booth.stop()
            cv2.destroyAllWindows()
            self.logger.info("SnapStation stopped")

    def run(self) -> None:
        asyncio.run(self.run_async())


__all__ = ["Kiosk", "KioskNavigator", "fit_to_display", "key_action"]
