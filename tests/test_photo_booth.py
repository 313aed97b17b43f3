import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from snapstation.app import PhotoBooth
from snapstation.capture import CaptureBusyError, CaptureSourceError, CaptureTiming
from snapstation.filters import apply_filter
from snapstation.interaction import TapOutcome
from snapstation.models import (
    PAPER_PALETTE,
    CaptureConfiguration,
    Facing,
    FilterId,
    Idle,
    Layout,
    SlotSelected,
)
from snapstation.rendering import CompositeRenderer

NO_WAIT = CaptureTiming(countdown_seconds=1, inter_shot_pause=0, flash_duration=0, tick_seconds=0)


class FakeSource:
    def __init__(self, fail_at=None):
        self.count = 0
        self.fail_at = fail_at
        self.acquired = []
        self.released = False

    def acquire(self, facing):
        self.acquired.append(facing)

    def current_frame(self):
        if self.count == self.fail_at:
            raise CaptureSourceError("camera unplugged")
        frame = np.full((48, 64, 3), 10 * (self.count + 1), dtype=np.uint8)
        self.count += 1
        return frame

    def release(self):
        self.released = True


class RecordingNavigator:
    def __init__(self):
        self.screens = []

    def show_capture_screen(self):
        self.screens.append("capture")

    def show_review_screen(self):
        self.screens.append("review")


class RecordingSink:
    def __init__(self, result=Path("out.png")):
        self.calls = []
        self.result = result

    def export(self, image, suggested_filename):
        self.calls.append((image, suggested_filename))
        return self.result


class CountingRenderer(CompositeRenderer):
    def __init__(self):
        super().__init__(logger=logging.getLogger("booth-tests"))
        self.calls = 0

    def render(self, *args, **kwargs):
        self.calls += 1
        return super().render(*args, **kwargs)


def make_booth(**kwargs):
    source = kwargs.pop("source", FakeSource())
    navigator = RecordingNavigator()
    sink = kwargs.pop("sink", RecordingSink())
    renderer = CountingRenderer()
    booth = PhotoBooth(
        source,
        navigator=navigator,
        export_sink=sink,
        logger=logging.getLogger("booth-tests"),
        renderer=renderer,
        timing=NO_WAIT,
        capture_config=kwargs.pop("capture_config", CaptureConfiguration(shot_count=4, layout=Layout.GRID)),
        facing=Facing.BACK,
        clock=lambda: 1700000000.5,
        today=lambda: date(2026, 10, 19),
        **kwargs,
    )
    return booth, source, navigator, sink, renderer


def centre_of(booth, index):
    return booth.composite.layout.zones[index].center


def test_sequence_builds_composite_and_shows_review():
    booth, source, navigator, _, _ = make_booth()

    booth.start()
    composite = asyncio.run(booth.start_sequence())

    assert source.acquired == [Facing.BACK]
    assert composite is not None
    assert len(booth.state.frames) == 4
    assert composite.layout.columns == 2 and composite.layout.rows == 2
    assert navigator.screens == ["capture", "capture", "review"]
    assert booth.capturing is False


def test_composite_is_none_before_any_capture():
    booth, _, _, sink, _ = make_booth()

    assert booth.composite is None
    assert booth.display_image() is None
    assert booth.handle_tap(10, 10) is TapOutcome.IGNORED
    assert booth.export() is None
    assert sink.calls == []


def test_filter_switch_reuses_cached_composite():
    booth, _, _, _, renderer = make_booth()
    asyncio.run(booth.start_sequence())
    calls = renderer.calls
    base = booth.composite.base_image.copy()

    booth.set_filter(FilterId.GRAYSCALE)
    shown = booth.display_image()

    assert renderer.calls == calls
    assert np.array_equal(booth.composite.base_image, base)
    assert np.array_equal(shown[..., 0], shown[..., 2])


def test_paper_change_triggers_rebuild():
    booth, _, _, _, renderer = make_booth()
    asyncio.run(booth.start_sequence())
    calls = renderer.calls

    booth.set_paper("black")
    composite = booth.composite

    assert renderer.calls == calls + 1
    assert tuple(int(v) for v in composite.base_image[5, 5]) == (0, 0, 0)


def test_tap_to_select_then_swap():
    booth, _, _, _, _ = make_booth()
    asyncio.run(booth.start_sequence())
    original = booth.state.frames.frames()

    assert booth.handle_tap(*centre_of(booth, 0)) is TapOutcome.SELECTED
    assert booth.machine.state == SlotSelected(0)
    composite = booth.composite
    assert not np.array_equal(composite.base_image, composite.clean_image)

    assert booth.handle_tap(*centre_of(booth, 2)) is TapOutcome.SWAPPED
    assert booth.state.frames[0] is original[2]
    assert booth.state.frames[2] is original[0]
    composite = booth.composite
    assert np.array_equal(composite.base_image, composite.clean_image)


def test_tap_in_display_coordinates():
    booth, _, _, _, _ = make_booth()
    asyncio.run(booth.start_sequence())
    composite = booth.composite
    cx, cy = composite.layout.zones[3].center
    display = (composite.width / 2, composite.height / 2)

    assert booth.handle_tap(cx / 2, cy / 2, display) is TapOutcome.SELECTED
    assert booth.machine.selected_index == 3


def test_confirmed_retake_replaces_one_slot():
    booth, _, navigator, _, _ = make_booth()
    asyncio.run(booth.start_sequence())
    original = booth.state.frames.frames()

    booth.handle_tap(*centre_of(booth, 1))
    assert booth.handle_tap(*centre_of(booth, 1)) is TapOutcome.CONFIRM_RETAKE
    outcome = asyncio.run(booth.resolve_retake(True))

    frames = booth.state.frames
    assert outcome is TapOutcome.RETAKE
    assert len(frames) == 4
    assert frames[1] is not original[1]
    assert [frames[i] for i in (0, 2, 3)] == [original[i] for i in (0, 2, 3)]
    assert booth.machine.state == Idle()
    assert navigator.screens[-2:] == ["capture", "review"]
    assert booth.composite is not None


def test_declined_retake_keeps_frames():
    booth, _, _, _, _ = make_booth()
    asyncio.run(booth.start_sequence())
    original = booth.state.frames.frames()

    booth.handle_tap(*centre_of(booth, 1))
    booth.handle_tap(*centre_of(booth, 1))
    outcome = asyncio.run(booth.resolve_retake(False))

    assert outcome is TapOutcome.DECLINED
    assert booth.state.frames.frames() == original
    assert booth.machine.state == Idle()


def test_export_uses_unhighlighted_filtered_image():
    booth, _, _, sink, _ = make_booth()
    asyncio.run(booth.start_sequence())
    booth.handle_tap(*centre_of(booth, 0))
    booth.set_filter("sepia")

    result = booth.export()

    image, filename = sink.calls[0]
    assert result == Path("out.png")
    assert filename == "snapstation-1700000000500.png"
    assert np.array_equal(image, apply_filter(booth.composite.clean_image, FilterId.SEPIA))


def test_export_failure_is_not_fatal():
    booth, _, _, sink, _ = make_booth(sink=RecordingSink(result=None))
    asyncio.run(booth.start_sequence())

    assert booth.export() is None
    assert booth.composite is not None


def test_format_change_discards_frames():
    booth, _, _, _, _ = make_booth()
    asyncio.run(booth.start_sequence())

    booth.set_format(6, "grid")

    assert booth.state.config == CaptureConfiguration(shot_count=6, layout=Layout.GRID, target_ratio=4 / 3)
    assert len(booth.state.frames) == 0
    assert booth.composite is None

    composite = asyncio.run(booth.start_sequence())
    assert composite.layout.rows == 3


def test_aspect_ratio_applies_to_next_sequence():
    booth, _, _, _, _ = make_booth()

    booth.set_aspect_ratio(1.0)
    asyncio.run(booth.start_sequence())

    assert all(frame.pixels.shape[:2] == (48, 48) for frame in booth.state.frames)


def test_settings_are_locked_while_capturing():
    timing = CaptureTiming(countdown_seconds=1, inter_shot_pause=0, flash_duration=0, tick_seconds=0.05)
    booth, _, _, _, _ = make_booth()
    booth.orchestrator.timing = timing

    async def scenario():
        task = asyncio.create_task(booth.start_sequence())
        await asyncio.sleep(0)
        assert booth.capturing is True
        with pytest.raises(CaptureBusyError):
            booth.set_format(1, "strip")
        with pytest.raises(CaptureBusyError):
            booth.switch_facing()
        assert booth.handle_tap(100, 100) is TapOutcome.IGNORED
        await task

    asyncio.run(scenario())

    assert len(booth.state.frames) == 4


def test_switch_facing_reacquires_camera():
    booth, source, _, _, _ = make_booth()

    assert booth.switch_facing() is Facing.FRONT
    assert source.acquired == [Facing.FRONT]
    assert booth.state.facing is Facing.FRONT


def test_back_to_capture_resets_filter_and_paper():
    booth, _, navigator, _, _ = make_booth()
    asyncio.run(booth.start_sequence())
    booth.set_filter("noir")
    booth.set_paper(PAPER_PALETTE["pink"])
    booth.handle_tap(*centre_of(booth, 0))

    booth.back_to_capture()

    assert booth.state.filter_id is FilterId.NONE
    assert booth.state.paper == PAPER_PALETTE["white"]
    assert booth.machine.state == Idle()
    assert navigator.screens[-1] == "capture"


def test_failed_sequence_drops_previous_composite():
    # Shots 0-3 fill the first sequence; the third shot of the second one fails.
    booth, _, navigator, sink, _ = make_booth(source=FakeSource(fail_at=6))
    asyncio.run(booth.start_sequence())
    assert booth.composite is not None

    with pytest.raises(CaptureSourceError):
        asyncio.run(booth.start_sequence())

    assert len(booth.state.frames) == 2
    assert booth.capturing is False
    assert booth.composite is None
    assert booth.display_image() is None
    assert booth.export() is None
    assert sink.calls == []
    assert navigator.screens[-1] == "capture"


def test_cancelled_sequence_drops_previous_composite():
    timing = CaptureTiming(countdown_seconds=1, inter_shot_pause=0, flash_duration=0, tick_seconds=0.05)
    booth, _, _, sink, _ = make_booth()
    asyncio.run(booth.start_sequence())
    booth.orchestrator.timing = timing

    async def scenario():
        task = asyncio.create_task(booth.start_sequence())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert booth.capturing is False
    assert booth.composite is None
    assert booth.export() is None
    assert sink.calls == []


def test_sequence_refused_while_capturing_keeps_frames():
    timing = CaptureTiming(countdown_seconds=1, inter_shot_pause=0, flash_duration=0, tick_seconds=0.05)
    booth, _, _, _, _ = make_booth()
    booth.orchestrator.timing = timing

    async def scenario():
        task = asyncio.create_task(booth.start_sequence())
        await asyncio.sleep(0)
        with pytest.raises(CaptureBusyError):
            await booth.start_sequence()
        await task

    asyncio.run(scenario())

    assert len(booth.state.frames) == 4
    assert booth.composite is not None
