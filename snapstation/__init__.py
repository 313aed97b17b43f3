"""
SnapStation: timed photo-booth capture, composite layout and tap-to-edit review.
"""

from .app import BoothState, PhotoBooth
from .config import Config, load_config
from .interaction import InteractionStateMachine, TapOutcome
from .layout import compute_layout
from .models import (
    CaptureConfiguration,
    Composite,
    Facing,
    FilterId,
    Frame,
    FrameSet,
    Layout,
    PaperColor,
    SlotZone,
)
from .normalizer import normalize_frame
from .rendering import CompositeRenderer

__all__ = [
    "BoothState",
    "CaptureConfiguration",
    "Composite",
    "CompositeRenderer",
    "Config",
    "Facing",
    "FilterId",
    "Frame",
    "FrameSet",
    "InteractionStateMachine",
    "Layout",
    "PaperColor",
    "PhotoBooth",
    "SlotZone",
    "TapOutcome",
    "compute_layout",
    "load_config",
    "normalize_frame",
]
