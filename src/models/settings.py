"""
Playback settings shared by the editor and the player.
"""
from dataclasses import dataclass
from enum import Enum

from config import DEFAULT_INTERVAL_SECONDS, MIN_INTERVAL_SECONDS


class TransitionStyle(str, Enum):
    FADE = "fade"
    KEN_BURNS = "kenburns"
    SLIDE_RIGHT = "slideright"
    SLIDE_BOTTOM = "slidebottom"
    ZOOM_IN = "zoomin"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self]


_STYLE_LABELS = {
    TransitionStyle.FADE: "Fade",
    TransitionStyle.KEN_BURNS: "Ken Burns",
    TransitionStyle.SLIDE_RIGHT: "Slide Right",
    TransitionStyle.SLIDE_BOTTOM: "Slide Bottom",
    TransitionStyle.ZOOM_IN: "Zoom In",
}


@dataclass
class PlaybackSettings:
    """Per-slideshow playback settings.

    Attributes:
        interval_seconds: How long an image slide stays on screen (>= 1).
        transition_style: Entry animation for each slide.
        show_clock: Show the date/clock overlay.
        captions_enabled: Show smart captions under images.
    """
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS
    transition_style: TransitionStyle = TransitionStyle.KEN_BURNS
    show_clock: bool = True
    captions_enabled: bool = False

    def __post_init__(self):
        self.interval_seconds = max(MIN_INTERVAL_SECONDS, int(self.interval_seconds))
        self.transition_style = TransitionStyle(self.transition_style)

    def to_dict(self) -> dict:
        return {
            "interval_seconds": self.interval_seconds,
            "transition_style": self.transition_style.value,
            "show_clock": self.show_clock,
            "captions_enabled": self.captions_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlaybackSettings":
        style = data.get("transition_style", TransitionStyle.KEN_BURNS.value)
        try:
            style = TransitionStyle(style)
        except ValueError:
            # Unknown style from a newer/older file: fall back like the player does
            style = TransitionStyle.FADE
        return cls(
            interval_seconds=data.get("interval_seconds", DEFAULT_INTERVAL_SECONDS),
            transition_style=style,
            show_clock=data.get("show_clock", True),
            captions_enabled=data.get("captions_enabled", False),
        )
