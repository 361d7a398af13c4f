"""
Duration Aggregator - Fit the image interval to the song length.

Pure functions only; the Auto-Adjustment Controller decides when to call
them and what to do with the result.
"""
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from config import MIN_INTERVAL_SECONDS


ADJUSTED_NOTICE = "Slide speed automatically adjusted to {interval}s to match song length."
MINIMUM_NOTICE = (
    f"Song is shorter than video content. "
    f"Slide speed set to minimum ({MIN_INTERVAL_SECONDS}s)."
)


@dataclass(frozen=True)
class Adjustment:
    """Result of compute_adjustment.

    ``new_interval`` is None when the current interval should stay.
    ``notice`` is None when any previous notice should be cleared.
    """
    new_interval: Optional[int] = None
    notice: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.new_interval is not None


NO_CHANGE = Adjustment()


def visual_duration(images: int, videos: Sequence[float], interval: int) -> float:
    """Total on-screen time of one pass through the slideshow."""
    return images * interval + sum(videos)


def compute_adjustment(
    images: int,
    videos: Sequence[float],
    audio_duration: Optional[float],
    current_interval: int,
) -> Adjustment:
    """Shorten the interval if the slides would outlast the song.

    Args:
        images: Number of image slides.
        videos: Durations (seconds) of the video slides.
        audio_duration: Song duration in seconds, or None without a song.
        current_interval: Interval (seconds) currently configured.

    Returns:
        An Adjustment. The interval is never pushed below
        MIN_INTERVAL_SECONDS and is rounded down, so the slideshow errs on
        finishing slightly before the song rather than after it.
    """
    if audio_duration is None or images <= 0:
        return NO_CHANGE

    if audio_duration >= visual_duration(images, videos, current_interval):
        return NO_CHANGE

    available = audio_duration - sum(videos)
    if available > 0:
        new_interval = max(MIN_INTERVAL_SECONDS, math.floor(available / images))
        if new_interval == current_interval:
            return NO_CHANGE
        return Adjustment(new_interval, ADJUSTED_NOTICE.format(interval=new_interval))

    # Song is shorter than the video content alone
    if current_interval == MIN_INTERVAL_SECONDS:
        return NO_CHANGE
    return Adjustment(MIN_INTERVAL_SECONDS, MINIMUM_NOTICE)
