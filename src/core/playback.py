"""
Playback State Machine - Drives a running slideshow.

A PlaybackSession cycles Slide(0) -> Slide(1) -> ... -> Slide(N-1) ->
Slide(0) until it is closed. Image slides advance on a timer, video slides
advance when the clip ends. The song restarts at full volume on every
return to slide 0 and fades out linearly across the last slide.

The session owns every resource it uses (timers, the input guard, the
temporary files behind memory-backed media) and releases all of them in
close(). Audio and video output go through the small AudioSink/VideoSink
interfaces so the state machine runs without real multimedia in tests.
"""
import contextlib
import dataclasses
import logging
import math
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from PyQt6.QtCore import QCoreApplication, QEvent, QObject, Qt, QTimer, pyqtSignal

from config import CLOCK_TICK_MS, FADE_TICK_MS
from models.media import AudioTrack, MediaItem, MediaKind
from models.settings import PlaybackSettings


logger = logging.getLogger(__name__)


class PlaybackRejected(RuntimeError):
    """A sink refused to start playback (e.g. unsupported codec)."""


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------

class AudioSink:
    """Where the song is played."""

    def set_source(self, path: str):
        raise NotImplementedError

    def volume(self) -> float:
        raise NotImplementedError

    def set_volume(self, volume: float):
        raise NotImplementedError

    def seek(self, position_ms: int):
        raise NotImplementedError

    def play(self):
        raise NotImplementedError

    def stop(self):
        """Stop and drop the source so its file can be deleted."""
        raise NotImplementedError


class VideoSink:
    """Where video slides are shown."""

    def set_ended_callback(self, callback: Optional[Callable[[], None]]):
        raise NotImplementedError

    def play_from_start(self, path: str):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    def release(self):
        """Stop and drop the current source so its file can be deleted."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Advancement policies
# ---------------------------------------------------------------------------

class TimerAdvance:
    """Image slides: advance after the configured interval."""

    def __init__(self, session: "PlaybackSession"):
        self.session = session
        self._index = -1
        self._timer = QTimer(session)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)

    @property
    def is_armed(self) -> bool:
        return self._timer.isActive()

    def arm(self, index: int):
        self._index = index
        self._timer.start(self.session.settings.interval_seconds * 1000)

    def disarm(self):
        self._timer.stop()
        self._index = -1

    def _on_timeout(self):
        index, self._index = self._index, -1
        self.session._advance_from(index)


class EndedSignalAdvance:
    """Video slides: advance when the video sink reports the clip ended."""

    def __init__(self, session: "PlaybackSession"):
        self.session = session
        self._index: Optional[int] = None

    @property
    def is_armed(self) -> bool:
        return self._index is not None

    def arm(self, index: int):
        self._index = index

    def disarm(self):
        self._index = None

    def on_ended(self):
        if self._index is None:
            return  # Ended after the slide was left
        index, self._index = self._index, None
        self.session._advance_from(index)


ADVANCE_POLICIES = {
    MediaKind.IMAGE: TimerAdvance,
    MediaKind.VIDEO: EndedSignalAdvance,
}


# ---------------------------------------------------------------------------
# Volume fade
# ---------------------------------------------------------------------------

class VolumeFade(QObject):
    """Linear volume ramp to silence.

    The ramp is split into ``ceil(duration_ms / tick_ms)`` equal steps from
    the volume at start(); the last step always lands exactly on 0.
    """

    finished = pyqtSignal()

    def __init__(self, sink: AudioSink, duration_ms: int, tick_ms: int = FADE_TICK_MS, parent=None):
        super().__init__(parent)
        self.sink = sink
        self.duration_ms = duration_ms
        self.tick_ms = tick_ms
        self.total_ticks = max(1, math.ceil(duration_ms / tick_ms))
        self.ticks = 0
        self.start_volume = 1.0
        self.step = 0.0
        self._timer = QTimer(self)
        self._timer.setInterval(tick_ms)
        self._timer.timeout.connect(self._tick)

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self):
        self.ticks = 0
        self.start_volume = self.sink.volume()
        self.step = self.start_volume / self.total_ticks
        self._timer.start()

    def cancel(self):
        self._timer.stop()

    def _tick(self):
        self.ticks += 1
        if self.ticks >= self.total_ticks:
            self._timer.stop()
            self.sink.set_volume(0.0)
            self.finished.emit()
            return
        self.sink.set_volume(max(0.0, self.start_volume - self.step * self.ticks))


# ---------------------------------------------------------------------------
# Input guard
# ---------------------------------------------------------------------------

class InputGuard(QObject):
    """Application-wide event filter active while a slideshow plays.

    Swallows scrolling and context menus; Escape closes the slideshow.
    """

    def __init__(self, on_escape: Callable[[], None], parent=None):
        super().__init__(parent)
        self._on_escape = on_escape
        self._target: Optional[QObject] = None

    @property
    def is_installed(self) -> bool:
        return self._target is not None

    def install(self, target: QObject):
        if self._target is not None:
            return
        self._target = target
        target.installEventFilter(self)

    def remove(self):
        if self._target is None:
            return
        target, self._target = self._target, None
        target.removeEventFilter(self)

    def eventFilter(self, obj, event):
        event_type = event.type()
        if event_type in (QEvent.Type.Wheel, QEvent.Type.ContextMenu):
            return True
        if event_type == QEvent.Type.KeyPress and event.key() == Qt.Key.Key_Escape:
            self._on_escape()
            return True
        return False


def format_clock(now: datetime) -> str:
    """Two-line date/time text for the clock overlay."""
    return f"{now:%A}, {now:%B} {now.day}\n{now:%H:%M:%S}"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class PlaybackSession(QObject):
    """
    One run of the slideshow, from start() to close().

    The media order and settings are copied at construction; later edits
    do not affect a running session.

    Signals:
        slide_changed: Index of the slide just entered.
        caption_changed: Caption to show, or None.
        clock_tick: Clock overlay text, once per second (show_clock only).
        closed: Emitted once, after every resource has been released.
    """

    slide_changed = pyqtSignal(int)
    caption_changed = pyqtSignal(object)
    clock_tick = pyqtSignal(str)
    closed = pyqtSignal()

    def __init__(
        self,
        media: Sequence[MediaItem],
        audio: Optional[AudioTrack],
        settings: PlaybackSettings,
        audio_sink: AudioSink,
        video_sink: VideoSink,
        guard_target: Optional[QObject] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.media = tuple(media)
        self.audio = audio
        self.settings = dataclasses.replace(settings)
        self.audio_sink = audio_sink
        self.video_sink = video_sink
        self._guard_target = guard_target

        self._handles = contextlib.ExitStack()
        self._paths: List[str] = []
        self._policies = {}
        self._current_policy = None
        self._index = -1
        self._open = False
        self._closed = False

        self._guard = InputGuard(self.close, self)
        self._clock_timer = QTimer(self)
        self._clock_timer.setInterval(CLOCK_TICK_MS)
        self._clock_timer.timeout.connect(self._emit_clock)

        # The fade spans the whole last slide
        self.fade_duration_ms = self.settings.interval_seconds * 1000
        self._fade: Optional[VolumeFade] = None

    # -- Introspection -----------------------------------------------------

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_item(self) -> Optional[MediaItem]:
        if 0 <= self._index < len(self.media):
            return self.media[self._index]
        return None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def fade(self) -> Optional[VolumeFade]:
        """The fade in progress, or None."""
        if self._fade is not None and self._fade.is_active:
            return self._fade
        return None

    def path_for(self, index: int) -> str:
        """Filesystem path of slide *index* (valid until close())."""
        return self._paths[index]

    def armed_mechanisms(self) -> int:
        return sum(1 for policy in self._policies.values() if policy.is_armed)

    # -- Lifecycle ---------------------------------------------------------

    def start(self):
        """Acquire resources and show the first slide."""
        if self._open or self._closed:
            return
        if not self.media:
            raise ValueError("Nothing to play: the slideshow has no media")

        try:
            self._paths = [self._handles.enter_context(item.blob.materialize()) for item in self.media]
            audio_path = None
            if self.audio is not None:
                audio_path = self._handles.enter_context(self.audio.blob.materialize())
        except OSError:
            self._handles.close()
            raise

        self._policies = {kind: policy(self) for kind, policy in ADVANCE_POLICIES.items()}
        self.video_sink.set_ended_callback(self._policies[MediaKind.VIDEO].on_ended)
        if audio_path is not None:
            self.audio_sink.set_source(audio_path)

        app = QCoreApplication.instance()
        guard_target = self._guard_target or app
        if guard_target is not None:
            self._guard.install(guard_target)
        if app is not None:
            app.aboutToQuit.connect(self.close)

        if self.settings.show_clock:
            self._clock_timer.start()
            self._emit_clock()

        self._open = True
        logger.info("Slideshow started: %d slides, %ss interval", len(self.media), self.settings.interval_seconds)
        self._enter(0)

    def close(self):
        """Stop playback and release everything. Safe to call repeatedly."""
        if not self._open:
            return
        self._open = False
        self._closed = True

        self._disarm_current()
        self._clock_timer.stop()
        if self._fade is not None:
            self._fade.cancel()
            self._fade = None

        self.video_sink.set_ended_callback(None)
        # Players must let go of the files before the temporary copies go
        self.video_sink.release()
        self.audio_sink.stop()
        self._guard.remove()
        app = QCoreApplication.instance()
        if app is not None:
            with contextlib.suppress(TypeError):
                app.aboutToQuit.disconnect(self.close)

        self._handles.close()
        self._paths = []
        logger.info("Slideshow closed")
        self.closed.emit()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -- State machine -----------------------------------------------------

    def advance(self):
        """Move to the next slide, wrapping to 0 after the last."""
        if not self._open:
            return
        self._enter((self._index + 1) % len(self.media))

    def _advance_from(self, index: int):
        # Callbacks for a slide that is no longer current are ignored
        if not self._open or index != self._index:
            return
        self.advance()

    def _disarm_current(self):
        if self._current_policy is not None:
            self._current_policy.disarm()
            self._current_policy = None

    def _enter(self, index: int):
        self._disarm_current()
        self._index = index
        item = self.media[index]
        count = len(self.media)

        self._sync_audio(index, count)

        if item.is_video:
            try:
                self.video_sink.play_from_start(self._paths[index])
            except PlaybackRejected as e:
                logger.warning("Video playback failed for %s: %s", item.display_name, e)
        else:
            self.video_sink.stop()

        self.slide_changed.emit(index)
        caption = item.caption if (item.is_image and self.settings.captions_enabled) else None
        self.caption_changed.emit(caption or None)

        if count > 1:
            self._current_policy = self._policies[item.kind]
            self._current_policy.arm(index)

    def _sync_audio(self, index: int, count: int):
        if self.audio is None:
            return
        if index == 0:
            self._cancel_fade()
            self.audio_sink.set_volume(1.0)
            self.audio_sink.seek(0)
            try:
                self.audio_sink.play()
            except PlaybackRejected as e:
                logger.warning("Audio playback failed: %s", e)
        elif index == count - 1 and count > 1:
            self._cancel_fade()
            if self.fade_duration_ms > 0:
                self._fade = VolumeFade(self.audio_sink, self.fade_duration_ms, FADE_TICK_MS, self)
                self._fade.start()
        else:
            self._cancel_fade()

    def _cancel_fade(self):
        if self._fade is not None:
            self._fade.cancel()
            self._fade.deleteLater()
            self._fade = None

    def _emit_clock(self):
        self.clock_tick.emit(format_clock(datetime.now()))
