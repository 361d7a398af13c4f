"""
Auto-Adjustment Controller - Keep the slide interval within the song length.

The decision logic is a pure reducer, ``reduce(state, event) -> (state,
effects)``. Interval writes carry an Origin tag: a USER write is a genuine
change and triggers recomputation, an AUTO write is the controller's own
correction coming back and is only recorded. That makes the correction
converge in one step without a hidden re-entrancy flag.

Probing is asynchronous. Each USER change opens a new generation; results
for any other generation are discarded, so a slow probe for old inputs can
never overwrite a decision made for newer ones.

AutoAdjustController is the Qt driver that runs the reducer's effects.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from core.duration import compute_adjustment
from core.media_probe import MediaProbe, ProbeJob
from models.media import AudioTrack, MediaBlob, MediaItem
from runtime_config import get_config


logger = logging.getLogger(__name__)


class Origin(Enum):
    USER = "user"
    AUTO = "auto"


# ---------------------------------------------------------------------------
# State, events, effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AdjustInputs:
    """Everything the interval decision depends on."""
    image_count: int = 0
    video_ids: Tuple[str, ...] = ()
    audio_id: Optional[str] = None
    interval: int = 1

    @property
    def can_adjust(self) -> bool:
        return self.audio_id is not None and self.image_count > 0


@dataclass(frozen=True)
class AdjustState:
    inputs: AdjustInputs = AdjustInputs()
    generation: int = 0
    pending: Optional[int] = None  # generation waiting for durations
    notice: Optional[str] = None


@dataclass(frozen=True)
class InputsChanged:
    inputs: AdjustInputs
    origin: Origin = Origin.USER


@dataclass(frozen=True)
class DurationsResolved:
    generation: int
    audio_duration: float
    video_durations: Tuple[float, ...] = ()


@dataclass(frozen=True)
class ProbeFailed:
    generation: int
    reason: str = ""


@dataclass(frozen=True)
class RequestDurations:
    generation: int
    audio_id: str
    video_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ApplyInterval:
    interval: int


@dataclass(frozen=True)
class PublishNotice:
    message: Optional[str]


def reduce(state: AdjustState, event) -> Tuple[AdjustState, tuple]:
    """Advance the controller state by one event."""
    if isinstance(event, InputsChanged):
        if event.origin is Origin.AUTO:
            return replace(state, inputs=event.inputs), ()

        generation = state.generation + 1
        inputs = event.inputs
        if not inputs.can_adjust:
            new_state = AdjustState(inputs=inputs, generation=generation, pending=None, notice=None)
            return new_state, (PublishNotice(None),)

        new_state = replace(state, inputs=inputs, generation=generation, pending=generation)
        return new_state, (RequestDurations(generation, inputs.audio_id, inputs.video_ids),)

    if isinstance(event, DurationsResolved):
        if event.generation != state.pending:
            return state, ()
        inputs = state.inputs
        adjustment = compute_adjustment(
            inputs.image_count,
            event.video_durations,
            event.audio_duration,
            inputs.interval,
        )
        new_state = replace(state, pending=None, notice=adjustment.notice)
        if adjustment.changed:
            return new_state, (ApplyInterval(adjustment.new_interval), PublishNotice(adjustment.notice))
        return new_state, (PublishNotice(adjustment.notice),)

    if isinstance(event, ProbeFailed):
        if event.generation != state.pending:
            return state, ()
        return replace(state, pending=None), ()

    raise TypeError(f"Unknown event: {event!r}")


# ---------------------------------------------------------------------------
# Qt driver
# ---------------------------------------------------------------------------

class AutoAdjustController(QObject):
    """
    Watches media, audio and interval and applies interval corrections.

    Signals:
        interval_adjusted: New interval; write it back with Origin.AUTO.
        notice_changed: Human-readable notice, or None to clear it.
    """

    interval_adjusted = pyqtSignal(int)
    notice_changed = pyqtSignal(object)

    def __init__(self, probe: Optional[MediaProbe] = None, timeout_seconds: Optional[float] = None, parent=None):
        super().__init__(parent)
        self._probe = probe or MediaProbe()
        if timeout_seconds is None:
            timeout_seconds = get_config().probe_timeout_seconds
        self._timeout_ms = int(timeout_seconds * 1000)

        self._state = AdjustState()
        self._blobs: Dict[str, MediaBlob] = {}
        self._durations: Dict[str, float] = {}  # id -> probed seconds
        self._jobs: Dict[str, ProbeJob] = {}  # id -> in-flight probe
        self._request: Optional[RequestDurations] = None

        self._timeout_timer = QTimer(self)
        self._timeout_timer.setSingleShot(True)
        self._timeout_timer.timeout.connect(self._on_timeout)

    @property
    def state(self) -> AdjustState:
        return self._state

    @property
    def notice(self) -> Optional[str]:
        return self._state.notice

    @property
    def is_busy(self) -> bool:
        return self._state.pending is not None

    def known_duration(self, media_id: str) -> Optional[float]:
        return self._durations.get(media_id)

    def update(self, media: Iterable[MediaItem], audio: Optional[AudioTrack], interval: int,
               origin: Origin = Origin.USER):
        """Report the current inputs; call on every media/audio/interval change."""
        media = list(media)
        videos = [m for m in media if m.is_video]
        for item in videos:
            self._blobs[item.id] = item.blob
            if item.duration is not None:
                self._durations.setdefault(item.id, item.duration)
        if audio is not None:
            self._blobs[audio.id] = audio.blob
            if audio.duration is not None:
                self._durations.setdefault(audio.id, audio.duration)

        inputs = AdjustInputs(
            image_count=sum(1 for m in media if m.is_image),
            video_ids=tuple(v.id for v in videos),
            audio_id=audio.id if audio is not None else None,
            interval=interval,
        )
        self._dispatch(InputsChanged(inputs, origin))
        self._forget_except(set(inputs.video_ids) | ({inputs.audio_id} - {None}))

    def shutdown(self):
        """Abort in-flight probes (window closing)."""
        self._timeout_timer.stop()
        for job in self._jobs.values():
            job.abort()
        self._jobs.clear()
        self._request = None

    def _forget_except(self, keep):
        """Drop blobs, durations and probes of media no longer in the inputs."""
        for media_id in [i for i in self._jobs if i not in keep]:
            job = self._jobs.pop(media_id)
            job.abort()
            job.deleteLater()
        for cache in (self._blobs, self._durations):
            for media_id in [i for i in cache if i not in keep]:
                del cache[media_id]

    # -- Reducer plumbing --------------------------------------------------

    def _dispatch(self, event):
        old_notice = self._state.notice
        self._state, effects = reduce(self._state, event)
        for effect in effects:
            self._run(effect, old_notice)

    def _run(self, effect, old_notice: Optional[str]):
        if isinstance(effect, RequestDurations):
            self._request_durations(effect)
        elif isinstance(effect, ApplyInterval):
            logger.info("Auto-adjusting slide interval to %ss", effect.interval)
            self.interval_adjusted.emit(effect.interval)
        elif isinstance(effect, PublishNotice):
            if effect.message != old_notice:
                self.notice_changed.emit(effect.message)

    def _request_durations(self, request: RequestDurations):
        self._request = request
        self._timeout_timer.stop()
        ids = (request.audio_id,) + tuple(request.video_ids)
        missing = [i for i in ids if i not in self._durations]
        for media_id in missing:
            if media_id not in self._jobs:
                self._start_probe(media_id)
        if missing:
            self._timeout_timer.start(self._timeout_ms)
        self._try_resolve()

    def _start_probe(self, media_id: str):
        blob = self._blobs.get(media_id)
        if blob is None:
            return
        job = self._probe.probe(blob, self)
        self._jobs[media_id] = job
        job.finished.connect(lambda seconds, mid=media_id: self._on_probe_finished(mid, seconds))
        job.failed.connect(lambda reason, mid=media_id: self._on_probe_failed(mid, reason))

    def _on_probe_finished(self, media_id: str, seconds: float):
        job = self._jobs.pop(media_id, None)
        if job is None:
            return  # Aborted after its media was dropped
        job.deleteLater()
        # Cached even when stale: ids are stable, so the value stays valid
        self._durations[media_id] = seconds
        self._try_resolve()

    def _on_probe_failed(self, media_id: str, reason: str):
        job = self._jobs.pop(media_id, None)
        if job is not None:
            job.deleteLater()
        request = self._request
        if request is None or media_id not in (request.audio_id,) + tuple(request.video_ids):
            return
        self._timeout_timer.stop()
        self._request = None
        self._dispatch(ProbeFailed(request.generation, reason))

    def _try_resolve(self):
        request = self._request
        if request is None:
            return
        ids = (request.audio_id,) + tuple(request.video_ids)
        if any(i not in self._durations for i in ids):
            return
        self._timeout_timer.stop()
        self._request = None
        self._dispatch(DurationsResolved(
            request.generation,
            self._durations[request.audio_id],
            tuple(self._durations[v] for v in request.video_ids),
        ))

    def _on_timeout(self):
        request = self._request
        if request is None:
            return
        logger.warning("Duration probe timed out after %.1fs; keeping the current interval",
                       self._timeout_ms / 1000.0)
        for media_id in (request.audio_id,) + tuple(request.video_ids):
            job = self._jobs.pop(media_id, None)
            if job is not None:
                job.abort()
                job.deleteLater()
        self._request = None
        self._dispatch(ProbeFailed(request.generation, "timeout"))
