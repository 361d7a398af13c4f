"""
Slideshow editor - The in-memory slideshow being edited.

Wires the media list, the song and the playback settings to the
Auto-Adjustment Controller, the media importer and the caption worker.
The UI only talks to this object; it never mutates the models directly.
"""
import dataclasses
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from core.auto_adjust import AutoAdjustController, Origin
from core.captioner import CaptionStatus, GeminiCaptioner
from core.media_import import MediaImporter
from core.media_probe import MediaProbe
from core.playback import AudioSink, PlaybackSession, VideoSink
from models.media import AudioTrack, MediaBlob, MediaItem, MediaLimitError, MediaList, guess_mime_type
from models.project import Project
from models.settings import PlaybackSettings, TransitionStyle
from ui.threads import CaptionThread


logger = logging.getLogger(__name__)

DEFAULT_NAME = "New Slideshow"


class SlideshowEditor(QObject):
    """
    Editing session for one slideshow.

    Signals:
        media_changed: Items were added, removed, reordered or captioned.
        audio_changed: The song was selected or cleared.
        settings_changed: Any PlaybackSettings field changed.
        notice_changed: Auto-adjustment notice text, or None.
        caption_status_changed: New CaptionStatus.
        message: User-visible message (rejections, caption failures).
    """

    media_changed = pyqtSignal()
    audio_changed = pyqtSignal()
    settings_changed = pyqtSignal()
    notice_changed = pyqtSignal(object)
    caption_status_changed = pyqtSignal(object)
    message = pyqtSignal(str)

    def __init__(self, probe: Optional[MediaProbe] = None, captioner: Optional[GeminiCaptioner] = None,
                 probe_timeout: Optional[float] = None, parent=None):
        super().__init__(parent)
        self.media = MediaList()
        self.audio: Optional[AudioTrack] = None
        self.settings = PlaybackSettings()
        self.active_project_id: Optional[str] = None
        self.active_name = DEFAULT_NAME

        self._probe = probe or MediaProbe()
        self._captioner = captioner
        self._caption_thread: Optional[CaptionThread] = None
        self._retired_threads: List[CaptionThread] = []  # cancelled, still finishing a request
        self._caption_status = CaptionStatus.IDLE

        self.adjuster = AutoAdjustController(self._probe, probe_timeout, parent=self)
        self.adjuster.interval_adjusted.connect(self._on_interval_adjusted)
        self.adjuster.notice_changed.connect(self.notice_changed)

        self.importer = MediaImporter(self.media, self._probe, probe_timeout, parent=self)
        self.importer.item_added.connect(self._on_item_added)
        self.importer.rejected.connect(self.message)

    # -- Derived state -----------------------------------------------------

    @property
    def notice(self) -> Optional[str]:
        return self.adjuster.notice

    @property
    def caption_status(self) -> CaptionStatus:
        return self._caption_status

    @property
    def is_ready_to_play(self) -> bool:
        return len(self.media) > 0 and self.audio is not None

    # -- Media -------------------------------------------------------------

    def import_files(self, paths: Iterable[str]):
        self.importer.import_paths(paths)

    def remove_media(self, item_id: str) -> bool:
        if self.media.remove(item_id) is None:
            return False
        self.media_changed.emit()
        self._refresh_adjustment()
        return True

    def move_media(self, source_index: int, target_index: int) -> bool:
        if not self.media.move(source_index, target_index):
            return False
        self.media_changed.emit()
        self._refresh_adjustment()
        return True

    def select_audio(self, path: str) -> bool:
        name = Path(path).name
        if not guess_mime_type(path).startswith("audio/"):
            self.message.emit(f'"{name}" is not a supported audio file.')
            return False
        self.audio = AudioTrack(blob=MediaBlob.from_path(path))
        logger.info("Selected audio %s", name)
        self.audio_changed.emit()
        self._refresh_adjustment()
        return True

    def clear_audio(self):
        if self.audio is None:
            return
        self.audio = None
        self.audio_changed.emit()
        self._refresh_adjustment()

    def _on_item_added(self, item: MediaItem):
        self.media_changed.emit()
        self._refresh_adjustment()
        self._maybe_start_captions()

    # -- Settings ----------------------------------------------------------

    def set_interval(self, value: int, origin: Origin = Origin.USER):
        value = max(1, int(value))
        if value == self.settings.interval_seconds:
            return
        self.settings.interval_seconds = value
        self.settings_changed.emit()
        self._refresh_adjustment(origin)

    def set_transition_style(self, style: TransitionStyle):
        style = TransitionStyle(style)
        if style is self.settings.transition_style:
            return
        self.settings.transition_style = style
        self.settings_changed.emit()

    def set_show_clock(self, enabled: bool):
        if bool(enabled) == self.settings.show_clock:
            return
        self.settings.show_clock = bool(enabled)
        self.settings_changed.emit()

    def set_captions_enabled(self, enabled: bool):
        if bool(enabled) == self.settings.captions_enabled:
            return
        self.settings.captions_enabled = bool(enabled)
        self.settings_changed.emit()
        if enabled:
            self._maybe_start_captions()

    def _on_interval_adjusted(self, interval: int):
        self.set_interval(interval, Origin.AUTO)

    def _refresh_adjustment(self, origin: Origin = Origin.USER):
        self.adjuster.update(self.media, self.audio, self.settings.interval_seconds, origin)

    # -- Captions ----------------------------------------------------------

    def _set_caption_status(self, status: CaptionStatus):
        if status is self._caption_status:
            return
        self._caption_status = status
        self.caption_status_changed.emit(status)

    def _maybe_start_captions(self):
        if not self.settings.captions_enabled:
            return
        if self._caption_thread is not None and self._caption_thread.isRunning():
            return
        pending = [(m.id, m.blob) for m in self.media if m.is_image and not m.caption]
        if not pending:
            return

        if self._captioner is None:
            self._captioner = GeminiCaptioner()
        thread = CaptionThread(pending, self._captioner)
        thread.caption_ready.connect(self._on_caption_ready)
        thread.finished.connect(self._on_captions_finished)
        self._caption_thread = thread
        self._set_caption_status(CaptionStatus.GENERATING)
        thread.start()

    def _on_caption_ready(self, item_id: str, text: str):
        item = self.media.get(item_id)
        if item is None or not item.is_image:
            return  # Removed while the pass was running
        item.caption = text
        self.media_changed.emit()

    def _on_captions_finished(self, success: bool, message: str):
        if self.sender() is not self._caption_thread:
            return  # Delivered after the pass was cancelled
        thread, self._caption_thread = self._caption_thread, None
        thread.wait()
        thread.deleteLater()
        if not success:
            self._set_caption_status(CaptionStatus.ERROR)
            self.message.emit(message)
            return
        self._set_caption_status(CaptionStatus.DONE)
        # Images added during the pass
        self._maybe_start_captions()

    def _stop_captions(self):
        thread, self._caption_thread = self._caption_thread, None
        if thread is None:
            return
        thread.caption_ready.disconnect(self._on_caption_ready)
        thread.finished.disconnect(self._on_captions_finished)
        thread.cancel()
        if thread.isFinished():
            thread.deleteLater()
            return
        self._retired_threads.append(thread)
        thread.finished.connect(lambda *_, t=thread: self._on_retired_finished(t))

    def _on_retired_finished(self, thread: CaptionThread):
        if thread not in self._retired_threads:
            return
        self._retired_threads.remove(thread)
        # run() returns right after emitting finished
        thread.wait()
        thread.deleteLater()

    # -- Projects ----------------------------------------------------------

    def new_slideshow(self):
        """Reset to an empty slideshow with default settings."""
        self._reset(Project(name=DEFAULT_NAME))

    def load_project(self, project: Project):
        self._reset(project)
        logger.info("Loaded slideshow %s (%s)", project.name, project.id)

    def to_project(self, name: Optional[str] = None) -> Project:
        return Project(
            id=self.active_project_id,
            name=name or self.active_name,
            media=list(self.media),
            audio=self.audio,
            settings=dataclasses.replace(self.settings),
        )

    def mark_saved(self, project: Project):
        self.active_project_id = project.id
        self.active_name = project.name

    def _reset(self, project: Project):
        self.importer.cancel()
        self._stop_captions()
        self._set_caption_status(CaptionStatus.IDLE)

        self.media.clear()
        for item in project.media:
            try:
                self.media.add(item)
            except MediaLimitError as e:
                self.message.emit(str(e))
        self.audio = project.audio
        self.settings = dataclasses.replace(project.settings)
        self.active_project_id = project.id
        self.active_name = project.name

        self.media_changed.emit()
        self.audio_changed.emit()
        self.settings_changed.emit()
        self._refresh_adjustment()
        self._maybe_start_captions()

    # -- Playback ----------------------------------------------------------

    def create_session(self, audio_sink: AudioSink, video_sink: VideoSink,
                       guard_target: Optional[QObject] = None, parent=None) -> PlaybackSession:
        """Build a PlaybackSession over a snapshot of the current slideshow."""
        if not self.is_ready_to_play:
            raise ValueError("Add at least one image or video and a song to play the slideshow.")
        return PlaybackSession(
            self.media.snapshot(),
            self.audio,
            self.settings,
            audio_sink,
            video_sink,
            guard_target=guard_target,
            parent=parent,
        )

    def shutdown(self):
        self.importer.cancel()
        self.adjuster.shutdown()
        self._stop_captions()
        for thread in self._retired_threads:
            thread.wait()
            thread.deleteLater()
        self._retired_threads.clear()
