"""
Media import - Validate user-picked files against the upload limits.

Files are processed one at a time in the order given. Images are checked
and appended immediately; videos are probed first so their length can be
checked against MAX_VIDEO_DURATION. A rejection never undoes items that
were already accepted from the same batch.
"""
import logging
from collections import deque
from pathlib import Path
from typing import Iterable, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from config import MAX_VIDEO_DURATION
from core.media_probe import MediaProbe, ProbeJob
from models.media import MediaBlob, MediaItem, MediaKind, MediaLimitError, MediaList, guess_mime_type
from runtime_config import get_config


logger = logging.getLogger(__name__)


def classify(path: str) -> Optional[MediaKind]:
    """MediaKind for *path* by MIME type, or None if unsupported."""
    mime_type = guess_mime_type(path)
    if mime_type.startswith("image/"):
        return MediaKind.IMAGE
    if mime_type.startswith("video/"):
        return MediaKind.VIDEO
    return None


class MediaImporter(QObject):
    """
    Appends validated media to a MediaList.

    Signals:
        item_added: The MediaItem just appended.
        rejected: User-visible reason a file was not added.
        finished: The queue is empty.
    """

    item_added = pyqtSignal(object)
    rejected = pyqtSignal(str)
    finished = pyqtSignal()

    def __init__(self, media_list: MediaList, probe: Optional[MediaProbe] = None,
                 timeout_seconds: Optional[float] = None, parent=None):
        super().__init__(parent)
        self.media_list = media_list
        self._probe = probe or MediaProbe()
        if timeout_seconds is None:
            timeout_seconds = get_config().probe_timeout_seconds

        self._queue = deque()
        self._busy = False
        self._reported = set()  # limit messages already shown this batch
        self._job: Optional[ProbeJob] = None
        self._pending_blob: Optional[MediaBlob] = None

        self._timeout_timer = QTimer(self)
        self._timeout_timer.setSingleShot(True)
        self._timeout_timer.setInterval(int(timeout_seconds * 1000))
        self._timeout_timer.timeout.connect(self._on_probe_timeout)

    @property
    def is_busy(self) -> bool:
        return self._busy

    def import_paths(self, paths: Iterable[str]):
        """Queue *paths*; results arrive through the signals."""
        self._queue.extend(str(p) for p in paths)
        if not self._busy:
            self._busy = True
            self._process_next()

    def cancel(self):
        """Drop the queue and abort a running probe."""
        self._queue.clear()
        self._timeout_timer.stop()
        if self._job is not None:
            self._job.abort()
            self._job.deleteLater()
            self._job = None
        self._pending_blob = None
        self._finish()

    def _process_next(self):
        while self._queue:
            path = self._queue.popleft()
            if not self._handle(path):
                return  # Waiting on a probe
        self._finish()

    def _finish(self):
        if not self._busy:
            return
        self._busy = False
        self._reported.clear()
        self.finished.emit()

    def _handle(self, path: str) -> bool:
        """Process one file; False if it continues asynchronously."""
        name = Path(path).name
        kind = classify(path)
        if kind is None:
            self._reject(f'"{name}" is not a supported image or video file.')
            return True

        try:
            self.media_list.check_can_add(kind)
        except MediaLimitError as e:
            self._reject(str(e), once=True)
            return True

        blob = MediaBlob.from_path(path)
        if kind is MediaKind.IMAGE:
            self._add(MediaItem(kind=MediaKind.IMAGE, blob=blob))
            return True

        self._pending_blob = blob
        self._job = self._probe.probe(blob, self)
        self._job.finished.connect(self._on_probe_finished)
        self._job.failed.connect(self._on_probe_failed)
        self._timeout_timer.start()
        return False

    def _add(self, item: MediaItem):
        try:
            self.media_list.add(item)
        except MediaLimitError as e:
            self._reject(str(e), once=True)
            return
        logger.info("Added %s %s", item.kind.value, item.display_name)
        self.item_added.emit(item)

    def _reject(self, message: str, once: bool = False):
        if once:
            if message in self._reported:
                return
            self._reported.add(message)
        logger.info("Rejected media: %s", message)
        self.rejected.emit(message)

    def _take_job(self) -> Optional[MediaBlob]:
        self._timeout_timer.stop()
        if self._job is not None:
            self._job.deleteLater()
            self._job = None
        blob, self._pending_blob = self._pending_blob, None
        return blob

    def _on_probe_finished(self, seconds: float):
        blob = self._take_job()
        if blob is None:
            return
        if seconds > MAX_VIDEO_DURATION:
            self._reject(f'Video "{blob.name}" exceeds the {MAX_VIDEO_DURATION}s limit and was not uploaded.')
        else:
            self._add(MediaItem(kind=MediaKind.VIDEO, blob=blob, duration=seconds))
        self._process_next()

    def _on_probe_failed(self, reason: str):
        blob = self._take_job()
        if blob is None:
            return
        self._reject(f'Could not read the duration of "{blob.name}".')
        self._process_next()

    def _on_probe_timeout(self):
        if self._job is not None:
            self._job.abort()
        blob = self._take_job()
        if blob is None:
            return
        logger.warning("Duration probe timed out for %s", blob.name)
        self._reject(f'Could not read the duration of "{blob.name}".')
        self._process_next()
