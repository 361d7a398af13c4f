from PyQt6.QtCore import QThread, pyqtSignal
from typing import List, Optional, Tuple
import logging

from core.captioner import CaptionError, GeminiCaptioner
from models.media import MediaBlob

logger = logging.getLogger(__name__)


class CaptionThread(QThread):
    """Background thread for smart caption generation"""
    caption_ready = pyqtSignal(str, str)  # item id, caption
    finished = pyqtSignal(bool, str)  # success, message

    def __init__(self, items: List[Tuple[str, MediaBlob]], captioner: Optional[GeminiCaptioner] = None):
        super().__init__()
        self.items = list(items)
        self.captioner = captioner or GeminiCaptioner()
        self._cancelled = False

    def cancel(self):
        """Request cancellation; the image in flight still completes"""
        self._cancelled = True

    def run(self):
        done = 0
        for item_id, blob in self.items:
            if self._cancelled:
                self.finished.emit(False, "Captioning cancelled.")
                return
            try:
                text = self.captioner.caption(blob)
            except CaptionError as e:
                logger.warning("Captioning stopped after %d of %d images: %s", done, len(self.items), e)
                self.finished.emit(False, f"Smart captions unavailable: {e}")
                return
            done += 1
            self.caption_ready.emit(item_id, text)

        self.finished.emit(True, f"Generated {done} caption(s).")
