"""
Media - Slideshow media items, the audio track and their blob handles.

A MediaItem is one slide (image or video). Items live in an ordered
MediaList whose order is the playback order. Every item and the audio
track carry a UUID so that reordering never changes their identity.
"""
import base64
import binascii
import contextlib
import mimetypes
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

from config import MAX_IMAGES, MAX_VIDEOS, MAX_VIDEO_DURATION


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class MediaLimitError(ValueError):
    """Raised when adding an item would break a media limit.

    The message is meant to be shown to the user as-is.
    """


def guess_mime_type(name: str) -> str:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or "application/octet-stream"


# ---------------------------------------------------------------------------
# Blob handle
# ---------------------------------------------------------------------------

@dataclass
class MediaBlob:
    """Opaque media content: either a file on disk or bytes in memory.

    File-backed blobs come from the user's file picker. Memory-backed blobs
    come from a stored project, where content is kept inline.
    """
    name: str
    mime_type: str = "application/octet-stream"
    path: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        if self.path is None and self.data is None:
            raise ValueError("MediaBlob needs a path or data")

    @classmethod
    def from_path(cls, path: str) -> "MediaBlob":
        return cls(name=Path(path).name, mime_type=guess_mime_type(path), path=str(path))

    @classmethod
    def from_data_url(cls, data_url: str, name: str) -> "MediaBlob":
        """Decode a ``data:<mime>;base64,<payload>`` URL."""
        header, sep, payload = data_url.partition(",")
        if not sep or not header.startswith("data:") or ";base64" not in header:
            raise ValueError(f"Not a base64 data URL: {header[:40]!r}")
        mime_type = header[len("data:"):].split(";", 1)[0] or guess_mime_type(name)
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Corrupt data URL for {name}: {e}") from e
        return cls(name=name, mime_type=mime_type, data=data)

    @property
    def is_file_backed(self) -> bool:
        return self.path is not None

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        with open(self.path, "rb") as f:
            return f.read()

    def to_data_url(self) -> str:
        payload = base64.b64encode(self.read_bytes()).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"

    @contextlib.contextmanager
    def materialize(self) -> Iterator[str]:
        """Yield a filesystem path for this blob.

        Memory-backed blobs are written to a temporary file that is removed
        when the context exits, on both success and failure paths.
        """
        if self.path is not None:
            yield self.path
            return

        suffix = Path(self.name).suffix or (mimetypes.guess_extension(self.mime_type) or "")
        fd, temp_path = tempfile.mkstemp(prefix="songslides_", suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(self.data)
            yield temp_path
        finally:
            with contextlib.suppress(OSError):
                os.remove(temp_path)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@dataclass
class MediaItem:
    """One slide.

    Attributes:
        kind: Image or video; picks the advancement policy during playback.
        blob: The media content.
        caption: Smart caption (images only).
        duration: Probed duration in seconds (videos only, set at import).
    """
    kind: MediaKind
    blob: MediaBlob
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caption: Optional[str] = None
    duration: Optional[float] = None

    def __post_init__(self):
        self.kind = MediaKind(self.kind)
        if self.kind is MediaKind.VIDEO:
            self.caption = None

    @property
    def is_image(self) -> bool:
        return self.kind is MediaKind.IMAGE

    @property
    def is_video(self) -> bool:
        return self.kind is MediaKind.VIDEO

    @property
    def display_name(self) -> str:
        return self.blob.name


@dataclass
class AudioTrack:
    """The song a slideshow is timed against."""
    blob: MediaBlob
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    duration: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self.blob.name


# ---------------------------------------------------------------------------
# Ordered list
# ---------------------------------------------------------------------------

class MediaList:
    """Ordered slideshow media with the upload limits enforced on add."""

    def __init__(self, items: Optional[List[MediaItem]] = None):
        self._items: List[MediaItem] = []
        for item in items or []:
            self.add(item)

    # -- Mutation ----------------------------------------------------------

    def check_can_add(self, kind: MediaKind, duration: Optional[float] = None):
        """Raise MediaLimitError if an item of *kind* may not be added."""
        if kind is MediaKind.IMAGE and self.image_count >= MAX_IMAGES:
            raise MediaLimitError(
                f"Maximum of {MAX_IMAGES} images reached. Some images were not uploaded."
            )
        if kind is MediaKind.VIDEO:
            if self.video_count >= MAX_VIDEOS:
                noun = "video" if MAX_VIDEOS == 1 else "videos"
                raise MediaLimitError(
                    f"Maximum of {MAX_VIDEOS} {noun} reached. Some videos were not uploaded."
                )
            if duration is not None and duration > MAX_VIDEO_DURATION:
                raise MediaLimitError(
                    f"Video exceeds the {MAX_VIDEO_DURATION}s limit and was not uploaded."
                )

    def add(self, item: MediaItem) -> str:
        """Append *item* and return its id."""
        self.check_can_add(item.kind, item.duration)
        self._items.append(item)
        return item.id

    def remove(self, item_id: str) -> Optional[MediaItem]:
        """Remove and return the item, or ``None`` if not found."""
        index = self.index_of(item_id)
        if index < 0:
            return None
        return self._items.pop(index)

    def move(self, source_index: int, target_index: int) -> bool:
        """Move the item at *source_index* so it ends up at *target_index*.

        Returns False (and changes nothing) for out-of-range indices or a
        no-op move.
        """
        count = len(self._items)
        if not (0 <= source_index < count and 0 <= target_index < count):
            return False
        if source_index == target_index:
            return False
        item = self._items.pop(source_index)
        self._items.insert(target_index, item)
        return True

    def clear(self):
        self._items.clear()

    # -- Query -------------------------------------------------------------

    def get(self, item_id: str) -> Optional[MediaItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def index_of(self, item_id: str) -> int:
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        return -1

    @property
    def image_count(self) -> int:
        return sum(1 for m in self._items if m.is_image)

    @property
    def video_count(self) -> int:
        return sum(1 for m in self._items if m.is_video)

    def ids(self) -> List[str]:
        return [m.id for m in self._items]

    def snapshot(self) -> tuple:
        """Immutable copy of the current order."""
        return tuple(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> MediaItem:
        return self._items[index]

    def __contains__(self, item_id: str) -> bool:
        return self.index_of(item_id) >= 0
