"""
Project - A saved slideshow: ordered media, the song and playback settings.

Media content is stored inline as data URLs (``content_ref``) so a project
file is self-contained and survives the original files being moved.
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional

from models.media import AudioTrack, MediaBlob, MediaItem, MediaKind
from models.settings import PlaybackSettings


PROJECT_FORMAT_VERSION = "1.0"
DEFAULT_OWNER = "local"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ProjectSummary:
    """What the slideshow list shows: enough to pick one to load."""
    id: str
    name: str
    saved_at: int


@dataclass
class Project:
    """Root object of a saved slideshow.

    Attributes:
        id: Store-assigned identifier (None until first saved).
        name: Human-readable name.
        media: Slides in playback order.
        audio: The song, if one was chosen.
        settings: Playback settings.
        saved_at: Epoch milliseconds of the last save.
        owner: Scope the project is listed under.
    """
    id: Optional[str] = None
    name: str = "New Slideshow"
    media: List[MediaItem] = field(default_factory=list)
    audio: Optional[AudioTrack] = None
    settings: PlaybackSettings = field(default_factory=PlaybackSettings)
    saved_at: int = 0
    owner: str = DEFAULT_OWNER

    def summary(self) -> ProjectSummary:
        return ProjectSummary(id=self.id, name=self.name, saved_at=self.saved_at)

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        ordered_media = []
        for item in self.media:
            entry = {
                "id": item.id,
                "kind": item.kind.value,
                "display_name": item.display_name,
                "content_ref": item.blob.to_data_url(),
            }
            if item.is_image and item.caption:
                entry["caption"] = item.caption
            if item.duration is not None:
                entry["duration"] = item.duration
            ordered_media.append(entry)

        audio = None
        if self.audio is not None:
            audio = {
                "id": self.audio.id,
                "display_name": self.audio.display_name,
                "content_ref": self.audio.blob.to_data_url(),
            }
            if self.audio.duration is not None:
                audio["duration"] = self.audio.duration

        return {
            "version": PROJECT_FORMAT_VERSION,
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "saved_at": self.saved_at,
            "settings": self.settings.to_dict(),
            "ordered_media": ordered_media,
            "audio": audio,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        media = []
        for entry in data.get("ordered_media", []):
            name = entry.get("display_name", "media")
            item = MediaItem(
                id=entry["id"],
                kind=MediaKind(entry.get("kind", "image")),
                blob=MediaBlob.from_data_url(entry["content_ref"], name),
                caption=entry.get("caption"),
                duration=entry.get("duration"),
            )
            media.append(item)

        audio = None
        audio_data = data.get("audio")
        if audio_data:
            name = audio_data.get("display_name", "audio")
            audio = AudioTrack(
                blob=MediaBlob.from_data_url(audio_data["content_ref"], name),
                duration=audio_data.get("duration"),
            )
            if audio_data.get("id"):
                audio.id = audio_data["id"]

        return cls(
            id=data.get("id"),
            name=data.get("name", "New Slideshow"),
            media=media,
            audio=audio,
            settings=PlaybackSettings.from_dict(data.get("settings", {})),
            saved_at=data.get("saved_at", 0),
            owner=data.get("owner", DEFAULT_OWNER),
        )
