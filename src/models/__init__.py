"""
SongSlides data models.

Public API:

  Media:
    MediaKind, MediaBlob, MediaItem, AudioTrack, MediaList, MediaLimitError

  Settings:
    TransitionStyle, PlaybackSettings

  Project:
    Project, ProjectSummary
"""

from models.media import (
    MediaKind,
    MediaBlob,
    MediaItem,
    AudioTrack,
    MediaList,
    MediaLimitError,
)
from models.settings import TransitionStyle, PlaybackSettings
from models.project import Project, ProjectSummary

__all__ = [
    # Media
    "MediaKind",
    "MediaBlob",
    "MediaItem",
    "AudioTrack",
    "MediaList",
    "MediaLimitError",
    # Settings
    "TransitionStyle",
    "PlaybackSettings",
    # Project
    "Project",
    "ProjectSummary",
]
