"""
SongSlides Configuration
"""
import os
from pathlib import Path

# Media limits
MAX_IMAGES = 30
MAX_VIDEOS = 1
MAX_VIDEO_DURATION = 30  # seconds
MAX_SAVED_SLIDESHOWS = 5

# Slide timing
DEFAULT_INTERVAL_SECONDS = 5
MIN_INTERVAL_SECONDS = 1  # Floor for auto-adjustment, never 0
INTERVAL_CHOICES = (1, 5, 10, 15, 20)

# Playback timers
FADE_TICK_MS = 50  # Volume fade-out step period
CLOCK_TICK_MS = 1000

# Metadata probing (ffprobe)
FFPROBE_PATH = "ffprobe"
PROBE_TIMEOUT_SECONDS = 15

# Smart captions
CAPTION_MODEL = "gemini-2.5-flash"
CAPTION_PROMPT = "Describe this image in a short, one-sentence caption for a photo slideshow."

# Logging
LOG_LEVEL = "INFO"

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
if os.environ.get("LOCALAPPDATA"):
    USER_DATA_DIR = Path(os.environ["LOCALAPPDATA"]) / "SongSlides"
else:
    USER_DATA_DIR = Path.home() / ".songslides"
DEFAULT_STORE_DIR = USER_DATA_DIR / "slideshows"
