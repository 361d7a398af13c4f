"""
Runtime Configuration Module

Manages runtime-configurable settings. Loads default values from config.py
and lets the environment override them (SONGSLIDES_* variables).
"""
import logging
import os
from dataclasses import dataclass, asdict
from typing import Optional

# Import defaults from config.py
from config import (
    FFPROBE_PATH,
    PROBE_TIMEOUT_SECONDS,
    CAPTION_MODEL,
    LOG_LEVEL,
    DEFAULT_STORE_DIR,
)

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """
    Runtime configuration for a SongSlides process.

    Values come from config.py unless the environment overrides them.
    """
    # Metadata probing
    ffprobe_path: str = FFPROBE_PATH
    probe_timeout_seconds: float = PROBE_TIMEOUT_SECONDS

    # Smart captions
    caption_model: str = CAPTION_MODEL
    gemini_api_key: str = ""

    # Storage
    store_dir: str = str(DEFAULT_STORE_DIR)

    # Logging
    log_level: str = LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "RuntimeConfig":
        """Build a config from environment variables.

        Recognised: SONGSLIDES_FFPROBE, SONGSLIDES_PROBE_TIMEOUT,
        SONGSLIDES_CAPTION_MODEL, SONGSLIDES_STORE_DIR, SONGSLIDES_LOG_LEVEL
        and GEMINI_API_KEY.
        """
        env = os.environ if environ is None else environ
        config = cls()
        config.ffprobe_path = env.get("SONGSLIDES_FFPROBE", config.ffprobe_path)
        timeout = env.get("SONGSLIDES_PROBE_TIMEOUT")
        if timeout:
            try:
                config.probe_timeout_seconds = float(timeout)
            except ValueError:
                logger.warning("Ignoring invalid SONGSLIDES_PROBE_TIMEOUT %r; using %ss",
                               timeout, config.probe_timeout_seconds)
        config.caption_model = env.get("SONGSLIDES_CAPTION_MODEL", config.caption_model)
        config.store_dir = env.get("SONGSLIDES_STORE_DIR", config.store_dir)
        config.log_level = env.get("SONGSLIDES_LOG_LEVEL", config.log_level)
        config.gemini_api_key = env.get("GEMINI_API_KEY", "")
        return config

    def to_dict(self) -> dict:
        """Convert to dictionary (the API key is never included)."""
        d = asdict(self)
        d.pop("gemini_api_key", None)
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "RuntimeConfig":
        """Create from dictionary."""
        # Filter only known fields to avoid errors with old/new config versions
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered_data)


# Global singleton instance
_runtime_config: Optional[RuntimeConfig] = None


def get_config() -> RuntimeConfig:
    """Get the global runtime configuration instance."""
    global _runtime_config
    if _runtime_config is None:
        _runtime_config = RuntimeConfig.from_env()
    return _runtime_config


def set_config(config: RuntimeConfig):
    """Set the global runtime configuration instance."""
    global _runtime_config
    _runtime_config = config
