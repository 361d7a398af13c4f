"""
Smart captions - One-sentence image captions from Gemini.
"""
import logging
from enum import Enum
from typing import Optional

from google import genai
from google.genai import types

from config import CAPTION_PROMPT
from models.media import MediaBlob
from runtime_config import get_config


logger = logging.getLogger(__name__)


class CaptionError(RuntimeError):
    """The caption service could not caption an image."""


class CaptionStatus(Enum):
    IDLE = "idle"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


def get_gemini_client(api_key: Optional[str] = None) -> genai.Client:
    """
    Create a Gemini client.

    Raises:
        CaptionError: If no API key is configured
    """
    api_key = api_key or get_config().gemini_api_key
    if not api_key:
        raise CaptionError("GEMINI_API_KEY is not set; smart captions are unavailable.")
    return genai.Client(api_key=api_key)


class GeminiCaptioner:
    """Captions images with a Gemini vision model."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.model = model or get_config().caption_model
        self._api_key = api_key
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_gemini_client(self._api_key)
        return self._client

    def caption(self, blob: MediaBlob) -> str:
        """Return a caption for the image in *blob*.

        Raises:
            CaptionError: On any service failure or an empty answer.
        """
        try:
            data = blob.read_bytes()
        except OSError as e:
            raise CaptionError(f"Could not read {blob.name}: {e}") from e

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=data, mime_type=blob.mime_type),
                    types.Part.from_text(text=CAPTION_PROMPT),
                ],
            )
        except CaptionError:
            raise
        except Exception as e:
            logger.error("Caption request failed for %s: %s", blob.name, e)
            raise CaptionError(f"Caption request failed: {e}") from e

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise CaptionError(f"Empty caption for {blob.name}")
        return text
