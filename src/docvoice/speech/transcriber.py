"""Speech-to-text adapter."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from docvoice.config import SpeechConfig
from docvoice.errors import ProviderError

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    """One complete utterance in, its text out."""

    def transcribe(self, audio: bytes, *, filename: str = "speech.ogg") -> str:
        """Return the transcript of `audio`."""


class OpenAITranscriber:
    """Whisper transcription through the OpenAI audio API."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        api_key: str | None = None,
        config: SpeechConfig | None = None,
    ) -> None:
        self.config = config or SpeechConfig()
        self.client = client or OpenAI(
            api_key=api_key, timeout=self.config.timeout_seconds, max_retries=0
        )

    def transcribe(self, audio: bytes, *, filename: str = "speech.ogg") -> str:
        if not audio:
            raise ProviderError("No audio provided", stage="transcribe")
        try:
            transcription = self.client.audio.transcriptions.create(
                file=(filename, audio),
                model=self.config.transcription_model,
            )
        except OpenAIError as exc:
            logger.error("Transcription failed: %s", exc)
            raise ProviderError("Transcription failed", stage="transcribe", cause=exc) from exc

        text = str(getattr(transcription, "text", "")).strip()
        if not text:
            raise ProviderError("Audio was not recognized", stage="transcribe")
        return text
