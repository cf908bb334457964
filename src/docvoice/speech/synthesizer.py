"""Text-to-speech adapters."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import requests
from openai import OpenAI, OpenAIError

from docvoice.config import SpeechConfig
from docvoice.errors import SpeechError

logger = logging.getLogger(__name__)

_ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


class Synthesizer(Protocol):
    """One-shot text-to-speech contract."""

    media_type: str

    def synthesize(self, text: str) -> bytes:
        """Return encoded audio for `text`."""


class OpenAISynthesizer:
    """Speech synthesis through the OpenAI audio API (MPEG output)."""

    media_type = "audio/mpeg"

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

    def synthesize(self, text: str) -> bytes:
        if not text.strip():
            raise SpeechError("Nothing to synthesize")
        try:
            response = self.client.audio.speech.create(
                model=self.config.tts_model,
                voice=self.config.voice,
                input=text,
            )
        except OpenAIError as exc:
            logger.error("OpenAI speech synthesis failed: %s", exc)
            raise SpeechError("Speech synthesis failed", cause=exc) from exc
        return response.content


class ElevenLabsSynthesizer:
    """Speech synthesis through the ElevenLabs REST API."""

    media_type = "audio/mpeg"

    def __init__(
        self,
        api_key: str,
        *,
        config: SpeechConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.config = config or SpeechConfig(provider="elevenlabs")
        self.session = session or requests.Session()

    def synthesize(self, text: str) -> bytes:
        if not text.strip():
            raise SpeechError("Nothing to synthesize")
        url = _ELEVENLABS_URL.format(voice_id=self.config.elevenlabs_voice_id)
        try:
            response = self.session.post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
                json={
                    "text": text,
                    "voice_settings": {
                        "stability": self.config.elevenlabs_stability,
                        "similarity_boost": self.config.elevenlabs_similarity_boost,
                    },
                },
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("ElevenLabs speech synthesis failed: %s", exc)
            raise SpeechError("Speech synthesis failed", cause=exc) from exc
        return response.content


def create_synthesizer(
    config: SpeechConfig,
    *,
    openai_api_key: str | None,
    elevenlabs_api_key: str | None,
) -> Synthesizer | None:
    """Pick the configured provider; None when its key is missing."""
    if config.provider == "elevenlabs":
        if not elevenlabs_api_key:
            return None
        return ElevenLabsSynthesizer(elevenlabs_api_key, config=config)
    if not openai_api_key:
        return None
    return OpenAISynthesizer(api_key=openai_api_key, config=config)
