"""Configuration models for the voice navigation service."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelConfig(BaseModel):
    """Configures the chat model used for classification and composition."""

    chat_model: str = "gpt-4"
    # Action selection must stay deterministic.
    temperature: float = Field(default=0.0, ge=0.0, le=0.0)


class SpeechConfig(BaseModel):
    """Configures speech-to-text and text-to-speech providers."""

    provider: Literal["openai", "elevenlabs"] = "openai"
    transcription_model: str = "whisper-1"
    tts_model: str = "tts-1"
    voice: str = "alloy"
    elevenlabs_voice_id: str = "voice-id"
    elevenlabs_stability: float = Field(default=0.5, ge=0.0, le=1.0)
    elevenlabs_similarity_boost: float = Field(default=0.5, ge=0.0, le=1.0)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class RetrievalConfig(BaseModel):
    """Configures the GroundX retrieval collaborator."""

    base_url: str = "https://api.groundx.ai"
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    min_score: float | None = Field(default=None, ge=0.0)


class PipelineConfig(BaseModel):
    """Configures pipeline behavior."""

    followup_fallback_sentences: int = Field(default=2, ge=1)


class Settings(BaseSettings):
    """Deployment settings read from the environment (and `.env`)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    openai_api_key: str | None = None
    openai_model: str = "gpt-4"
    groundx_api_key: str | None = None
    groundx_bucket_id: str | None = None
    groundx_base_url: str = "https://api.groundx.ai"
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str = "voice-id"
    tts_provider: Literal["openai", "elevenlabs"] = "openai"
    retrieval_min_score: float | None = None
    log_level: str = "INFO"

    def chat_config(self) -> ModelConfig:
        return ModelConfig(chat_model=self.openai_model)

    def speech_config(self) -> SpeechConfig:
        return SpeechConfig(
            provider=self.tts_provider,
            elevenlabs_voice_id=self.elevenlabs_voice_id,
        )

    def retrieval_config(self) -> RetrievalConfig:
        return RetrievalConfig(
            base_url=self.groundx_base_url,
            min_score=self.retrieval_min_score,
        )
