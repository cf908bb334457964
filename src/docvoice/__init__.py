"""Voice-driven document navigation package."""

from .actions import Action, Intent, VerbalResponse
from .config import ModelConfig, PipelineConfig, RetrievalConfig, SpeechConfig

__all__ = [
    "Action",
    "Intent",
    "ModelConfig",
    "PipelineConfig",
    "RetrievalConfig",
    "SpeechConfig",
    "VerbalResponse",
]
