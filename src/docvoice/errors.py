"""Error taxonomy for the action-dispatch pipeline.

- DocVoiceError: base class for every pipeline error
- ClassificationError: the model produced output that is not a valid action
- ProviderError: an upstream model or speech provider failed
- SpeechError: speech synthesis failed (non-fatal for follow-up audio)
- RetrievalError: the retrieval backend failed or found nothing usable
"""

from __future__ import annotations


class DocVoiceError(Exception):
    """Base class for all pipeline errors."""

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.stage}] {super().__str__()}"
        if self.cause is not None:
            text += f" | cause={type(self.cause).__name__}: {self.cause}"
        return text


class ClassificationError(DocVoiceError):
    """Raised when model output cannot be turned into a single action."""

    stage = "classify"


class ProviderError(DocVoiceError):
    """Raised on upstream model/speech provider failure (auth, timeout, rate limit)."""

    stage = "provider"


class SpeechError(ProviderError):
    """Raised when text-to-speech synthesis fails."""

    stage = "synthesize"


class RetrievalError(DocVoiceError):
    """Raised when the retrieval backend fails or returns no usable hit."""

    stage = "retrieve"
