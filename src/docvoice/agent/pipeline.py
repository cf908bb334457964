"""Sequential request pipeline: transcribe, classify, compose, speak, execute."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from docvoice.actions import Action, VerbalResponse
from docvoice.agent.executor import PlanExecutor
from docvoice.errors import DocVoiceError, ProviderError
from docvoice.obs.tracing import Timer, TraceBuilder, TraceRecord, TraceStore
from docvoice.speech.synthesizer import Synthesizer
from docvoice.speech.transcriber import Transcriber
from docvoice.types import DecisionResult, ExecutionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Classifier(Protocol):
    def classify(self, utterance: str, context: Any = None) -> Action: ...


class Composer(Protocol):
    def compose(self, query: str, action: Action) -> VerbalResponse: ...


class VoicePipeline:
    """Glues one user utterance to one system action.

    Every stage blocks on the previous one and any stage failure propagates
    immediately. The only shared state is the optional trace store.
    """

    def __init__(
        self,
        *,
        classifier: Classifier,
        composer: Composer,
        executor: PlanExecutor,
        synthesizer: Synthesizer | None = None,
        transcriber: Transcriber | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.classifier = classifier
        self.composer = composer
        self.executor = executor
        self.synthesizer = synthesizer
        self.transcriber = transcriber
        self.trace_store = trace_store

    @property
    def audio_media_type(self) -> str | None:
        return self.synthesizer.media_type if self.synthesizer is not None else None

    def transcribe(self, audio: bytes, *, filename: str = "speech.ogg") -> str:
        if self.transcriber is None:
            raise ProviderError("Speech-to-text is not configured", stage="transcribe")
        trace = TraceBuilder(operation="transcribe")
        try:
            text = self._stage(
                trace, "transcribe", self.transcriber.transcribe, audio, filename=filename
            )
            trace.query = text
        finally:
            self._save(trace)
        return text

    def speak(self, text: str) -> bytes:
        if self.synthesizer is None:
            raise ProviderError("Text-to-speech is not configured", stage="synthesize")
        return self.synthesizer.synthesize(text)

    def decide_and_respond(self, text: str, context: Any = None) -> DecisionResult:
        """Classify the utterance, compose the acknowledgment, and voice it."""
        trace = TraceBuilder(operation="decide", query=text)
        try:
            action = self._stage(trace, "classify", self.classifier.classify, text, context)
            trace.intent = action.intent.value
            verbal = self._stage(trace, "compose", self.composer.compose, text, action)
            action = action.model_copy(update={"does_follow_up": verbal.followup_response})

            audio = None
            if self.synthesizer is not None:
                audio = self._stage(
                    trace, "synthesize", self.synthesizer.synthesize, verbal.immediate_response
                )
            result = DecisionResult(action=action, verbal=verbal, audio=audio)
        finally:
            record = self._save(trace)

        result.trace_id = record.trace_id if record else None
        return result

    def execute_plan(self, action: Action) -> ExecutionResult:
        """Run retrieval for the plan and attach any grounded follow-up."""
        trace = TraceBuilder(
            operation="execute", query=action.query, intent=action.intent.value
        )
        try:
            result = self._stage(trace, "execute", self.executor.execute, action)
            trace.degraded = result.degraded
        finally:
            record = self._save(trace)

        result.trace_id = record.trace_id if record else None
        return result

    def handle_utterance(
        self, text: str, context: Any = None
    ) -> tuple[DecisionResult, ExecutionResult]:
        decision = self.decide_and_respond(text, context)
        return decision, self.execute_plan(decision.action)

    def _stage(
        self,
        trace: TraceBuilder,
        name: str,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        timer = Timer()
        try:
            with timer:
                result = func(*args, **kwargs)
        except DocVoiceError as exc:
            trace.add(name, timer, ok=False, detail=str(exc))
            trace.error = f"{type(exc).__name__}: {exc}"
            logger.error("Stage %s failed: %s", name, exc)
            raise
        trace.add(name, timer)
        return result

    def _save(self, trace: TraceBuilder) -> TraceRecord | None:
        if self.trace_store is None:
            return None
        return self.trace_store.save(trace)
