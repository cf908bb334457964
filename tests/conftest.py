"""Shared pytest fixtures: in-process stand-ins for every external collaborator."""

from __future__ import annotations

import json
from typing import Any

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, BaseMessage

from docvoice.errors import RetrievalError, SpeechError
from docvoice.types import BoundingBox, SearchHit, SearchResult


class RecordingChatModel:
    """Chat model stand-in that replays queued responses and records prompts."""

    def __init__(self) -> None:
        self._queued: list[str] = []
        self.calls: list[list[BaseMessage]] = []

    def queue(self, payload: Any) -> "RecordingChatModel":
        if not isinstance(payload, str):
            payload = json.dumps(payload)
        self._queued.append(payload)
        return self

    def invoke(self, messages: list[BaseMessage]) -> AIMessage:
        if not self._queued:
            raise AssertionError("RecordingChatModel called with no queued responses.")
        self.calls.append(list(messages))
        return AIMessage(content=self._queued.pop(0))


class TimeoutChatModel:
    """Chat model whose every call times out upstream."""

    def __init__(self) -> None:
        self.calls = 0

    def invoke(self, messages: list[BaseMessage]) -> AIMessage:
        self.calls += 1
        raise openai.APITimeoutError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )


class FakeRetriever:
    def __init__(self, result: SearchResult | None = None, *, fail: bool = False) -> None:
        self.result = result or SearchResult(hits=[])
        self.fail = fail
        self.calls: list[tuple[Any, str]] = []

    def search(self, bucket_id: Any, query: str) -> SearchResult:
        self.calls.append((bucket_id, query))
        if self.fail:
            raise RetrievalError("GroundX search failed: backend unavailable")
        return self.result


class FakeSynthesizer:
    media_type = "audio/mpeg"

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.texts: list[str] = []

    def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        if self.fail:
            raise SpeechError("Speech synthesis failed")
        return b"mp3:" + text.encode("utf-8")


class FakeTranscriber:
    def __init__(self, text: str = "go to page 5") -> None:
        self.text = text
        self.received: list[bytes] = []

    def transcribe(self, audio: bytes, *, filename: str = "speech.ogg") -> str:
        self.received.append(audio)
        return self.text


@pytest.fixture
def chat_model() -> RecordingChatModel:
    return RecordingChatModel()


@pytest.fixture
def timeout_chat_model() -> TimeoutChatModel:
    return TimeoutChatModel()


@pytest.fixture
def revenue_result() -> SearchResult:
    """Top hit points at page 4 of the annual report."""
    return SearchResult(
        hits=[
            SearchHit(
                source_url="https://docs.example.com/annual-report.pdf",
                bounding_boxes=[BoundingBox(page_number=4), BoundingBox(page_number=5)],
                score=0.91,
            ),
            SearchHit(
                source_url="https://docs.example.com/q3-update.pdf",
                bounding_boxes=[BoundingBox(page_number=2)],
                score=0.55,
            ),
        ],
        text="Figure 3 shows revenue growth of 18% year over year. Growth was led by services.",
    )


@pytest.fixture
def make_retriever():
    def _factory(result: SearchResult | None = None, *, fail: bool = False) -> FakeRetriever:
        return FakeRetriever(result, fail=fail)

    return _factory


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def failing_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer(fail=True)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


def flags(**selected: bool) -> dict[str, bool]:
    names = (
        "scroll_up",
        "scroll_down",
        "next_page",
        "previous_page",
        "snap_page",
        "find_fig",
        "find_pdf",
        "non_determ",
    )
    return {name: bool(selected.get(name, False)) for name in names}


@pytest.fixture
def intent_flags():
    """Build a full classifier payload with the given flags set."""
    return flags
