"""Shared retrieval and pipeline result models."""

from __future__ import annotations

from dataclasses import dataclass, field

from docvoice.actions import Action, VerbalResponse


@dataclass(slots=True)
class BoundingBox:
    """A located region of a source document."""

    page_number: int


@dataclass(slots=True)
class SearchHit:
    """One ranked hit returned by the retrieval backend."""

    source_url: str
    bounding_boxes: list[BoundingBox] = field(default_factory=list)
    score: float | None = None
    document_id: str | None = None

    @property
    def first_page(self) -> int | None:
        for box in self.bounding_boxes:
            if box.page_number >= 1:
                return box.page_number
        return None


@dataclass(slots=True)
class SearchResult:
    """Ranked hits plus the aggregated retrieved text."""

    hits: list[SearchHit]
    text: str = ""

    @property
    def top(self) -> SearchHit | None:
        return self.hits[0] if self.hits else None


@dataclass(slots=True)
class DecisionResult:
    """Classified action, immediate reply, and its audio (if synthesized)."""

    action: Action
    verbal: VerbalResponse
    audio: bytes | None = None
    trace_id: str | None = None


@dataclass(slots=True)
class ExecutionResult:
    """Executed action plus optional grounded follow-up."""

    action: Action
    retrieval_text: str = ""
    followup_text: str | None = None
    followup_audio: bytes | None = None
    degraded: str | None = None
    trace_id: str | None = None
