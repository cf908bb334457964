"""Action domain model threaded through the dispatch pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Intent(str, Enum):
    """One of the mutually exclusive actions a user utterance can request."""

    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    NEXT_PAGE = "next_page"
    PREVIOUS_PAGE = "previous_page"
    SNAP_PAGE = "snap_page"
    FIND_FIG = "find_fig"
    FIND_PDF = "find_pdf"
    NON_DETERM = "non_determ"

    @property
    def requires_retrieval(self) -> bool:
        return self in (Intent.FIND_FIG, Intent.FIND_PDF)

    @property
    def is_navigation(self) -> bool:
        return self in _NAVIGATION_INTENTS


_NAVIGATION_INTENTS = frozenset(
    {
        Intent.SCROLL_UP,
        Intent.SCROLL_DOWN,
        Intent.NEXT_PAGE,
        Intent.PREVIOUS_PAGE,
        Intent.SNAP_PAGE,
    }
)

INTENT_FLAGS: tuple[str, ...] = tuple(intent.value for intent in Intent)


def intent_from_flags(flags: dict[str, Any]) -> Intent:
    """Resolve a flag mapping (wire form) to a single intent.

    Zero true flags resolve to `non_determ`; more than one raises `ValueError`.
    """
    selected = [name for name in INTENT_FLAGS if bool(flags.get(name))]
    if len(selected) > 1:
        raise ValueError(f"More than one intent flag is true: {', '.join(selected)}")
    if not selected:
        return Intent.NON_DETERM
    return Intent(selected[0])


class Action(BaseModel):
    """One classified user intent plus whatever the executor resolved for it."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    query: str = Field(min_length=1)
    context: Any = None
    page: int | None = Field(default=None, ge=1)
    pdf: str | None = None
    does_follow_up: bool = False

    def flags(self) -> dict[str, bool]:
        return {name: name == self.intent.value for name in INTENT_FLAGS}

    def to_plan(self) -> dict[str, Any]:
        """Render the flag-based wire form consumed by the viewer."""
        plan: dict[str, Any] = self.flags()
        plan["query"] = self.query
        plan["does_follow_up"] = self.does_follow_up
        for key in ("context", "page", "pdf"):
            value = getattr(self, key)
            if value is not None:
                plan[key] = value
        return plan

    @classmethod
    def from_plan(cls, payload: dict[str, Any]) -> "Action":
        intent = intent_from_flags(payload)
        return cls(
            intent=intent,
            query=payload.get("query") or "",
            context=payload.get("context"),
            page=payload.get("page"),
            pdf=payload.get("pdf"),
            does_follow_up=bool(payload.get("does_follow_up", False)),
        )


class VerbalResponse(BaseModel):
    """Spoken acknowledgment plus whether a grounded follow-up is wanted."""

    immediate_response: str = Field(min_length=1)
    followup_response: bool
