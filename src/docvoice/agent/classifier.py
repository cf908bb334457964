"""Maps a free-form utterance to exactly one Action via a model call."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from docvoice.actions import INTENT_FLAGS, Action, Intent, intent_from_flags
from docvoice.agent.llm import complete, parse_json_object
from docvoice.errors import ClassificationError

logger = logging.getLogger(__name__)

ACTION_PARSE_PROMPT = """
Decide if the user wants one of the following actions performed:
- 'scroll_up': scroll up a small amount within one page of the pdf
- 'scroll_down': scroll down a small amount within one page of the pdf
- 'next_page': go to the next page of the pdf
- 'previous_page': go to the previous page of the pdf
- 'snap_page': snap to a specific page of a pdf
- 'find_fig': find a specific figure, table, image, or specific item.
- 'find_pdf': find a specific document
- 'non_determ': no valid action is discernable

The values above are mutually exclusive. Exactly one should be true, the rest should be false.
note: you can use snap_page to go to a page relative to the current page. The caller
context gives the current page; compute the absolute target page from it.
note: blanket questions should default to find_fig, unless they're obviously about a document.
note: if a user asks a general question, assume it's from a figure and try to find a relevant figure.

Respond with a single JSON object and nothing else, for example:
{"scroll_up": false, "scroll_down": false, "next_page": false, "previous_page": false,
 "snap_page": true, "find_fig": false, "find_pdf": false, "non_determ": false, "page": 5}
Include "page" (an integer starting at 1) only when snap_page is true.
""".strip()


class ClassifierOutput(BaseModel):
    """Validated shape of the classifier's JSON output."""

    model_config = ConfigDict(extra="ignore")

    scroll_up: bool = False
    scroll_down: bool = False
    next_page: bool = False
    previous_page: bool = False
    snap_page: bool = False
    find_fig: bool = False
    find_pdf: bool = False
    non_determ: bool = False
    page: int | None = Field(default=None, ge=1)


class ActionClassifier:
    """Issues a single temperature-0 completion and parses it into an Action."""

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    def classify(self, utterance: str, context: Any = None) -> Action:
        utterance = utterance.strip()
        if not utterance:
            raise ClassificationError("Utterance is empty")

        raw = complete(
            self.llm,
            ACTION_PARSE_PROMPT,
            _build_user_message(utterance, context),
            stage="classify",
        )
        payload = parse_json_object(raw, stage="classify")
        if not any(flag in payload for flag in INTENT_FLAGS):
            raise ClassificationError(f"Model output has no intent flags: {raw[:120]!r}")
        try:
            output = ClassifierOutput.model_validate(payload)
        except ValidationError as exc:
            raise ClassificationError(
                "Model output does not match the action schema", cause=exc
            ) from exc

        action = _to_action(output, utterance, context)
        logger.info("Classified %r as %s", utterance, action.intent.value)
        return action


def _build_user_message(utterance: str, context: Any) -> str:
    lines = ["my name is doc tech, what action would you like me to perform?", ""]
    if context is not None:
        lines.append(f"Context: {json.dumps(context, default=str)}")
    lines.append(f"User: {utterance}")
    return "\n".join(lines)


def _to_action(output: ClassifierOutput, utterance: str, context: Any) -> Action:
    flags = output.model_dump(include=set(INTENT_FLAGS))
    try:
        intent = intent_from_flags(flags)
    except ValueError as exc:
        raise ClassificationError(str(exc), cause=exc) from exc

    page = None
    if intent is Intent.SNAP_PAGE:
        if output.page is None:
            raise ClassificationError("snap_page chosen without a target page")
        page = output.page

    return Action(intent=intent, query=utterance, context=context, page=page)
