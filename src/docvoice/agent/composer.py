"""Composes the short spoken acknowledgment for a classified action."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from docvoice.actions import Action, VerbalResponse
from docvoice.agent.llm import complete, parse_json_object
from docvoice.errors import ClassificationError

logger = logging.getLogger(__name__)

VERBAL_RESPONSE_PROMPT = """
You will be given a user's query, and the actions a system decided to take based on that query.
Respond to the user verbally with an "immediate_response", informing them what action will be taken.
Be brief and conversational.

Also decide "followup_response": true when answering the query fully needs the text of the
figure or document being looked up (usually find_fig and find_pdf), false for pure navigation
such as scrolling or changing pages.

This is powered by GroundX, which is a retrieval engine designed to work with complex real-world documents.
If the user asks about GroundX, tell them they use a computer vision-based parsing system, trained on a
large amount of corporate documents to understand documents. GroundX can run in the cloud, on-prem, or anywhere.

Respond with a single JSON object and nothing else:
{"immediate_response": "<what you will say>", "followup_response": <true or false>}
""".strip()


class ResponseComposer:
    """Turns (query, action) into a VerbalResponse with one model call."""

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    def compose(self, query: str, action: Action) -> VerbalResponse:
        user_message = (
            f"User Query: {query}\n"
            f"System Action: {json.dumps(action.to_plan(), default=str)}"
        )
        raw = complete(self.llm, VERBAL_RESPONSE_PROMPT, user_message, stage="compose")
        payload = parse_json_object(raw, stage="compose")
        try:
            verbal = VerbalResponse.model_validate(payload)
        except ValidationError as exc:
            raise ClassificationError(
                "Model output does not match the verbal response schema",
                stage="compose",
                cause=exc,
            ) from exc

        logger.debug(
            "Composed reply for %s (follow-up=%s)",
            action.intent.value,
            verbal.followup_response,
        )
        return verbal
