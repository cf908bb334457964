"""Deterministic classifier and composer when no language model is configured."""

from __future__ import annotations

import re
from typing import Any

from docvoice.actions import Action, Intent, VerbalResponse
from docvoice.errors import ClassificationError

_NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}
_NUMBER_ALTS = r"\d+|" + "|".join(_NUMBER_WORDS)
_NUMBER = rf"({_NUMBER_ALTS})"

_ABSOLUTE_PAGE = re.compile(rf"\b(?:page|slide)\s+(?:number\s+)?{_NUMBER}\b")
_DIRECTION = r"(?P<direction>forward|ahead|back|backward|backwards)"
_RELATIVE_PAGES = (
    re.compile(rf"\b{_DIRECTION}\s+(?P<count>{_NUMBER_ALTS})\s+pages?\b"),
    re.compile(rf"\b(?P<count>{_NUMBER_ALTS})\s+pages?\s+{_DIRECTION}\b"),
)
_NEXT_PAGE = re.compile(r"\bnext\s+(page|slide)\b|\bturn\s+the\s+page\b")
_PREVIOUS_PAGE = re.compile(r"\b(previous|prior|last)\s+(page|slide)\b|\bgo\s+back\s+a\s+page\b")
_SCROLL_UP = re.compile(r"\bscroll(ing)?\s+up\b|\bmove\s+up\b")
_SCROLL_DOWN = re.compile(r"\bscroll(ing)?\s+down\b|\bmove\s+down\b")
_DOCUMENT = re.compile(r"\b(document|pdf|report|file|paper|manual|handbook)s?\b")
_FILLER = re.compile(r"^(um+|uh+|hmm+|hello|hi|hey|thanks|thank you)[.!?]*$")


class KeywordActionClassifier:
    """Rule-based stand-in for `ActionClassifier` with the same contract."""

    def classify(self, utterance: str, context: Any = None) -> Action:
        utterance = utterance.strip()
        if not utterance:
            raise ClassificationError("Utterance is empty")

        intent, page = _match(utterance.lower(), _current_page(context))
        return Action(intent=intent, query=utterance, context=context, page=page)


class TemplateResponseComposer:
    """Canned acknowledgments keyed by intent."""

    _REPLIES = {
        Intent.SCROLL_UP: "Scrolling up.",
        Intent.SCROLL_DOWN: "Scrolling down.",
        Intent.NEXT_PAGE: "Going to the next page.",
        Intent.PREVIOUS_PAGE: "Going back a page.",
        Intent.FIND_FIG: "Let me find that for you.",
        Intent.FIND_PDF: "Let me pull up that document.",
        Intent.NON_DETERM: "Sorry, I'm not sure what you'd like me to do.",
    }

    def compose(self, query: str, action: Action) -> VerbalResponse:
        del query  # templates depend only on the intent.
        if action.intent is Intent.SNAP_PAGE:
            reply = f"Jumping to page {action.page}."
        else:
            reply = self._REPLIES[action.intent]
        return VerbalResponse(
            immediate_response=reply,
            followup_response=action.intent.requires_retrieval,
        )


def _match(text: str, current_page: int | None) -> tuple[Intent, int | None]:
    if _FILLER.match(text):
        return Intent.NON_DETERM, None

    relative = _relative_match(text)
    if relative and current_page is not None:
        count = _to_int(relative.group("count"))
        step = count if relative.group("direction") in ("forward", "ahead") else -count
        return Intent.SNAP_PAGE, max(1, current_page + step)

    absolute = _ABSOLUTE_PAGE.search(text)
    if absolute and not _NEXT_PAGE.search(text) and not _PREVIOUS_PAGE.search(text):
        return Intent.SNAP_PAGE, max(1, _to_int(absolute.group(1)))

    if _NEXT_PAGE.search(text):
        return Intent.NEXT_PAGE, None
    if _PREVIOUS_PAGE.search(text):
        return Intent.PREVIOUS_PAGE, None
    if _SCROLL_UP.search(text):
        return Intent.SCROLL_UP, None
    if _SCROLL_DOWN.search(text):
        return Intent.SCROLL_DOWN, None
    if _DOCUMENT.search(text):
        return Intent.FIND_PDF, None
    # General questions are assumed to be about a figure.
    return Intent.FIND_FIG, None


def _relative_match(text: str) -> re.Match[str] | None:
    for pattern in _RELATIVE_PAGES:
        match = pattern.search(text)
        if match:
            return match
    return None


def _current_page(context: Any) -> int | None:
    if isinstance(context, dict):
        value = context.get("current_page", context.get("page"))
    else:
        value = context
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _to_int(token: str) -> int:
    if token.isdigit():
        return int(token)
    return _NUMBER_WORDS[token]
