"""Executes a classified Action and composes the grounded follow-up."""

from __future__ import annotations

import logging
import re
from typing import Any

from docvoice.actions import Action, Intent
from docvoice.agent.llm import complete
from docvoice.config import PipelineConfig, RetrievalConfig
from docvoice.errors import ProviderError, RetrievalError, SpeechError
from docvoice.retrieval.groundx import Retriever
from docvoice.speech.synthesizer import Synthesizer
from docvoice.types import ExecutionResult, SearchHit

logger = logging.getLogger(__name__)

FOLLOWUP_PROMPT_TEMPLATE = """
A user has a query which has triggered a process to look up data which should be relevant to that query.
The relevant data is included below. Treat it as the authoritative source and use it to answer the user's
question. Say things like "from this document" and "on page __".

If the data does not answer the question, tell the user you're not sure but they might find their answer
in the document below.

=== lookup data relevant to query ===
{retrieval_text}
""".strip()


class PlanExecutor:
    """Performs retrieval for find intents and builds the optional follow-up.

    Navigation intents are passed through untouched; the viewer performs them.
    """

    def __init__(
        self,
        retriever: Retriever | None,
        bucket_id: str | int | None,
        *,
        llm: Any | None = None,
        synthesizer: Synthesizer | None = None,
        retrieval_config: RetrievalConfig | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.retriever = retriever
        self.bucket_id = bucket_id
        self.llm = llm
        self.synthesizer = synthesizer
        self.retrieval_config = retrieval_config or RetrievalConfig()
        self.config = config or PipelineConfig()

    def execute(self, action: Action) -> ExecutionResult:
        if not action.intent.requires_retrieval:
            if action.does_follow_up:
                logger.info(
                    "Follow-up requested for %s but no retrieval text exists; skipping",
                    action.intent.value,
                )
            return ExecutionResult(action=action)

        hit, retrieval_text = self._retrieve(action)
        update: dict[str, Any] = {"pdf": hit.source_url}
        if action.intent is Intent.FIND_FIG:
            if hit.first_page is None:
                logger.warning("Top hit %s has no page-level bounding box", hit.source_url)
                raise RetrievalError(
                    f"Top result {hit.source_url} has no page-level location"
                )
            update["page"] = hit.first_page
        else:
            update["page"] = None
        resolved = action.model_copy(update=update)
        result = ExecutionResult(action=resolved, retrieval_text=retrieval_text)

        if resolved.does_follow_up and retrieval_text.strip():
            self._attach_followup(result)
        return result

    def _retrieve(self, action: Action) -> tuple[SearchHit, str]:
        if self.retriever is None or self.bucket_id is None:
            raise RetrievalError("Retrieval backend is not configured")

        search = self.retriever.search(self.bucket_id, action.query)
        hit = search.top
        if hit is None:
            raise RetrievalError(f"No results for query: {action.query!r}")

        threshold = self.retrieval_config.min_score
        if threshold is not None and (hit.score is None or hit.score < threshold):
            raise RetrievalError(
                f"Top result scored {hit.score} below threshold {threshold}"
            )

        logger.info("Resolved %s to %s", action.intent.value, hit.source_url)
        return hit, search.text

    def _attach_followup(self, result: ExecutionResult) -> None:
        query = result.action.query
        try:
            result.followup_text = self._write_followup(query, result.retrieval_text)
        except ProviderError as exc:
            logger.warning("Follow-up composition failed, returning action only: %s", exc)
            result.degraded = "followup_compose"
            return

        if self.synthesizer is None:
            return
        try:
            result.followup_audio = self.synthesizer.synthesize(result.followup_text)
        except SpeechError as exc:
            logger.warning("Follow-up synthesis failed, returning text only: %s", exc)
            result.degraded = "followup_speech"

    def _write_followup(self, query: str, retrieval_text: str) -> str:
        if self.llm is None:
            return _extractive_followup(
                retrieval_text, self.config.followup_fallback_sentences
            )
        system = FOLLOWUP_PROMPT_TEMPLATE.format(retrieval_text=retrieval_text)
        text = complete(self.llm, system, query, stage="followup")
        if not text:
            raise ProviderError("Model returned an empty follow-up", stage="followup")
        return text


def _extractive_followup(text: str, max_sentences: int) -> str:
    sentences = [
        part.strip()
        for part in re.split(r"(?<=[.!?])\s+", " ".join(text.split()))
        if part.strip()
    ]
    return "From this document: " + " ".join(sentences[:max_sentences])
