"""Chat model construction and single-turn invocation."""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from openai import OpenAIError

from docvoice.config import ModelConfig
from docvoice.errors import ClassificationError, ProviderError

logger = logging.getLogger(__name__)

# System text is passed as a variable so literal braces in prompts survive.
_TURN_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "{system}"),
        ("human", "{input}"),
    ]
)

_json_parser = JsonOutputParser()


def create_chat_model(api_key: str | None, config: ModelConfig | None = None) -> Any:
    """Build the OpenAI chat model, or None when no key is configured."""
    if not api_key:
        return None

    from langchain_openai import ChatOpenAI

    config = config or ModelConfig()
    return ChatOpenAI(
        model=config.chat_model,
        temperature=config.temperature,
        api_key=api_key,
        max_retries=0,
    )


def complete(llm: Any, system: str, user: str, *, stage: str) -> str:
    """Run one system+user completion and return the text content.

    Provider failures are re-raised as `ProviderError`; nothing is retried.
    """
    messages = _TURN_PROMPT.format_messages(system=system, input=user)
    try:
        response = llm.invoke(messages)
    except OpenAIError as exc:
        logger.error("Model call failed during %s: %s", stage, exc)
        raise ProviderError("Language model call failed", stage=stage, cause=exc) from exc

    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = [
            str(item["text"]) if isinstance(item, dict) and "text" in item else str(item)
            for item in content
        ]
        content = " ".join(parts)
    return str(content).strip()


def parse_json_object(raw: str, *, stage: str) -> dict[str, Any]:
    """Parse model output as one JSON object, tolerating markdown fences."""
    try:
        parsed = _json_parser.parse(raw)
    except OutputParserException as exc:
        raise ClassificationError(
            f"Model output is not valid JSON: {raw[:120]!r}", stage=stage, cause=exc
        ) from exc
    if not isinstance(parsed, dict):
        raise ClassificationError(
            f"Model output is not a JSON object: {raw[:120]!r}", stage=stage
        )
    return parsed
