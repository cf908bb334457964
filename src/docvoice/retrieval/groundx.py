"""GroundX content-search client."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import requests

from docvoice.config import RetrievalConfig
from docvoice.errors import RetrievalError
from docvoice.types import BoundingBox, SearchHit, SearchResult

logger = logging.getLogger(__name__)


class Retriever(Protocol):
    """Search contract consumed by the plan executor."""

    def search(self, bucket_id: str | int, query: str) -> SearchResult:
        """Return ranked hits and aggregated text for `query`."""


class GroundXClient:
    """Thin HTTP client for `POST /search/content`."""

    def __init__(
        self,
        api_key: str,
        *,
        config: RetrievalConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.config = config or RetrievalConfig()
        self.session = session or requests.Session()

    def search(self, bucket_id: str | int, query: str) -> SearchResult:
        url = f"{self.config.base_url.rstrip('/')}/search/content"
        try:
            response = self.session.post(
                url,
                json={"id": bucket_id, "query": query},
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            logger.error("GroundX search failed: %s", exc)
            raise RetrievalError(f"GroundX search failed: {exc}", cause=exc) from exc
        except ValueError as exc:
            raise RetrievalError("GroundX returned a non-JSON response", cause=exc) from exc

        return parse_search_response(payload)


def parse_search_response(payload: Any) -> SearchResult:
    """Convert a GroundX search payload (with or without `body`) to a SearchResult."""
    if not isinstance(payload, dict):
        raise RetrievalError("GroundX response is not an object")
    body = payload.get("body", payload)
    search = body.get("search") if isinstance(body, dict) else None
    if not isinstance(search, dict):
        raise RetrievalError("GroundX response has no search section")

    results = search.get("results") or []
    if not isinstance(results, list):
        raise RetrievalError("GroundX results are not a list")

    hits: list[SearchHit] = []
    for raw in results:
        source_url = raw.get("sourceUrl") if isinstance(raw, dict) else None
        if not source_url:
            logger.debug("Skipping search result without sourceUrl")
            continue
        try:
            hits.append(_to_hit(raw, str(source_url)))
        except (TypeError, ValueError) as exc:
            raise RetrievalError("GroundX returned a malformed result", cause=exc) from exc

    return SearchResult(hits=hits, text=str(search.get("text") or ""))


def _to_hit(raw: dict[str, Any], source_url: str) -> SearchHit:
    boxes = [
        BoundingBox(page_number=int(box["pageNumber"]))
        for box in raw.get("boundingBoxes") or []
        if isinstance(box, dict) and box.get("pageNumber") is not None
    ]
    score = raw.get("score")
    return SearchHit(
        source_url=source_url,
        bounding_boxes=boxes,
        score=float(score) if score is not None else None,
        document_id=raw.get("documentId"),
    )
