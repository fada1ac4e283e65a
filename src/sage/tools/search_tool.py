from __future__ import annotations

import http.client
import json
import logging
from typing import Any
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from sage.config import SearchSettings
from sage.tools.context import ToolContext
from sage.tools.results import ToolOutcome

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE = "Search temporarily unavailable."


def _build_url(settings: SearchSettings, query: str) -> str:
    params = urlencode(
        {
            "q": query,
            "format": "json",
            "no_html": "1",
            "skip_disambig": "1",
        }
    )
    return f"{settings.url}?{params}"


def _fetch(settings: SearchSettings, query: str) -> Any:
    request = Request(_build_url(settings, query), headers={"User-Agent": "sage/1.0"})
    with urlopen(request, timeout=settings.timeout_s) as response:
        body = response.read()
    return json.loads(body.decode("utf-8"))


def summarize_search(data: Any, query: str, settings: SearchSettings) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError("search response must be an object")
    abstract = data.get("AbstractText")
    abstract = abstract[: settings.abstract_chars] if isinstance(abstract, str) and abstract else None

    related: list[str] = []
    topics = data.get("RelatedTopics")
    if isinstance(topics, list):
        for topic in topics:
            if len(related) >= settings.max_results:
                break
            if not isinstance(topic, dict):
                continue
            text = topic.get("Text")
            if isinstance(text, str) and text:
                related.append(f"- {text[: settings.result_chars]}")

    if abstract is None and not related:
        return {"summary": f'No results found for "{query}".'}
    return {"summary": abstract or "See related:", "results": related}


def search_web(query: str, settings: SearchSettings) -> dict[str, Any]:
    """Look ``query`` up and return ``{summary, results?}`` or ``{error}``; never raises."""
    try:
        data = _fetch(settings, query)
        return summarize_search(data, query, settings)
    except (OSError, ValueError, http.client.HTTPException) as exc:
        logger.warning("search failed for %r: %s", query, exc)
        return {"error": SEARCH_UNAVAILABLE}


def search_web_handler() -> Any:
    def handler(args: dict[str, Any], context: ToolContext) -> ToolOutcome:
        query = args.get("query")
        if not isinstance(query, str):
            query = ""
        return ToolOutcome.completed(search_web(query, context.settings.search))

    return handler
