from __future__ import annotations

import http.client
import json
from typing import Any
from urllib.error import URLError
from urllib.parse import parse_qs, urlparse

from sage.config import SearchSettings, Settings
from sage.runtime.scheduler import ManualScheduler
from sage.tools import build_default_registry
from sage.tools.context import ToolContext
from sage.tools.search_tool import SEARCH_UNAVAILABLE, search_web, summarize_search


def _fake_urlopen_factory(calls: list[Any], response_payload: bytes):
    class FakeResponse:
        def read(self) -> bytes:
            return response_payload

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb) -> bool:
            return False

    def fake_urlopen(request, timeout=0):
        calls.append((request, timeout))
        return FakeResponse()

    return fake_urlopen


def test_search_web_requests_instant_answer_json(monkeypatch) -> None:
    calls: list[Any] = []
    payload = json.dumps({"AbstractText": "Mars is a planet.", "RelatedTopics": []}).encode("utf-8")
    monkeypatch.setattr("sage.tools.search_tool.urlopen", _fake_urlopen_factory(calls, payload))

    result = search_web("mars news", SearchSettings())

    assert result == {"summary": "Mars is a planet.", "results": []}
    request, timeout = calls[0]
    assert timeout == 10.0
    parsed = urlparse(request.full_url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://api.duckduckgo.com/"
    query = parse_qs(parsed.query)
    assert query == {
        "q": ["mars news"],
        "format": ["json"],
        "no_html": ["1"],
        "skip_disambig": ["1"],
    }


def test_summarize_search_truncates_and_limits() -> None:
    data = {
        "AbstractText": "a" * 600,
        "RelatedTopics": [
            {"Text": "b" * 200},
            {"Name": "group without text"},
            "junk",
            {"Text": "second"},
            {"Text": "third"},
            {"Text": "fourth"},
            {"Text": "fifth"},
        ],
    }

    result = summarize_search(data, "q", SearchSettings())

    assert result["summary"] == "a" * 500
    assert result["results"] == [
        "- " + "b" * 120,
        "- second",
        "- third",
        "- fourth",
    ]


def test_summarize_search_without_abstract_points_at_related() -> None:
    result = summarize_search({"AbstractText": "", "RelatedTopics": [{"Text": "x"}]}, "q", SearchSettings())

    assert result == {"summary": "See related:", "results": ["- x"]}


def test_summarize_search_reports_no_results() -> None:
    result = summarize_search({"AbstractText": "", "RelatedTopics": []}, "quantum toast", SearchSettings())

    assert result == {"summary": 'No results found for "quantum toast".'}


def test_search_web_network_failure_returns_error(monkeypatch, caplog) -> None:
    def failing_urlopen(request, timeout=0):
        raise URLError("down")

    monkeypatch.setattr("sage.tools.search_tool.urlopen", failing_urlopen)

    result = search_web("latest news", SearchSettings())

    assert result == {"error": SEARCH_UNAVAILABLE}
    assert any("search failed" in record.message for record in caplog.records)


def test_search_web_bad_json_returns_error(monkeypatch) -> None:
    monkeypatch.setattr(
        "sage.tools.search_tool.urlopen", _fake_urlopen_factory([], b"<html>oops</html>")
    )

    assert search_web("latest news", SearchSettings()) == {"error": SEARCH_UNAVAILABLE}


def test_search_web_truncated_body_returns_error(monkeypatch) -> None:
    class TruncatedResponse:
        def read(self) -> bytes:
            raise http.client.IncompleteRead(b"partial")

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb) -> bool:
            return False

    monkeypatch.setattr(
        "sage.tools.search_tool.urlopen", lambda request, timeout=0: TruncatedResponse()
    )

    assert search_web("latest news", SearchSettings()) == {"error": SEARCH_UNAVAILABLE}


def test_search_handler_uses_context_settings(monkeypatch) -> None:
    calls: list[Any] = []
    payload = json.dumps({"AbstractText": "ok"}).encode("utf-8")
    monkeypatch.setattr("sage.tools.search_tool.urlopen", _fake_urlopen_factory(calls, payload))
    _registry, executor = build_default_registry()
    settings = Settings(search=SearchSettings(url="http://search.local/", timeout_s=2.5))
    context = ToolContext(session_id="s-1", scheduler=ManualScheduler(), settings=settings)

    outcome = executor.execute("searchWeb", {"query": "today"}, context)

    assert outcome.status == "completed"
    assert outcome.output == {"summary": "ok", "results": []}
    request, timeout = calls[0]
    assert request.full_url.startswith("http://search.local/?")
    assert timeout == 2.5
