"""Shared pytest fixtures and factory functions for scrolldump tests.

This module provides reusable response bodies and mock Elasticsearch clients
so tests never need a live cluster.
"""

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, Mock

import pytest

from scrolldump.config.models import RetryConfig

_ENV_VARS = [
    "SCROLLDUMP_CONFIG",
    "SCROLLDUMP_ES_URL",
    "ELASTICSEARCH_URL",
    "SCROLLDUMP_VERIFY_SSL",
    "SCROLLDUMP_REQUEST_TIMEOUT",
    "SCROLLDUMP_INDEX",
    "SCROLLDUMP_PAGE_SIZE",
    "SCROLLDUMP_SCROLL_TTL",
    "SCROLLDUMP_FIELD",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and config files out of every test."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SCROLLDUMP_CONFIG", str(tmp_path / "absent-config.toml"))


#
# Configuration Fixtures
#


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Backoff policy with millisecond delays and a one second budget.

    Returns:
        RetryConfig: Retry settings suitable for unit tests.
    """
    return RetryConfig(initial_interval=0.01, multiplier=1.5, max_interval=0.05, max_elapsed=1.0)


#
# Response Fixtures
#


@pytest.fixture
def make_response():
    """Factory for search/scroll response bodies.

    Returns:
        Callable building a response dict from a cursor, sources and total.
    """

    def _make(
        cursor: str = "cursor-1",
        sources: list[dict[str, Any]] | None = None,
        total: int | None = None,
    ) -> dict[str, Any]:
        sources = sources or []
        hits: dict[str, Any] = {
            "max_score": 1.0,
            "hits": [
                {"_index": "sample_data", "_id": str(i), "_score": 1.0, "_source": source}
                for i, source in enumerate(sources)
            ],
        }
        if total is not None:
            hits["total"] = {"value": total, "relation": "eq"}
        return {"_scroll_id": cursor, "took": 2, "timed_out": False, "hits": hits}

    return _make


@pytest.fixture
def api_response():
    """Wrap a body the way the Elasticsearch client returns it.

    Returns:
        Callable turning a dict into an object with a ``body`` attribute.
    """

    def _wrap(body: dict[str, Any]) -> Mock:
        return Mock(body=body)

    return _wrap


@pytest.fixture
def titled_documents():
    """Factory for ``n`` documents carrying a numbered title.

    Returns:
        Callable returning a list of source dicts.
    """

    def _make(n: int) -> list[dict[str, Any]]:
        return [{"title": f"Document {i}", "views": i} for i in range(1, n + 1)]

    return _make


@pytest.fixture
def make_scroll_es(make_response, api_response):
    """Factory for a mock Elasticsearch client serving ``sources`` in pages.

    ``search`` returns the first page (with the total), ``scroll`` returns
    the remaining pages followed by one empty page. Cursors are numbered
    ``cursor-1``, ``cursor-2``, ... in the order they are handed out.

    Returns:
        Callable building a configured MagicMock.
    """

    def _make(
        sources: list[dict[str, Any]],
        page_size: int,
        total: int | None = None,
    ) -> MagicMock:
        total = len(sources) if total is None else total
        pages = [sources[i : i + page_size] for i in range(0, len(sources), page_size)] or [[]]

        es = MagicMock()
        es.search.return_value = api_response(
            make_response(cursor="cursor-1", sources=pages[0], total=total)
        )
        follow_up = [
            api_response(make_response(cursor=f"cursor-{n}", sources=page))
            for n, page in enumerate(pages[1:], start=2)
        ]
        follow_up.append(api_response(make_response(cursor=f"cursor-{len(pages) + 1}")))
        es.scroll.side_effect = follow_up
        return es

    return _make
