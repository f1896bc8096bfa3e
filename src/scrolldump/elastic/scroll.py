"""Scroll API client: open a cursor, advance it, release it."""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from elastic_transport import TransportError
from elasticsearch import ApiError, Elasticsearch

from scrolldump.config.models import RetryConfig
from scrolldump.elastic.responses import PageResult, parse_page
from scrolldump.exceptions import (
    CursorReleaseError,
    OperationCancelledError,
    TransientRequestError,
)
from scrolldump.extraction.retry import execute_with_retry

logger = logging.getLogger(__name__)


class ScrollClient:
    """Issues the three scroll operations against a single live cursor.

    Every operation holds the client's lock, so two calls can never overlap
    against the same server-side cursor. The cursor TTL passed to ``advance``
    is always the one used to open the session.
    """

    def __init__(
        self,
        es: Elasticsearch,
        index: str,
        page_size: int,
        scroll_ttl: str = "1m",
        retry_policy: RetryConfig | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """Initialize scroll client.

        Args:
            es: Elasticsearch client
            index: Index, alias or pattern to search
            page_size: Hits requested per page
            scroll_ttl: Cursor keep-alive, refreshed on every fetch
            retry_policy: Backoff settings for search and scroll requests
            cancel_event: Cooperative cancellation signal
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.es = es
        self.index = index
        self.page_size = page_size
        self.scroll_ttl = scroll_ttl
        self.retry_policy = retry_policy or RetryConfig()
        self.cancel_event = cancel_event or threading.Event()
        self._lock = threading.Lock()

    def _request(self, description: str, call: Callable[[], Any]) -> Any:
        """Perform one request, mapping failures to TransientRequestError.

        Returns:
            Decoded response body
        """
        try:
            response = call()
        except ApiError as e:
            raise TransientRequestError(
                f"{description} returned an error: {e.message}", status=e.meta.status
            ) from e
        except TransportError as e:
            raise TransientRequestError(f"{description} transport failure: {e}") from e
        return response.body

    def _check_cancelled(self, description: str) -> None:
        if self.cancel_event.is_set():
            raise OperationCancelledError(f"{description} cancelled")

    def open_session(self, query: Mapping[str, Any]) -> PageResult:
        """Submit the query and fetch the first page.

        The page size and an exact total-hit count are always requested;
        a ``size`` inside the query document is overridden.

        Args:
            query: Decoded query document

        Returns:
            First PageResult (total is always set)

        Raises:
            RequestExhaustedError: If retries are exhausted
            ParseError: If the response cannot be decoded
            OperationCancelledError: If cancelled
        """
        body = {**query, "size": self.page_size, "track_total_hits": True}
        with self._lock:
            self._check_cancelled("initial search")
            raw = execute_with_retry(
                lambda: self._request(
                    "initial search",
                    lambda: self.es.search(index=self.index, body=body, scroll=self.scroll_ttl),
                ),
                self.retry_policy,
                self.cancel_event,
                description="initial search",
            )
        page = parse_page(raw, require_total=True)
        logger.debug(
            f"Opened scroll on {self.index}: {page.total} total hits, "
            f"{len(page.records)} in first page"
        )
        return page

    def advance(self, cursor: str) -> PageResult:
        """Fetch the next page for ``cursor`` and refresh its TTL.

        An empty ``records`` list is a valid result meaning end of data.

        Args:
            cursor: Scroll ID returned by the previous call

        Returns:
            Next PageResult, carrying the cursor to use from now on

        Raises:
            RequestExhaustedError: If retries are exhausted
            ParseError: If the response cannot be decoded
            OperationCancelledError: If cancelled
        """
        with self._lock:
            self._check_cancelled("scroll")
            raw = execute_with_retry(
                lambda: self._request(
                    "scroll",
                    lambda: self.es.scroll(scroll_id=cursor, scroll=self.scroll_ttl),
                ),
                self.retry_policy,
                self.cancel_event,
                description="scroll",
            )
        return parse_page(raw)

    def close(self, cursor: str) -> None:
        """Release the server-side cursor. Not retried.

        Args:
            cursor: Scroll ID to clear

        Raises:
            CursorReleaseError: If the engine rejects or cannot be reached
        """
        with self._lock:
            try:
                self.es.clear_scroll(scroll_id=cursor)
            except ApiError as e:
                raise CursorReleaseError(
                    f"clear scroll returned status {e.meta.status}: {e.message}"
                ) from e
            except TransportError as e:
                raise CursorReleaseError(f"clear scroll transport failure: {e}") from e
        logger.debug("Released scroll cursor")
