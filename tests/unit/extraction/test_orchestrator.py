"""Unit tests for ScrollOrchestrator.

The orchestrator is driven through a real ScrollClient on top of a mocked
Elasticsearch client, so request shapes, retries and decoding are exercised
together with the session state machine.
"""

import logging
import math
import threading
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest
from elastic_transport import ConnectionError as TransportConnectionError
from elasticsearch import ApiError

from scrolldump.config.models import RetryConfig
from scrolldump.elastic.responses import PageResult
from scrolldump.elastic.scroll import ScrollClient
from scrolldump.exceptions import (
    CursorReleaseError,
    OperationCancelledError,
    OrchestrationError,
    ParseError,
    RequestExhaustedError,
    SinkWriteError,
)
from scrolldump.extraction.orchestrator import (
    ScrollOrchestrator,
    ScrollSession,
    SessionState,
)
from scrolldump.extraction.sink import FieldWriter

MATCH_ALL = {"query": {"match_all": {}}}


@pytest.fixture
def output_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "logs.txt"


@pytest.fixture
def build(output_file, fast_retry):
    """Factory wiring an orchestrator around a mocked Elasticsearch client.

    Returns:
        Callable returning the orchestrator
    """

    def _build(es, page_size: int, progress=None, cancel_event=None, field: str = "title"):
        cancel_event = cancel_event or threading.Event()
        client = ScrollClient(
            es,
            index="sample_data",
            page_size=page_size,
            scroll_ttl="1m",
            retry_policy=fast_retry,
            cancel_event=cancel_event,
        )
        return ScrollOrchestrator(
            client=client,
            writer=FieldWriter(output_file, field=field),
            query=MATCH_ALL,
            progress=progress,
            cancel_event=cancel_event,
        )

    return _build


def _lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


class TestSuccessfulSessions:
    """Sessions that drain the cursor and close cleanly."""

    def test_thirteen_hits_in_pages_of_six(
        self, build, make_scroll_es, titled_documents, output_file
    ):
        """Test pages of 6, 6 and 1 followed by an empty terminating page."""
        docs = titled_documents(13)
        es = make_scroll_es(docs, page_size=6)
        orchestrator = build(es, page_size=6)

        result = orchestrator.run()

        assert _lines(output_file) == [f"Document {i}" for i in range(1, 14)]
        assert result.total_hits == 13
        assert result.total_pages == 3
        assert result.pages_processed == 3
        assert result.records_seen == 13
        assert result.lines_written == 13
        assert result.cursor_released is True
        # Two full follow-up pages plus the terminating empty page
        assert es.scroll.call_count == 3
        assert orchestrator.session.state is SessionState.CLOSED

    def test_each_cursor_replaces_the_previous_one(self, build, make_scroll_es, titled_documents):
        """Test that every advance uses the cursor from the latest response."""
        es = make_scroll_es(titled_documents(13), page_size=6)

        build(es, page_size=6).run()

        assert [c.kwargs["scroll_id"] for c in es.scroll.call_args_list] == [
            "cursor-1",
            "cursor-2",
            "cursor-3",
        ]
        es.clear_scroll.assert_called_once_with(scroll_id="cursor-4")

    def test_ttl_is_reused_for_every_page(self, build, make_scroll_es, titled_documents):
        """Test that scroll requests carry the keep-alive the session opened with."""
        es = make_scroll_es(titled_documents(10), page_size=3)

        build(es, page_size=3).run()

        assert es.search.call_args.kwargs["scroll"] == "1m"
        assert {c.kwargs["scroll"] for c in es.scroll.call_args_list} == {"1m"}

    def test_single_page_skips_scrolling(
        self, build, make_scroll_es, titled_documents, output_file
    ):
        """Test that a result fitting in one page never calls scroll."""
        es = make_scroll_es(titled_documents(4), page_size=5)

        result = build(es, page_size=5).run()

        es.scroll.assert_not_called()
        es.clear_scroll.assert_called_once_with(scroll_id="cursor-1")
        assert result.pages_processed == 1
        assert len(_lines(output_file)) == 4

    def test_exact_page_multiple_skips_scrolling(self, build, make_scroll_es, titled_documents):
        """Test that total == page size is handled as a single page."""
        es = make_scroll_es(titled_documents(5), page_size=5)

        result = build(es, page_size=5).run()

        es.scroll.assert_not_called()
        assert result.pages_processed == 1

    def test_zero_hits(self, build, make_scroll_es, output_file):
        """Test that an empty result set still creates the file and clears the cursor."""
        es = make_scroll_es([], page_size=5)

        result = build(es, page_size=5).run()

        assert output_file.exists()
        assert output_file.read_text(encoding="utf-8") == ""
        assert result.total_hits == 0
        assert result.total_pages == 0
        assert result.pages_processed == 0
        es.scroll.assert_not_called()
        es.clear_scroll.assert_called_once_with(scroll_id="cursor-1")

    def test_empty_page_ends_session_regardless_of_total(
        self, build, make_response, api_response, titled_documents, output_file
    ):
        """Test that an empty page terminates even if the total promised more."""
        es = MagicMock()
        es.search.return_value = api_response(
            make_response(cursor="c1", sources=titled_documents(5), total=100)
        )
        es.scroll.return_value = api_response(make_response(cursor="c2"))

        result = build(es, page_size=5).run()

        assert result.pages_processed == 1
        assert result.total_hits == 100
        assert es.scroll.call_count == 1
        assert len(_lines(output_file)) == 5

    def test_more_pages_than_total_predicted(
        self, build, make_response, api_response, titled_documents
    ):
        """Test that paging continues until an empty page, not until the predicted count."""
        docs = titled_documents(9)
        es = MagicMock()
        es.search.return_value = api_response(
            make_response(cursor="c1", sources=docs[:3], total=6)
        )
        es.scroll.side_effect = [
            api_response(make_response(cursor="c2", sources=docs[3:6])),
            api_response(make_response(cursor="c3", sources=docs[6:9])),
            api_response(make_response(cursor="c4")),
        ]

        result = build(es, page_size=3).run()

        assert result.pages_processed == 3
        assert result.lines_written == 9

    def test_records_without_field_are_skipped(
        self, build, make_scroll_es, titled_documents, output_file
    ):
        """Test that missing fields are counted and do not stop the session."""
        docs = titled_documents(6)
        docs[1] = {"views": 2}
        docs[4] = {"title": None}
        es = make_scroll_es(docs, page_size=4)

        result = build(es, page_size=4).run()

        assert result.records_seen == 6
        assert result.lines_written == 4
        assert result.records_skipped == 2
        assert _lines(output_file) == ["Document 1", "Document 3", "Document 4", "Document 6"]

    def test_transient_failures_do_not_change_output(
        self, tmp_path, fast_retry, make_scroll_es, titled_documents
    ):
        """Test that a run with retried requests writes the same file as a clean run."""
        docs = titled_documents(13)

        def run(es, path):
            client = ScrollClient(es, "sample_data", page_size=6, retry_policy=fast_retry)
            ScrollOrchestrator(client, FieldWriter(path), MATCH_ALL).run()
            return path.read_text(encoding="utf-8")

        clean = run(make_scroll_es(docs, page_size=6), tmp_path / "clean.txt")

        flaky = make_scroll_es(docs, page_size=6)
        first_page = flaky.search.return_value
        flaky.search.side_effect = [
            TransportConnectionError("Connection refused"),
            ApiError("unavailable", meta=Mock(status=503), body={}),
            first_page,
        ]
        pages = list(flaky.scroll.side_effect)
        flaky.scroll.side_effect = [pages[0], TransportConnectionError("reset"), *pages[1:]]

        assert run(flaky, tmp_path / "flaky.txt") == clean
        assert flaky.search.call_count == 3

    def test_close_failure_does_not_fail_the_run(
        self, build, make_scroll_es, titled_documents, output_file, caplog
    ):
        """Test that a rejected cursor release is only a warning."""
        es = make_scroll_es(titled_documents(3), page_size=5)
        es.clear_scroll.side_effect = ApiError("missing", meta=Mock(status=404), body={})

        with caplog.at_level(logging.WARNING):
            result = build(es, page_size=5).run()

        assert result.cursor_released is False
        assert result.lines_written == 3
        assert len(_lines(output_file)) == 3
        assert "Failed to clear scroll cursor" in caplog.text

    def test_progress_is_reported(self, build, make_scroll_es, titled_documents):
        """Test the progress tracker receives start, one call per page and complete."""
        progress = Mock()
        es = make_scroll_es(titled_documents(13), page_size=6)

        build(es, page_size=6, progress=progress).run()

        progress.start.assert_called_once_with(13, 3)
        assert [c.args for c in progress.page_processed.call_args_list] == [
            (1, 6, 6, 0),
            (2, 6, 6, 0),
            (3, 1, 1, 0),
        ]
        progress.complete.assert_called_once()
        progress.fail.assert_not_called()

    def test_logs_page_numbers(self, build, make_scroll_es, titled_documents, caplog):
        """Test that each page logs its number against the expected page count."""
        es = make_scroll_es(titled_documents(13), page_size=6)

        with caplog.at_level(logging.INFO, logger="scrolldump.extraction.orchestrator"):
            build(es, page_size=6).run()

        assert "Total hits: 13 (3 pages)" in caplog.text
        for n in (1, 2, 3):
            assert f"Processing page {n} of 3" in caplog.text
        assert "No more hits to process" in caplog.text

    @pytest.mark.parametrize(
        ("total", "page_size"),
        [(0, 5), (1, 5), (5, 5), (6, 5), (13, 6), (25, 7), (30, 1), (99, 100), (101, 100)],
    )
    def test_page_count_matches_ceiling(
        self, build, make_scroll_es, titled_documents, output_file, total, page_size
    ):
        """Test that N hits at page size P give ceil(N/P) pages and N lines in order."""
        es = make_scroll_es(titled_documents(total), page_size=page_size)

        result = build(es, page_size=page_size).run()

        assert result.pages_processed == math.ceil(total / page_size)
        assert _lines(output_file) == [f"Document {i}" for i in range(1, total + 1)]


class TestAbortedSessions:
    """Sessions that fail and must still clean up."""

    def test_parse_error_on_later_page(
        self, build, make_response, api_response, titled_documents, output_file
    ):
        """Test that a malformed page aborts with its location and releases the cursor."""
        docs = titled_documents(10)
        es = MagicMock()
        es.search.return_value = api_response(
            make_response(cursor="c1", sources=docs[:5], total=10)
        )
        es.scroll.return_value = api_response({"hits": {"hits": []}})
        progress = Mock()

        orchestrator = build(es, page_size=5, progress=progress)
        with pytest.raises(OrchestrationError) as exc_info:
            orchestrator.run()

        assert exc_info.value.phase == "parse (page 2)"
        assert isinstance(exc_info.value.cause, ParseError)
        assert orchestrator.session.state is SessionState.ABORTED
        es.clear_scroll.assert_called_once_with(scroll_id="c1")
        progress.fail.assert_called_once()
        progress.complete.assert_not_called()
        # First page was already flushed
        assert len(_lines(output_file)) == 5

    def test_parse_error_on_first_page(self, build, api_response):
        """Test that a first page without a cursor fails in the open phase."""
        es = MagicMock()
        es.search.return_value = api_response({"hits": {"total": 1, "hits": []}})

        with pytest.raises(OrchestrationError) as exc_info:
            build(es, page_size=5).run()

        assert exc_info.value.phase == "parse (open)"
        es.clear_scroll.assert_not_called()

    def test_unreachable_cluster_fails_open(self, output_file):
        """Test that exhausted retries on the initial search fail in the open phase."""
        es = MagicMock()
        es.search.side_effect = TransportConnectionError("Connection refused")
        policy = RetryConfig(initial_interval=0.01, max_interval=0.02, max_elapsed=0.1)
        client = ScrollClient(es, "sample_data", page_size=5, retry_policy=policy)

        with pytest.raises(OrchestrationError) as exc_info:
            ScrollOrchestrator(client, FieldWriter(output_file), MATCH_ALL).run()

        assert exc_info.value.phase == "open"
        assert isinstance(exc_info.value.cause, RequestExhaustedError)
        es.clear_scroll.assert_not_called()

    def test_exhausted_retries_mid_scroll(
        self, make_response, api_response, titled_documents, output_file
    ):
        """Test that a page that keeps failing aborts and clears the last cursor."""
        es = MagicMock()
        es.search.return_value = api_response(
            make_response(cursor="c1", sources=titled_documents(5), total=10)
        )
        es.scroll.side_effect = ApiError("unavailable", meta=Mock(status=503), body={})
        policy = RetryConfig(initial_interval=0.01, max_interval=0.02, max_elapsed=0.1)
        client = ScrollClient(es, "sample_data", page_size=5, retry_policy=policy)

        with pytest.raises(OrchestrationError) as exc_info:
            ScrollOrchestrator(client, FieldWriter(output_file), MATCH_ALL).run()

        assert exc_info.value.phase == "page 2"
        assert isinstance(exc_info.value.cause, RequestExhaustedError)
        es.clear_scroll.assert_called_once_with(scroll_id="c1")

    def test_write_failure_aborts(self, build, make_scroll_es, titled_documents):
        """Test that an output error aborts in the write phase and releases the cursor."""
        es = make_scroll_es(titled_documents(13), page_size=6)
        orchestrator = build(es, page_size=6)
        orchestrator.writer.process = Mock(side_effect=SinkWriteError("No space left on device"))

        with pytest.raises(OrchestrationError) as exc_info:
            orchestrator.run()

        assert exc_info.value.phase == "write"
        es.scroll.assert_not_called()
        es.clear_scroll.assert_called_once_with(scroll_id="cursor-1")

    def test_release_failure_during_abort_keeps_original_error(
        self, build, make_response, api_response, titled_documents
    ):
        """Test that a failing best-effort release does not mask the abort cause."""
        es = MagicMock()
        es.search.return_value = api_response(
            make_response(cursor="c1", sources=titled_documents(5), total=10)
        )
        es.scroll.return_value = api_response({"_scroll_id": "c2", "hits": "garbage"})
        es.clear_scroll.side_effect = TransportConnectionError("Connection refused")

        with pytest.raises(OrchestrationError) as exc_info:
            build(es, page_size=5).run()

        assert isinstance(exc_info.value.cause, ParseError)
        es.clear_scroll.assert_called_once()

    def test_cancellation_between_pages(self, build, make_scroll_es, titled_documents):
        """Test that a cancel request stops paging and still clears the cursor."""
        cancel = threading.Event()
        progress = Mock()
        progress.page_processed.side_effect = lambda *args: cancel.set()
        es = make_scroll_es(titled_documents(13), page_size=6)

        orchestrator = build(es, page_size=6, progress=progress, cancel_event=cancel)
        with pytest.raises(OrchestrationError) as exc_info:
            orchestrator.run()

        assert exc_info.value.phase == "cancelled"
        assert isinstance(exc_info.value.cause, OperationCancelledError)
        assert orchestrator.session.pages_processed == 1
        es.scroll.assert_not_called()
        es.clear_scroll.assert_called_once_with(scroll_id="cursor-1")

    def test_cancelled_before_start(self, build, make_scroll_es, titled_documents):
        """Test that a pre-set cancel event prevents the initial search."""
        cancel = threading.Event()
        cancel.set()
        es = make_scroll_es(titled_documents(3), page_size=5)

        with pytest.raises(OrchestrationError) as exc_info:
            build(es, page_size=5, cancel_event=cancel).run()

        assert exc_info.value.phase == "cancelled"
        es.search.assert_not_called()
        es.clear_scroll.assert_not_called()

    def test_output_unwritable_fails_init(self, tmp_path, fast_retry):
        """Test that an uncreatable output file fails before any request."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        es = MagicMock()
        client = ScrollClient(es, "sample_data", page_size=5, retry_policy=fast_retry)

        with pytest.raises(OrchestrationError) as exc_info:
            ScrollOrchestrator(client, FieldWriter(blocker / "logs.txt"), MATCH_ALL).run()

        assert exc_info.value.phase == "write"
        es.search.assert_not_called()


class TestScrollSession:
    """Tests for the session state machine."""

    def test_happy_path_transitions(self) -> None:
        session = ScrollSession(page_size=5)

        for state in (SessionState.FIRST_PAGE, SessionState.PAGING, SessionState.DRAINING_DONE):
            session.transition(state)
        session.transition(SessionState.CLOSED)

        assert session.is_terminal

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (SessionState.INIT, SessionState.PAGING),
            (SessionState.INIT, SessionState.CLOSED),
            (SessionState.PAGING, SessionState.FIRST_PAGE),
            (SessionState.PAGING, SessionState.CLOSED),
            (SessionState.CLOSED, SessionState.ABORTED),
            (SessionState.ABORTED, SessionState.CLOSED),
        ],
    )
    def test_invalid_transitions(self, start: SessionState, target: SessionState) -> None:
        session = ScrollSession(page_size=5, state=start)

        with pytest.raises(ValueError, match="Invalid session transition"):
            session.transition(target)

    def test_accept_replaces_cursor(self) -> None:
        session = ScrollSession(page_size=5)

        session.accept(PageResult(cursor="a", total=3))
        session.accept(PageResult(cursor="b", total=None))

        assert session.cursor == "b"
        assert session.pages_fetched == 2


def test_release_error_is_tolerated_after_draining(build, make_scroll_es, titled_documents):
    """Test that a CursorReleaseError after draining still closes the session."""
    es = make_scroll_es(titled_documents(2), page_size=5)
    orchestrator = build(es, page_size=5)
    orchestrator.client.close = Mock(side_effect=CursorReleaseError("gone"))

    result = orchestrator.run()

    assert result.cursor_released is False
    assert orchestrator.session.state is SessionState.CLOSED
