"""Orchestration of a scroll session: open, page through, release."""

import logging
import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from scrolldump.elastic.responses import PageResult
from scrolldump.exceptions import (
    CursorReleaseError,
    OperationCancelledError,
    OrchestrationError,
    ParseError,
    SinkWriteError,
)
from scrolldump.extraction.progress import ProgressTracker
from scrolldump.extraction.sink import FieldWriter

if TYPE_CHECKING:
    from scrolldump.elastic.scroll import ScrollClient

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a scroll session."""

    INIT = "init"
    FIRST_PAGE = "first_page"
    PAGING = "paging"
    DRAINING_DONE = "draining_done"
    CLOSED = "closed"
    ABORTED = "aborted"


_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.INIT: {SessionState.FIRST_PAGE, SessionState.ABORTED},
    SessionState.FIRST_PAGE: {
        SessionState.PAGING,
        SessionState.DRAINING_DONE,
        SessionState.ABORTED,
    },
    SessionState.PAGING: {SessionState.DRAINING_DONE, SessionState.ABORTED},
    SessionState.DRAINING_DONE: {SessionState.CLOSED, SessionState.ABORTED},
    SessionState.CLOSED: set(),
    SessionState.ABORTED: set(),
}


@dataclass
class ScrollSession:
    """Mutable state of one scroll session, threaded through the loop."""

    page_size: int
    state: SessionState = SessionState.INIT
    cursor: str | None = None
    total_hits: int = 0
    total_pages: int = 0
    pages_fetched: int = 0
    pages_processed: int = 0
    records_seen: int = 0
    lines_written: int = 0
    records_skipped: int = 0
    cursor_released: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.CLOSED, SessionState.ABORTED)

    def transition(self, new_state: SessionState) -> None:
        """Move to ``new_state``.

        Raises:
            ValueError: If the transition is not allowed from the current state
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Invalid session transition {self.state.value} -> {new_state.value}")
        logger.debug(f"Session state {self.state.value} -> {new_state.value}")
        self.state = new_state

    def accept(self, page: PageResult) -> None:
        """Adopt the cursor returned with ``page``; the previous one is now stale."""
        self.cursor = page.cursor
        self.pages_fetched += 1


@dataclass
class ExtractionResult:
    """Result of a scroll session."""

    total_hits: int
    total_pages: int
    pages_processed: int
    records_seen: int
    lines_written: int
    records_skipped: int
    cursor_released: bool
    duration_seconds: float = 0.0

    @classmethod
    def from_session(cls, session: ScrollSession, duration_seconds: float) -> "ExtractionResult":
        return cls(
            total_hits=session.total_hits,
            total_pages=session.total_pages,
            pages_processed=session.pages_processed,
            records_seen=session.records_seen,
            lines_written=session.lines_written,
            records_skipped=session.records_skipped,
            cursor_released=session.cursor_released,
            duration_seconds=duration_seconds,
        )


class ScrollOrchestrator:
    """Drives a scroll session from the first query to cursor release."""

    def __init__(
        self,
        client: "ScrollClient",
        writer: FieldWriter,
        query: dict[str, Any],
        progress: ProgressTracker | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """Initialize orchestrator with dependencies.

        Args:
            client: Scroll client (open/advance/close)
            writer: Output writer, opened and closed by the orchestrator
            query: Decoded query document
            progress: Progress tracker
            cancel_event: Cooperative cancellation signal, checked between pages
        """
        self.client = client
        self.writer = writer
        self.query = query
        self.progress = progress
        self.cancel_event = cancel_event or threading.Event()
        self.session: ScrollSession | None = None

    def run(self) -> ExtractionResult:
        """Execute the scroll session.

        Returns:
            ExtractionResult with summary

        Raises:
            OrchestrationError: If the session aborts; ``phase`` names where
        """
        start_time = time.monotonic()
        session = ScrollSession(page_size=self.client.page_size)
        self.session = session
        location = "init"

        try:
            self._init(session)

            location = "open"
            session.transition(SessionState.FIRST_PAGE)
            page = self.client.open_session(self.query)
            self._first_page(session, page)

            while session.state is SessionState.PAGING:
                if self.cancel_event.is_set():
                    raise OperationCancelledError("Scroll cancelled between pages")
                location = f"page {session.pages_fetched + 1}"
                page = self.client.advance(session.cursor)
                session.accept(page)
                if page.is_empty:
                    logger.info("No more hits to process")
                    session.transition(SessionState.DRAINING_DONE)
                    break
                self._process(session, page)

            location = "write"
            self.writer.close()
            self._release(session)
            session.transition(SessionState.CLOSED)

        except Exception as e:
            phase = self._phase_for(e, location)
            self._abort(session, phase, e)
            raise OrchestrationError(phase, e) from e

        result = ExtractionResult.from_session(session, time.monotonic() - start_time)
        if self.progress:
            self.progress.complete()
        logger.info(
            f"Scroll complete: {result.lines_written} lines from {result.records_seen} "
            f"documents in {result.pages_processed} pages ({result.duration_seconds:.1f}s)"
        )
        return result

    def _init(self, session: ScrollSession) -> None:
        if not isinstance(self.query, dict):
            raise ValueError("Query must be a decoded JSON object")
        if session.page_size < 1:
            raise ValueError(f"Page size must be positive, got {session.page_size}")
        self.writer.open()

    def _first_page(self, session: ScrollSession, page: PageResult) -> None:
        session.accept(page)
        session.total_hits = page.total or 0
        session.total_pages = math.ceil(session.total_hits / session.page_size)
        logger.info(f"Total hits: {session.total_hits} ({session.total_pages} pages)")
        if self.progress:
            self.progress.start(session.total_hits, session.total_pages)

        if page.is_empty:
            logger.info("No hits to process")
            session.transition(SessionState.DRAINING_DONE)
            return

        self._process(session, page)
        if session.total_hits > session.page_size:
            session.transition(SessionState.PAGING)
        else:
            session.transition(SessionState.DRAINING_DONE)

    def _process(self, session: ScrollSession, page: PageResult) -> None:
        page_number = session.pages_processed + 1
        logger.info(f"Processing page {page_number} of {session.total_pages}")
        batch = self.writer.process(page.records)

        session.pages_processed = page_number
        session.records_seen += len(page.records)
        session.lines_written += batch.written
        session.records_skipped += batch.skipped
        if self.progress:
            self.progress.page_processed(
                page_number, len(page.records), batch.written, batch.skipped
            )

    def _release(self, session: ScrollSession) -> None:
        """Clear the cursor; failure is reported but never fails the run."""
        if session.cursor is None:
            return
        try:
            self.client.close(session.cursor)
            session.cursor_released = True
        except CursorReleaseError as e:
            logger.warning(f"Failed to clear scroll cursor: {e}")

    def _abort(self, session: ScrollSession, phase: str, error: Exception) -> None:
        """Move to ABORTED and make a best-effort cleanup that never raises."""
        logger.error(f"Scroll session aborted during {phase}: {error}")
        if not session.is_terminal:
            session.transition(SessionState.ABORTED)

        try:
            self.writer.close()
        except SinkWriteError as close_error:
            logger.warning(f"Failed to close output file: {close_error}")

        if session.cursor is not None and not session.cursor_released:
            try:
                self.client.close(session.cursor)
                session.cursor_released = True
            except Exception as release_error:
                logger.warning(f"Failed to clear scroll cursor after abort: {release_error}")

        if self.progress:
            self.progress.fail(f"{phase}: {error}")

    @staticmethod
    def _phase_for(error: Exception, location: str) -> str:
        if isinstance(error, OperationCancelledError):
            return "cancelled"
        if isinstance(error, SinkWriteError):
            return "write"
        if isinstance(error, ParseError):
            return f"parse ({location})"
        return location
