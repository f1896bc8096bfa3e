"""Progress tracking for scroll sessions."""

import json
import sys
from enum import Enum
from typing import Any, Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


class OutputMode(str, Enum):
    """Output mode for progress tracking."""

    HUMAN = "table"
    MACHINE = "json"


class ProgressTracker(Protocol):
    """Protocol for tracking scroll progress."""

    def start(self, total_hits: int, total_pages: int) -> None:
        """Start tracking once the first page reports the hit count.

        Args:
            total_hits: Total hits reported by the engine
            total_pages: Expected number of non-empty pages
        """
        ...

    def page_processed(self, page: int, records: int, written: int, skipped: int) -> None:
        """Record one processed page.

        Args:
            page: 1-based page number
            records: Records in the page
            written: Lines written for the page
            skipped: Records lacking the field
        """
        ...

    def complete(self) -> None:
        """Mark the session complete."""
        ...

    def fail(self, error: str) -> None:
        """Mark the session failed."""
        ...

    def emit_event(self, event: str, **data: Any) -> None:
        """Emit structured event (for JSON mode).

        Args:
            event: Event type
            **data: Event payload
        """
        ...


class RichProgressTracker:
    """Terminal-based progress tracker using Rich library."""

    def __init__(self, disable: bool = False, console: Console | None = None):
        """Initialize progress tracker.

        Args:
            disable: If True, disable progress display
            console: Console to render on (defaults to stderr)
        """
        self.console = console or Console(stderr=True)
        self.disable = disable
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def __enter__(self):
        """Enter context manager."""
        if not self.disable:
            self._progress = Progress(
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TextColumn("({task.percentage:>3.0f}%)"),
                TimeElapsedColumn(),
                TimeRemainingColumn(),
                console=self.console,
            )
            self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        if self._progress:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
        return False

    def start(self, total_hits: int, total_pages: int) -> None:
        if self._progress and not self.disable:
            self._task = self._progress.add_task(
                f"Scrolling {total_pages} pages", total=total_hits
            )

    def page_processed(self, page: int, records: int, written: int, skipped: int) -> None:
        if self._progress and self._task is not None:
            self._progress.update(self._task, advance=records)

    def complete(self) -> None:
        if self._progress and self._task is not None:
            task = next(t for t in self._progress.tasks if t.id == self._task)
            # Totals can drift (e.g. concurrent deletes); snap the bar to what was seen
            self._progress.update(self._task, total=task.completed)

    def fail(self, error: str) -> None:
        if not self.disable:
            self.console.print(f"[red]✗ Scroll failed: {error}[/red]")

    def emit_event(self, event: str, **data: Any) -> None:
        """Emit structured event (no-op for Rich tracker)."""
        pass  # Rich tracker uses visual progress, not events


class JsonProgressTracker:
    """JSON-based progress tracker for machine-readable output."""

    def __init__(self):
        """Initialize JSON progress tracker."""
        self.total_hits: int | None = None
        self.records_seen = 0

    def __enter__(self):
        """Enter context manager."""
        self.emit_event("extraction_started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        if exc_type:
            self.emit_event("extraction_failed", error=str(exc_val))
        else:
            self.emit_event("extraction_complete")
        return False

    def start(self, total_hits: int, total_pages: int) -> None:
        self.total_hits = total_hits
        self.emit_event("scroll_opened", total_hits=total_hits, total_pages=total_pages)

    def page_processed(self, page: int, records: int, written: int, skipped: int) -> None:
        self.records_seen += records
        percentage = (self.records_seen / self.total_hits) * 100 if self.total_hits else 0
        self.emit_event(
            "page_processed",
            page=page,
            records=records,
            written=written,
            skipped=skipped,
            percentage=round(percentage, 2),
        )

    def complete(self) -> None:
        self.emit_event("scroll_complete", records=self.records_seen)

    def fail(self, error: str) -> None:
        self.emit_event("scroll_failed", error=error)

    def emit_event(self, event: str, **data: Any) -> None:
        """Emit structured JSON event.

        Args:
            event: Event type
            **data: Event payload
        """
        event_data = {"event": event, **data}
        print(json.dumps(event_data), file=sys.stdout, flush=True)
