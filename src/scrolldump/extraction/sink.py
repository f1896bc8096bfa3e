"""Field extraction from hits into a newline-delimited output file."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

import msgspec

from scrolldump.constants import DEFAULT_FIELD, MISSING_FIELD_LOG_LIMIT
from scrolldump.exceptions import SinkWriteError

logger = logging.getLogger(__name__)


@dataclass
class ProcessedBatch:
    """Outcome of processing one page of records."""

    written: int = 0
    skipped: int = 0


class FieldWriter:
    """Writes one field of each record to a text file, one value per line.

    The file is truncated when opened and owned exclusively by the writer
    until ``close``. Records lacking the field are skipped with a diagnostic.

    Example:
        >>> with FieldWriter(Path("titles.txt"), field="title") as writer:
        ...     writer.process([{"title": "a"}, {"other": 1}])
        ProcessedBatch(written=1, skipped=1)
    """

    def __init__(self, path: Path, field: str = DEFAULT_FIELD):
        """Initialize writer.

        Args:
            path: Output file path (parent directories are created)
            field: Name of the top-level field to extract
        """
        self.path = Path(path)
        self.field = field
        self._file: IO[str] | None = None
        self.total_written = 0
        self.total_skipped = 0

    def open(self) -> "FieldWriter":
        """Create (or truncate) the output file.

        Raises:
            SinkWriteError: If the file cannot be created
        """
        if self._file is not None:
            return self
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.path.open("w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise SinkWriteError(f"Failed to create output file {self.path}: {e}") from e
        return self

    def __enter__(self) -> "FieldWriter":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def format_value(value: Any) -> str:
        """Render a field value as one output line (without the newline).

        Strings are written as-is except that CR and LF become the two
        characters ``\\r`` and ``\\n``. Numbers, booleans, objects and arrays are
        written as compact JSON.
        """
        if isinstance(value, str):
            return value.replace("\r", "\\r").replace("\n", "\\n")
        return msgspec.json.encode(value).decode()

    def process(self, records: Iterable[dict[str, Any]]) -> ProcessedBatch:
        """Append the field of each record, in order, to the output file.

        Args:
            records: Page of hit sources

        Returns:
            ProcessedBatch with written and skipped counts for this page

        Raises:
            SinkWriteError: If writing fails (never retried)
        """
        if self._file is None:
            raise SinkWriteError("Output file is not open")

        batch = ProcessedBatch()
        for record in records:
            value = record.get(self.field)
            if value is None:
                batch.skipped += 1
                self.total_skipped += 1
                if self.total_skipped <= MISSING_FIELD_LOG_LIMIT:
                    logger.warning(f"Field '{self.field}' not found in document, skipping")
                elif self.total_skipped == MISSING_FIELD_LOG_LIMIT + 1:
                    logger.warning(
                        f"Further documents without '{self.field}' will be counted but not logged"
                    )
                continue
            try:
                self._file.write(f"{self.format_value(value)}\n")
            except OSError as e:
                raise SinkWriteError(f"Failed to write to {self.path}: {e}") from e
            batch.written += 1
            self.total_written += 1

        try:
            self._file.flush()
        except OSError as e:
            raise SinkWriteError(f"Failed to flush {self.path}: {e}") from e
        return batch

    def close(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            raise SinkWriteError(f"Failed to close {self.path}: {e}") from e
        finally:
            self._file = None
