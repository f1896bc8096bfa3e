"""Extraction module for driving scroll sessions."""

from scrolldump.extraction.orchestrator import (
    ExtractionResult,
    ScrollOrchestrator,
    ScrollSession,
    SessionState,
)
from scrolldump.extraction.progress import (
    JsonProgressTracker,
    OutputMode,
    ProgressTracker,
    RichProgressTracker,
)
from scrolldump.extraction.query import load_query, parse_params
from scrolldump.extraction.retry import execute_with_retry, with_retry
from scrolldump.extraction.sink import FieldWriter, ProcessedBatch

__all__ = [
    "ExtractionResult",
    "FieldWriter",
    "JsonProgressTracker",
    "OutputMode",
    "ProcessedBatch",
    "ProgressTracker",
    "RichProgressTracker",
    "ScrollOrchestrator",
    "ScrollSession",
    "SessionState",
    "execute_with_retry",
    "load_query",
    "parse_params",
    "with_retry",
]
