"""Schema-first decoding of Elasticsearch search/scroll responses.

Responses are converted with msgspec into the Struct types below, so a
structurally invalid response fails at the first bad location with a path
(e.g. ``$.hits.hits[3]._source``) instead of deep inside processing.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import msgspec

from scrolldump.exceptions import ParseError

Record = dict[str, Any]


class TotalHits(msgspec.Struct):
    """``hits.total`` object returned when track_total_hits is enabled."""

    value: int
    relation: str = "eq"


class Hit(msgspec.Struct):
    """A single search hit; only the document body is consumed."""

    source: Record = msgspec.field(name="_source")
    id: str | None = msgspec.field(default=None, name="_id")
    index: str | None = msgspec.field(default=None, name="_index")


class HitsEnvelope(msgspec.Struct):
    hits: list[Hit]
    # Older clusters (or rest_total_hits_as_int) return a bare integer
    total: TotalHits | int | None = None


class ScrollResponse(msgspec.Struct):
    """Top-level shape shared by search-with-scroll and scroll responses."""

    scroll_id: str = msgspec.field(name="_scroll_id")
    hits: HitsEnvelope


@dataclass(frozen=True)
class PageResult:
    """One page of a scroll session."""

    cursor: str
    total: int | None
    records: list[Record] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.records


def parse_page(raw: Any, require_total: bool = False) -> PageResult:
    """Decode a response object into a PageResult.

    Pure function: the same input always yields an equal PageResult.

    Args:
        raw: Decoded JSON response body
        require_total: Whether ``hits.total`` must be present (first page)

    Returns:
        PageResult with cursor, total and the ``_source`` of every hit in order

    Raises:
        ParseError: If the response does not have the expected shape
    """
    if not isinstance(raw, Mapping):
        raise ParseError(f"Expected a JSON object response, got {type(raw).__name__}")
    if not isinstance(raw.get("_scroll_id"), str) or not raw["_scroll_id"]:
        raise ParseError("missing cursor")

    try:
        response = msgspec.convert(dict(raw), type=ScrollResponse)
    except msgspec.ValidationError as e:
        raise ParseError(f"Malformed response: {e}") from e

    total = response.hits.total
    if isinstance(total, TotalHits):
        total = total.value
    if total is None and require_total:
        raise ParseError("missing total hit count")

    return PageResult(
        cursor=response.scroll_id,
        total=total,
        records=[hit.source for hit in response.hits.hits],
    )


def parse_page_bytes(data: bytes | str, require_total: bool = False) -> PageResult:
    """Decode a raw JSON response body into a PageResult.

    Args:
        data: Raw response body
        require_total: Whether ``hits.total`` must be present (first page)

    Returns:
        Parsed PageResult

    Raises:
        ParseError: If the body is not valid JSON or has the wrong shape
    """
    try:
        raw = msgspec.json.decode(data)
    except msgspec.DecodeError as e:
        raise ParseError(f"Response body is not valid JSON: {e}") from e
    return parse_page(raw, require_total=require_total)
