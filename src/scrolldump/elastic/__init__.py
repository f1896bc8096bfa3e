"""Elasticsearch access: client wrapper, scroll client and response parsing."""

from scrolldump.elastic.client import ElasticsearchClient
from scrolldump.elastic.responses import PageResult, parse_page, parse_page_bytes
from scrolldump.elastic.scroll import ScrollClient

__all__ = [
    "ElasticsearchClient",
    "PageResult",
    "ScrollClient",
    "parse_page",
    "parse_page_bytes",
]
