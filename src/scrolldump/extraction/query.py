"""Loading the query document and filling in literal placeholders."""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import msgspec

from scrolldump.exceptions import QueryError

logger = logging.getLogger(__name__)


def parse_params(pairs: Iterable[str]) -> dict[str, str]:
    """Parse ``NAME=VALUE`` strings from the command line.

    Args:
        pairs: Raw ``--param`` values

    Returns:
        Mapping of placeholder name to replacement text

    Raises:
        QueryError: If a pair has no ``=`` or an empty name
    """
    params: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise QueryError(f"Invalid parameter '{pair}' (expected NAME=VALUE)")
        params[name] = value
    return params


def substitute_placeholders(text: str, params: Mapping[str, str]) -> str:
    """Replace every ``{{NAME}}`` token with its literal value.

    This is plain text replacement: no escaping, no expressions. Tokens with
    no matching parameter are left untouched.
    """
    for name, value in params.items():
        token = "{{" + name + "}}"
        if token not in text:
            logger.warning(f"Placeholder {token} does not appear in the query")
            continue
        text = text.replace(token, value)
    return text


def decode_query(text: str | bytes) -> dict[str, Any]:
    """Decode the query document, requiring a JSON object.

    Raises:
        QueryError: If the text is not JSON or not an object
    """
    try:
        query = msgspec.json.decode(text)
    except msgspec.DecodeError as e:
        raise QueryError(f"Query is not valid JSON: {e}") from e
    if not isinstance(query, dict):
        raise QueryError(f"Query must be a JSON object, got {type(query).__name__}")
    return query


def load_query(path: Path, params: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Read the query file once, substitute placeholders and decode it.

    Args:
        path: Path to a file holding one JSON object
        params: Placeholder values

    Returns:
        Decoded query document

    Raises:
        QueryError: If the file cannot be read or decoded
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise QueryError(f"Failed to read query file {path}: {e}") from e

    if params:
        text = substitute_placeholders(text, params)
    return decode_query(text)
