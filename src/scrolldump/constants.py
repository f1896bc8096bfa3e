"""Default values used throughout the scrolldump codebase.

This module centralizes numeric and string defaults that would otherwise be
scattered across the config models, the CLI and the scroll client.
"""

# Elasticsearch connection
DEFAULT_ES_URL = "http://localhost:9200"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
MIN_REQUEST_TIMEOUT_SECONDS = 5
MAX_REQUEST_TIMEOUT_SECONDS = 600

# Scroll session
DEFAULT_INDEX = "sample_data"
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 10_000  # index.max_result_window default
DEFAULT_SCROLL_TTL = "1m"
DEFAULT_FIELD = "title"
SCROLL_TTL_PATTERN = r"^\d+(ms|s|m|h|d)$"

# Retry and backoff (seconds)
DEFAULT_RETRY_INITIAL_INTERVAL = 1.0
DEFAULT_RETRY_MULTIPLIER = 1.5
DEFAULT_RETRY_MAX_INTERVAL = 30.0
DEFAULT_RETRY_MAX_ELAPSED = 300.0  # 5 minutes

# Missing-field diagnostics: log the first few individually, then summarize
MISSING_FIELD_LOG_LIMIT = 5

# CLI exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_UNREACHABLE = 3
EXIT_INTERRUPTED = 130
