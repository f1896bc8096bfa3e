"""Pydantic models for configuration and data structures."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator

from scrolldump.constants import (
    DEFAULT_ES_URL,
    DEFAULT_FIELD,
    DEFAULT_INDEX,
    DEFAULT_PAGE_SIZE,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_INITIAL_INTERVAL,
    DEFAULT_RETRY_MAX_ELAPSED,
    DEFAULT_RETRY_MAX_INTERVAL,
    DEFAULT_RETRY_MULTIPLIER,
    DEFAULT_SCROLL_TTL,
    MAX_PAGE_SIZE,
    MAX_REQUEST_TIMEOUT_SECONDS,
    MIN_REQUEST_TIMEOUT_SECONDS,
    SCROLL_TTL_PATTERN,
)


class ElasticsearchConfig(BaseModel):
    """Elasticsearch connection configuration."""

    model_config = ConfigDict(frozen=True)

    url: HttpUrl = Field(default=DEFAULT_ES_URL, validate_default=True)
    verify_ssl: bool = True
    request_timeout: int = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        ge=MIN_REQUEST_TIMEOUT_SECONDS,
        le=MAX_REQUEST_TIMEOUT_SECONDS,
    )


class ScrollConfig(BaseModel):
    """What to scroll and which field to extract."""

    model_config = ConfigDict(frozen=True)

    index: str = Field(default=DEFAULT_INDEX, min_length=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    scroll_ttl: str = Field(
        default=DEFAULT_SCROLL_TTL,
        pattern=SCROLL_TTL_PATTERN,
        description="Scroll keep-alive in Elasticsearch time units (e.g. '1m', '30s')",
    )
    field: str = Field(default=DEFAULT_FIELD, min_length=1)


class RetryConfig(BaseModel):
    """Exponential backoff settings for search and scroll requests.

    Examples:
        >>> # Defaults: 1s, 1.5s, 2.25s, ... capped at 30s, give up after 5 minutes
        >>> config = RetryConfig()

        >>> # Fail fast (useful in tests)
        >>> config = RetryConfig(initial_interval=0.01, max_interval=0.05, max_elapsed=0.5)
    """

    model_config = ConfigDict(frozen=True)

    initial_interval: float = Field(default=DEFAULT_RETRY_INITIAL_INTERVAL, gt=0)
    multiplier: float = Field(default=DEFAULT_RETRY_MULTIPLIER, ge=1.0)
    max_interval: float = Field(default=DEFAULT_RETRY_MAX_INTERVAL, gt=0)
    max_elapsed: float = Field(default=DEFAULT_RETRY_MAX_ELAPSED, gt=0)

    @model_validator(mode="after")
    def validate_intervals(self) -> "RetryConfig":
        """Ensure the first delay does not exceed the delay cap.

        Returns:
            Validated RetryConfig instance

        Raises:
            ValueError: If initial_interval > max_interval
        """
        if self.initial_interval > self.max_interval:
            raise ValueError(
                f"initial_interval ({self.initial_interval}) cannot exceed "
                f"max_interval ({self.max_interval})"
            )
        return self


class OutputConfig(BaseModel):
    """Output formatting preferences for CLI commands."""

    model_config = ConfigDict(frozen=True)

    default_format: Literal["table", "json"] = "table"


class Configuration(BaseModel):
    """Complete scrolldump configuration."""

    model_config = ConfigDict(frozen=True)

    config_version: str = "1.0"
    elasticsearch: ElasticsearchConfig = ElasticsearchConfig()
    scroll: ScrollConfig = ScrollConfig()
    retry: RetryConfig = RetryConfig()
    output: OutputConfig = OutputConfig()


class ConnectionStatus(BaseModel):
    """Current state of connectivity to an Elasticsearch cluster."""

    connected: bool
    url: str | None = None
    cluster_name: str | None = None
    version: str | None = None
    error_message: str | None = None


class CheckItem(BaseModel):
    """Individual readiness check result."""

    name: str
    status: Literal["pass", "fail", "warning"]
    message: str


class ReadinessCheckResult(BaseModel):
    """Result of a system readiness check."""

    ready: bool
    checks: list[CheckItem]
    timestamp: datetime
