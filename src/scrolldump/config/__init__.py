"""Configuration loading, models and readiness checks."""

from scrolldump.config.loader import get_config_path, load_config
from scrolldump.config.models import (
    Configuration,
    ElasticsearchConfig,
    OutputConfig,
    RetryConfig,
    ScrollConfig,
)

__all__ = [
    "Configuration",
    "ElasticsearchConfig",
    "OutputConfig",
    "RetryConfig",
    "ScrollConfig",
    "get_config_path",
    "load_config",
]
