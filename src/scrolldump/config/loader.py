"""Configuration loading with environment variable merging."""

import os
import tomllib
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from scrolldump.config.models import Configuration
from scrolldump.exceptions import ConfigError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def get_config_path(config_arg: Path | None = None) -> Path:
    """
    Get configuration file path with priority order.

    Priority:
    1. Command-line argument
    2. SCROLLDUMP_CONFIG environment variable
    3. config.toml in the user app directory (e.g. ~/.config/scrolldump)
    4. ./scrolldump.toml (current working directory)

    Args:
        config_arg: Optional path from command-line argument

    Returns:
        Path to configuration file (may not exist)
    """
    # 1. Command-line argument
    if config_arg:
        return config_arg

    # 2. Environment variable
    env_config = os.getenv("SCROLLDUMP_CONFIG")
    if env_config:
        return Path(env_config)

    # 3. User app directory
    app_dir = Path(typer.get_app_dir("scrolldump"))
    user_config = app_dir / "config.toml"
    if user_config.exists():
        return user_config

    # 4. Current directory
    cwd_config = Path("scrolldump.toml")
    if cwd_config.exists():
        return cwd_config

    # Default (may not exist)
    return user_config


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"Invalid {name} value: {value}") from None


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid {name} value: {value} (expected true/false)")


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Merge environment variables into raw config data in place.

    Recognized variables:
    - SCROLLDUMP_ES_URL (or ELASTICSEARCH_URL)
    - SCROLLDUMP_VERIFY_SSL
    - SCROLLDUMP_REQUEST_TIMEOUT
    - SCROLLDUMP_INDEX
    - SCROLLDUMP_PAGE_SIZE
    - SCROLLDUMP_SCROLL_TTL
    - SCROLLDUMP_FIELD
    """
    es_section = data.setdefault("elasticsearch", {})
    scroll_section = data.setdefault("scroll", {})

    if url := (os.getenv("SCROLLDUMP_ES_URL") or os.getenv("ELASTICSEARCH_URL")):
        es_section["url"] = url
    if verify_ssl := os.getenv("SCROLLDUMP_VERIFY_SSL"):
        es_section["verify_ssl"] = _parse_bool("SCROLLDUMP_VERIFY_SSL", verify_ssl)
    if timeout_str := os.getenv("SCROLLDUMP_REQUEST_TIMEOUT"):
        es_section["request_timeout"] = _parse_int("SCROLLDUMP_REQUEST_TIMEOUT", timeout_str)

    if index := os.getenv("SCROLLDUMP_INDEX"):
        scroll_section["index"] = index
    if page_size_str := os.getenv("SCROLLDUMP_PAGE_SIZE"):
        scroll_section["page_size"] = _parse_int("SCROLLDUMP_PAGE_SIZE", page_size_str)
    if scroll_ttl := os.getenv("SCROLLDUMP_SCROLL_TTL"):
        scroll_section["scroll_ttl"] = scroll_ttl
    if field := os.getenv("SCROLLDUMP_FIELD"):
        scroll_section["field"] = field


def _merge_section(data: dict[str, Any], section: str, values: dict[str, Any]) -> None:
    target = data.setdefault(section, {})
    for key, value in values.items():
        if value is not None:
            target[key] = value


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> Configuration:
    """
    Load and validate configuration from TOML file, environment and CLI overrides.

    Precedence (highest first): ``overrides`` (CLI flags), environment
    variables, the TOML file, model defaults. A missing file is not an
    error; every setting has a default.

    Args:
        config_path: Optional path to config file
        overrides: Section-keyed values from command-line flags; ``None``
            values are ignored so unset flags do not mask lower layers

    Returns:
        Validated, immutable Configuration object

    Raises:
        ConfigError: If config file invalid or a value fails validation
    """
    path = get_config_path(config_path)

    data: dict[str, Any] = {}
    if path.exists():
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML syntax in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    for section in ("elasticsearch", "scroll", "retry", "output"):
        if section in data and not isinstance(data[section], dict):
            raise ConfigError(f"Section [{section}] must be a table")

    _apply_env_overrides(data)

    for section, values in (overrides or {}).items():
        _merge_section(data, section, values)

    try:
        return Configuration(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
