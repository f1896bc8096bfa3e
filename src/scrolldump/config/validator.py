"""Configuration validation and readiness checks."""

import os
import sys
from datetime import datetime
from pathlib import Path

from elastic_transport import TransportError
from elasticsearch import ApiError

from scrolldump.config.loader import get_config_path, load_config
from scrolldump.config.models import CheckItem, Configuration, ReadinessCheckResult
from scrolldump.elastic.client import ElasticsearchClient
from scrolldump.exceptions import ConfigError


def check_config_file(config_path: Path | None = None) -> CheckItem:
    """
    Check if configuration file exists.

    A missing file is only a warning: every setting has a default and can be
    supplied through environment variables.

    Args:
        config_path: Optional path to config file

    Returns:
        CheckItem with result
    """
    path = get_config_path(config_path)
    if path.exists():
        return CheckItem(
            name="Configuration File Found",
            status="pass",
            message=f"Found at {path}",
        )
    if config_path is not None:
        return CheckItem(
            name="Configuration File Found",
            status="fail",
            message=f"Not found at {path}",
        )
    source = "environment variables" if os.getenv("SCROLLDUMP_ES_URL") else "defaults"
    return CheckItem(
        name="Configuration File Found",
        status="warning",
        message=f"Not found at {path}, using {source}",
    )


def check_config_valid(config_path: Path | None = None) -> tuple[CheckItem, Configuration | None]:
    """
    Check if configuration is valid.

    Args:
        config_path: Optional path to config file

    Returns:
        CheckItem with result and the loaded configuration (None if invalid)
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        return (
            CheckItem(name="Configuration Valid", status="fail", message=str(e)),
            None,
        )
    return (
        CheckItem(
            name="Configuration Valid",
            status="pass",
            message=f"index={config.scroll.index}, page_size={config.scroll.page_size}, "
            f"scroll_ttl={config.scroll.scroll_ttl}",
        ),
        config,
    )


def check_cluster_reachable(client: ElasticsearchClient) -> CheckItem:
    """
    Check that the cluster answers.

    Args:
        client: Client wrapper built from the configuration

    Returns:
        CheckItem with result
    """
    status = client.test_connection()
    if status.connected:
        return CheckItem(
            name="Cluster Reachable",
            status="pass",
            message=f"{status.cluster_name} (Elasticsearch {status.version}) at {status.url}",
        )
    return CheckItem(
        name="Cluster Reachable",
        status="fail",
        message=status.error_message or "Unknown error",
    )


def check_index_exists(client: ElasticsearchClient, index: str) -> CheckItem:
    """
    Check that the configured index resolves.

    Args:
        client: Client wrapper built from the configuration
        index: Index, alias or pattern to scroll

    Returns:
        CheckItem with result
    """
    try:
        exists = client.index_exists(index)
    except (ApiError, TransportError) as e:
        return CheckItem(name="Index Exists", status="fail", message=f"Error: {e}")
    if exists:
        return CheckItem(name="Index Exists", status="pass", message=index)
    return CheckItem(name="Index Exists", status="fail", message=f"Index '{index}' not found")


def check_python_version() -> CheckItem:
    """
    Check if Python version meets requirements.

    Returns:
        CheckItem with result
    """
    version = sys.version_info
    version_str = f"{version.major}.{version.minor}.{version.micro}"

    # Require Python 3.11+
    if version.major >= 3 and version.minor >= 11:
        return CheckItem(
            name="Python Version",
            status="pass",
            message=version_str,
        )
    else:
        return CheckItem(
            name="Python Version",
            status="warning",
            message=f"{version_str} (Python 3.11+ recommended)",
        )


def perform_readiness_check(config_path: Path | None = None) -> ReadinessCheckResult:
    """
    Perform all readiness checks.

    Cluster checks are skipped when the configuration is invalid.

    Args:
        config_path: Optional path to config file

    Returns:
        ReadinessCheckResult with all check results
    """
    config_check, config = check_config_valid(config_path)
    checks = [check_config_file(config_path), config_check]

    if config is not None:
        client = ElasticsearchClient.from_config(config.elasticsearch)
        try:
            cluster_check = check_cluster_reachable(client)
            checks.append(cluster_check)
            if cluster_check.status == "pass":
                checks.append(check_index_exists(client, config.scroll.index))
        finally:
            client.close()

    checks.append(check_python_version())

    ready = not any(check.status == "fail" for check in checks)

    return ReadinessCheckResult(
        ready=ready,
        checks=checks,
        timestamp=datetime.now(),
    )
