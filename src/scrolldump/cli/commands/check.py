"""Check command implementation for readiness checks."""

from pathlib import Path

import typer

from scrolldump.cli.output import (
    format_readiness_check_json,
    format_readiness_check_table,
    resolve_output_mode,
)
from scrolldump.cli.rich_logging import print_error
from scrolldump.config.loader import load_config
from scrolldump.config.validator import perform_readiness_check
from scrolldump.constants import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    EXIT_UNREACHABLE,
)
from scrolldump.exceptions import ConfigError
from scrolldump.extraction.progress import OutputMode

_CONFIG_CHECKS = {"Configuration File Found", "Configuration Valid"}


def _output_mode(config: Path | None, output: str | None) -> OutputMode:
    if output is not None:
        return resolve_output_mode(output)
    try:
        cfg = load_config(config)
    except ConfigError:
        # The readiness report itself explains what is wrong with the config
        return OutputMode.HUMAN
    return resolve_output_mode(None, cfg)


def run(config: Path | None, output: str | None = None) -> None:
    """
    Run readiness checks and display results.

    Args:
        config: Optional path to config file
        output: Output format ("table" or "json"); None uses the configured default
    """
    try:
        mode = _output_mode(config, output)
        result = perform_readiness_check(config)

        if mode is OutputMode.MACHINE:
            # Use print() for JSON to ensure it goes to stdout
            print(format_readiness_check_json(result))
        else:
            format_readiness_check_table(result)

        if result.ready:
            raise typer.Exit(EXIT_SUCCESS)

        failed = {check.name for check in result.checks if check.status == "fail"}
        if failed & _CONFIG_CHECKS:
            raise typer.Exit(EXIT_CONFIG_ERROR)
        if "Cluster Reachable" in failed:
            raise typer.Exit(EXIT_UNREACHABLE)
        raise typer.Exit(EXIT_FAILURE)

    except typer.Exit:
        raise
    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from None
    except KeyboardInterrupt:
        print_error("Interrupted by user")
        raise typer.Exit(EXIT_INTERRUPTED) from None
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE) from None
