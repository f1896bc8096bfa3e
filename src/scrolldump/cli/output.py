"""Output formatting utilities for CLI commands."""

import json
from dataclasses import asdict, is_dataclass
from typing import Any

from rich.console import Console
from rich.table import Table

from scrolldump.config.models import Configuration, ReadinessCheckResult
from scrolldump.exceptions import ConfigError
from scrolldump.extraction.orchestrator import ExtractionResult
from scrolldump.extraction.progress import OutputMode


def resolve_output_mode(output: str | None, config: Configuration | None = None) -> OutputMode:
    """
    Pick the output mode for a command.

    An explicit ``--output`` wins. Otherwise the configured
    ``output.default_format`` applies, and without a config the human table.

    Raises:
        ConfigError: If ``output`` is not "table" or "json"
    """
    if output is None:
        output = config.output.default_format if config is not None else OutputMode.HUMAN.value
    try:
        return OutputMode(output)
    except ValueError:
        raise ConfigError(f"Invalid output format: {output} (expected table or json)") from None


def format_json(data: Any) -> str:
    """
    Format data as JSON string.

    Args:
        data: Data to format (must be JSON-serializable)

    Returns:
        Pretty-printed JSON string
    """
    # Convert Pydantic models and dataclasses to dict if needed
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    elif is_dataclass(data) and not isinstance(data, type):
        data = asdict(data)
    return json.dumps(data, indent=2, default=str)


def format_readiness_check_table(
    result: ReadinessCheckResult, console: Console | None = None
) -> None:
    """
    Format readiness check result as a table.

    Args:
        result: ReadinessCheckResult to format
        console: Console to print on (defaults to stdout)
    """
    console = console or Console()

    console.print("\n[bold]scrolldump Readiness Check[/bold]")
    console.print("━" * 50)

    for check in result.checks:
        if check.status == "pass":
            icon = "✓"
            style = "green"
        elif check.status == "fail":
            icon = "✗"
            style = "red"
        else:  # warning
            icon = "⚠"
            style = "yellow"

        console.print(f"[{style}]{icon} {check.name}[/{style}]")
        if check.message:
            console.print(f"  {check.message}", style="dim", markup=False)

    console.print()
    status_text = "READY" if result.ready else "NOT READY"
    status_style = "bold green" if result.ready else "bold red"
    console.print(f"Status: [{status_style}]{status_text}[/{status_style}]")
    console.print(f"Checked: {result.timestamp.isoformat()}\n")


def format_readiness_check_json(result: ReadinessCheckResult) -> str:
    """
    Format readiness check result as JSON.

    Args:
        result: ReadinessCheckResult to format

    Returns:
        JSON string
    """
    return format_json(result)


def format_extraction_summary(
    result: ExtractionResult, output_path: str, console: Console | None = None
) -> None:
    """
    Print the summary of a finished scroll session.

    Args:
        result: ExtractionResult to format
        output_path: Where the lines were written
        console: Console to print on (defaults to stdout)
    """
    console = console or Console()

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("Total hits", str(result.total_hits))
    table.add_row("Pages processed", f"{result.pages_processed} of {result.total_pages}")
    table.add_row("Documents seen", str(result.records_seen))
    table.add_row("Lines written", str(result.lines_written))
    if result.records_skipped:
        table.add_row("Skipped (field missing)", f"[yellow]{result.records_skipped}[/yellow]")
    table.add_row("Cursor released", "yes" if result.cursor_released else "[yellow]no[/yellow]")
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    table.add_row("Output", output_path)

    console.print(table)
