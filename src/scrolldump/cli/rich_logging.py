"""Console and log handler setup shared by the CLI commands.

Everything here writes to stderr so stdout stays free for JSON events and
the summary table.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

SCROLLDUMP_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
    }
)

console = Console(theme=SCROLLDUMP_THEME, stderr=True)

# Libraries that log every HTTP request at INFO
_CHATTY_LOGGERS = ("elastic_transport", "elasticsearch", "urllib3")


def configure_rich_logging(verbose: bool = False, debug: bool = False) -> None:
    """Route all log records through a single RichHandler on stderr.

    Page progress is logged at INFO, so INFO is the floor. ``verbose`` adds
    timestamps; ``debug`` lowers the level to DEBUG, adds source paths and
    lets the HTTP transport loggers through.

    Args:
        verbose: Show timestamps
        debug: Enable debug records and request logging
    """
    handler = RichHandler(
        console=console,
        show_time=verbose or debug,
        show_path=debug,
        enable_link_path=debug,
        rich_tracebacks=True,
        # Hit values and URLs may contain square brackets
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        handlers=[handler],
        force=True,
    )

    transport_level = logging.NOTSET if debug else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)


def _print_status(style: str, icon: str, message: str, console_obj: Console | None) -> None:
    (console_obj or console).print(f"[{style}]{icon} {escape(message)}[/{style}]")


def print_error(message: str, console_obj: Console | None = None) -> None:
    """Print a failure line (red, with a cross)."""
    _print_status("error", "✗", message, console_obj)


def print_success(message: str, console_obj: Console | None = None) -> None:
    """Print a success line (green, with a check mark)."""
    _print_status("success", "✓", message, console_obj)


def print_warning(message: str, console_obj: Console | None = None) -> None:
    _print_status("warning", "⚠", message, console_obj)
