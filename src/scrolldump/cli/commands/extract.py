"""Extract command implementation for scroll extraction."""

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path

import typer

from scrolldump.cli.output import format_extraction_summary, resolve_output_mode
from scrolldump.cli.rich_logging import (
    configure_rich_logging,
    console,
    print_error,
    print_success,
    print_warning,
)
from scrolldump.config.loader import load_config
from scrolldump.constants import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
)
from scrolldump.elastic.client import ElasticsearchClient
from scrolldump.elastic.scroll import ScrollClient
from scrolldump.exceptions import ConfigError, OrchestrationError, QueryError
from scrolldump.extraction.orchestrator import ScrollOrchestrator
from scrolldump.extraction.progress import JsonProgressTracker, OutputMode, RichProgressTracker
from scrolldump.extraction.query import load_query, parse_params
from scrolldump.extraction.sink import FieldWriter

logger = logging.getLogger(__name__)


@contextmanager
def cancel_on_signals(cancel_event: threading.Event) -> Iterator[threading.Event]:
    """Set ``cancel_event`` on SIGINT/SIGTERM for the duration of the block.

    The scroll loop and backoff waits watch the event, so the session stops
    at the next boundary and still releases its cursor.
    """

    def handler(signum, frame):
        logger.warning(f"Received {signal.Signals(signum).name}, stopping after current request")
        cancel_event.set()

    if threading.current_thread() is not threading.main_thread():
        yield cancel_event
        return

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield cancel_event
    finally:
        for sig, old_handler in previous.items():
            signal.signal(sig, old_handler)


def run(
    query_file: Path = Path("query.json"),
    output_file: Path = Path("data/logs.txt"),
    config: Path | None = None,
    es_url: str | None = None,
    index: str | None = None,
    batch_size: int | None = None,
    scroll_ttl: str | None = None,
    field: str | None = None,
    insecure_tls: bool = False,
    params: list[str] | None = None,
    output: str | None = None,
    verbose: bool = False,
    debug: bool = False,
) -> None:
    """Run a scroll extraction.

    Args:
        query_file: Path to the JSON query document
        output_file: File to write extracted values to
        config: Optional path to config file
        es_url: Elasticsearch URL override
        index: Index override
        batch_size: Page size override
        scroll_ttl: Scroll keep-alive override
        field: Field to extract override
        insecure_tls: Disable TLS certificate verification
        params: NAME=VALUE placeholder substitutions for the query
        output: Output format ("table" or "json"); None uses the configured default
        verbose: Enable verbose logging
        debug: Enable debug logging
    """
    configure_rich_logging(verbose=verbose, debug=debug)

    # Errors raised before the config is loaded use the explicit flag only
    mode = OutputMode.MACHINE if output == "json" else OutputMode.HUMAN
    es_client: ElasticsearchClient | None = None
    try:
        cfg = load_config(
            config,
            overrides={
                "elasticsearch": {
                    "url": es_url,
                    "verify_ssl": False if insecure_tls else None,
                },
                "scroll": {
                    "index": index,
                    "page_size": batch_size,
                    "scroll_ttl": scroll_ttl,
                    "field": field,
                },
            },
        )
        mode = resolve_output_mode(output, cfg)
        if not cfg.elasticsearch.verify_ssl and mode is OutputMode.HUMAN:
            print_warning("TLS certificate verification is disabled")

        query = load_query(query_file, parse_params(params or []))

        es_client = ElasticsearchClient.from_config(cfg.elasticsearch)
        cancel_event = threading.Event()
        scroll_client = ScrollClient(
            es_client.es,
            index=cfg.scroll.index,
            page_size=cfg.scroll.page_size,
            scroll_ttl=cfg.scroll.scroll_ttl,
            retry_policy=cfg.retry,
            cancel_event=cancel_event,
        )
        writer = FieldWriter(output_file, field=cfg.scroll.field)

        if mode is OutputMode.MACHINE:
            progress_tracker = JsonProgressTracker()
        else:
            progress_tracker = RichProgressTracker(console=console)
            console.print(
                f"[cyan]Scrolling {cfg.scroll.index} at {cfg.elasticsearch.url} "
                f"(page size {cfg.scroll.page_size}, keep-alive {cfg.scroll.scroll_ttl})[/cyan]"
            )

        orchestrator = ScrollOrchestrator(
            client=scroll_client,
            writer=writer,
            query=query,
            progress=progress_tracker,
            cancel_event=cancel_event,
        )

        with cancel_on_signals(cancel_event), progress_tracker:
            result = orchestrator.run()
            if mode is OutputMode.MACHINE:
                progress_tracker.emit_event(
                    "extraction_summary", output_file=str(output_file), **asdict(result)
                )

        if mode is OutputMode.HUMAN:
            print_success("Extraction complete!")
            if not result.cursor_released:
                print_warning("Scroll cursor could not be released; it will expire on its own")
            format_extraction_summary(result, str(output_file))

        raise typer.Exit(EXIT_SUCCESS)

    except typer.Exit:
        raise
    except ConfigError as e:
        if mode is OutputMode.HUMAN:
            print_error(f"Configuration error: {e}")
        logger.error(f"Configuration error: {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from None
    except QueryError as e:
        if mode is OutputMode.HUMAN:
            print_error(f"Query error: {e}")
        logger.error(f"Query error: {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from None
    except OrchestrationError as e:
        if e.phase == "cancelled":
            if mode is OutputMode.HUMAN:
                print_error("Extraction cancelled; output is incomplete")
            raise typer.Exit(EXIT_INTERRUPTED) from None
        if mode is OutputMode.HUMAN:
            print_error(f"Extraction failed during {e.phase}: {e.cause}")
        raise typer.Exit(EXIT_FAILURE) from None
    except KeyboardInterrupt:
        if mode is OutputMode.HUMAN:
            print_error("Extraction interrupted by user")
        logger.info("Extraction interrupted by user")
        raise typer.Exit(EXIT_INTERRUPTED) from None
    except Exception as e:
        if mode is OutputMode.HUMAN:
            print_error(f"Unexpected error: {e}")
        logger.exception("Unexpected error during extraction")
        raise typer.Exit(EXIT_FAILURE) from None
    finally:
        if es_client is not None:
            es_client.close()
