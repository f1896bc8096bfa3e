"""Main Typer application for the scrolldump CLI."""

from pathlib import Path
from typing import Annotated

import typer

from scrolldump import __version__

app = typer.Typer(
    help="scrolldump - Dump one field of every Elasticsearch hit via the scroll API",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"scrolldump version {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """scrolldump CLI main callback."""
    pass


@app.command()
def check(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to configuration file"),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option(
            "--output",
            "-o",
            help='Output format: "table" or "json" (default: output.default_format)',
        ),
    ] = None,
) -> None:
    """Perform readiness checks against the configured cluster and index."""
    from .commands import check as check_module

    check_module.run(config, output)


@app.command()
def extract(
    query_file: Annotated[
        Path,
        typer.Option("--query-file", "-q", help="Path to a file holding one JSON query object"),
    ] = Path("query.json"),
    output_file: Annotated[
        Path,
        typer.Option("--output-file", "-f", help="File to write extracted values to (truncated)"),
    ] = Path("data/logs.txt"),
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to configuration file"),
    ] = None,
    es_url: Annotated[
        str | None,
        typer.Option("--es-url", help="Elasticsearch URL (overrides config and environment)"),
    ] = None,
    index: Annotated[
        str | None,
        typer.Option("--index", "-i", help="Index, alias or pattern to scroll"),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", min=1, help="Hits per scroll page"),
    ] = None,
    scroll_ttl: Annotated[
        str | None,
        typer.Option("--scroll-ttl", help="Scroll keep-alive, e.g. '1m' or '30s'"),
    ] = None,
    field: Annotated[
        str | None,
        typer.Option("--field", help="Document field to extract (default: title)"),
    ] = None,
    insecure_tls: Annotated[
        bool,
        typer.Option("--insecure-tls", help="Skip TLS certificate verification (insecure)"),
    ] = False,
    params: Annotated[
        list[str] | None,
        typer.Option(
            "--param",
            "-p",
            help="Replace {{NAME}} in the query file with VALUE (NAME=VALUE, repeatable)",
        ),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option(
            "--output",
            "-o",
            help='Output format: "table" or "json" (default: output.default_format)',
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging"),
    ] = False,
) -> None:
    """Scroll through every hit of a query and write one field per line."""
    from .commands import extract as extract_module

    extract_module.run(
        query_file,
        output_file,
        config,
        es_url,
        index,
        batch_size,
        scroll_ttl,
        field,
        insecure_tls,
        params or [],
        output,
        verbose,
        debug,
    )


if __name__ == "__main__":
    app()
