"""scrolldump - Dump one field of every Elasticsearch hit via the scroll API."""

__version__ = "0.1.0"


def main() -> None:
    """Main entry point for the CLI."""
    from scrolldump.cli.main import app

    app()
