"""Command-line interface for scrolldump."""
