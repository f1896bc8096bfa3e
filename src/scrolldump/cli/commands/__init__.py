"""Implementations of the scrolldump CLI commands."""
