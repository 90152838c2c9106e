"""
Command-line interface for reve.

This package contains CLI implementations using Click.
Uses only the public API: from reve import ...
"""

from reve.cli.commands import cli, main

__all__ = ["cli", "main"]
