"""
CLI layer for cashflow.

Provides a Typer application with sub-commands that delegate to
``cashflow.core``. This package handles only terminal transport:
argument parsing, coloured output, table formatting and exit codes.

Entry point::

    cashflow --help
"""

from cashflow.cli.app import app

__all__ = ["app"]
