"""
CLI layer for foodworker.

Provides a Typer application that wires settings, handlers and the
dispatcher together.  Business logic lives in ``foodworker.execution`` and
``foodworker.handlers``; this package handles only terminal transport:
argument parsing, coloured output and table formatting.

Entry point::

    foodworker --help
"""

from foodworker.cli.app import app

__all__ = ["app"]
