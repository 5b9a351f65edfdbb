"""
CLI layer for spindle.

Provides a Typer application that drives :class:`ThreadBuilder` from the
terminal. Scheduling logic lives in ``spindle.execution``; this package
handles only argument parsing and coloured output.

Entry point::

    spindle --help
"""

from spindle.cli.app import app

__all__ = ["app"]
