"""
CLI layer for the hydrator.

Provides a Typer application that inspects the effective settings and runs
a bundled demo object graph through the engine. All hydration logic lives
in ``hydrator.execution``; this package handles argument parsing, coloured
output and table formatting.

Entry point::

    hydrator --help
"""

from hydrator.cli.app import app

__all__ = ["app"]
