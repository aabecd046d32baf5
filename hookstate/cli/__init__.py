"""Command-line interface for inspecting persistent hook state.

Built with Click and Rich.
"""

from hookstate.cli import commands  # noqa: F401  (registers commands)
from hookstate.cli.main import cli

__all__ = ["cli"]
