"""Pytest configuration and fixtures for CLI tests."""

import pytest
from click.testing import CliRunner


@pytest.fixture
def store_path(tmp_path):
    """Path of the SQLite store used by CLI tests."""
    return tmp_path / "state.db"


@pytest.fixture
def cli_runner(store_path):
    """Click CLI test runner bound to a SQLite store under tmp_path."""

    class HookStateCliRunner(CliRunner):
        def invoke(self, args, **kwargs):  # type: ignore
            """Invoke the CLI with the test store selected."""
            from hookstate.cli import cli

            if isinstance(args, list):
                args = ["--storage", "sqlite", "--path", str(store_path), *args]
                return super().invoke(cli, args, **kwargs)
            return super().invoke(args, **kwargs)

    return HookStateCliRunner()
