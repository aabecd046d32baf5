"""Pytest configuration and fixtures."""

import os

import pytest


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Isolate environment variables for each test.

    This prevents test pollution where one test's environment
    changes affect other tests, and keeps user config files out of reach.
    """
    original_env = os.environ.copy()

    for name in ("HOOKSTATE_STORAGE", "HOOKSTATE_PATH", "HOOKSTATE_NAMESPACE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))

    yield

    os.environ.clear()
    os.environ.update(original_env)
