"""Shared fixtures for state store tests.

Most facade tests run once per backend, so the same assertions check
that memory, file and SQLite stores behave identically.
"""

import pytest

from hookstate.state import PersistentState

BACKENDS = ["memory", "file", "sqlite"]

STORE_FILES = {"file": "state.json", "sqlite": "state.db"}


@pytest.fixture
def open_state(tmp_path):
    """Factory opening stores under tmp_path; closes them after the test."""
    opened = []

    def _open(storage="memory", **kwargs):
        path = tmp_path / STORE_FILES[storage] if storage in STORE_FILES else None
        state = PersistentState(storage, path, **kwargs)
        opened.append(state)
        return state

    yield _open

    for state in opened:
        state.close()


@pytest.fixture(params=BACKENDS)
def storage(request):
    """Name of the backend under test."""
    return request.param


@pytest.fixture
def state(open_state, storage):
    """A fresh store on each backend."""
    return open_state(storage)
