"""
Shared test fixtures and configuration for case store tests.
"""
import itertools
import threading
from datetime import datetime, timedelta, timezone

import pytest
from flask import Flask
from flask.testing import FlaskClient

from case_store import create_app
from case_store.errors import WriteConflictError
from case_store.services.dropbox_client import DropboxClient, RemoteFile
from case_store.storage.collection_store import CollectionStore


class FakeRemote:
    """In-memory stand-in for Dropbox with revision-checked uploads."""

    def __init__(self):
        self.files = {}
        self.uploads = []
        self._revs = itertools.count(1)
        self._guard = threading.Lock()

    def put(self, path: str, content: bytes):
        with self._guard:
            rev = f"rev{next(self._revs)}"
            self.files[path] = (content, rev)
            return rev

    def download(self, path: str):
        with self._guard:
            entry = self.files.get(path)
        if entry is None:
            return None
        return RemoteFile(content=entry[0], rev=entry[1])

    def upload(self, path: str, content: bytes, rev=None) -> dict:
        with self._guard:
            current = self.files.get(path)
            current_rev = current[1] if current else None
            if current_rev != rev:
                raise WriteConflictError(f"{path} was modified concurrently")
            new_rev = f"rev{next(self._revs)}"
            self.files[path] = (content, new_rev)
            self.uploads.append(path)
        return {"path_display": path, "rev": new_rev}


class TickingClock:
    """Returns a time one second later on every call."""

    def __init__(self, start=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture(scope="session")
def app() -> Flask:
    """Create and configure a test Flask application instance."""
    app = create_app()
    app.config.update({
        "TESTING": True,
    })
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def collection_store(fake_remote) -> CollectionStore:
    """A CollectionStore over the in-memory remote with a deterministic clock."""
    return CollectionStore(fake_remote, root="/legal-case-data", clock=TickingClock())


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "DROPBOX_ACCESS_TOKEN": "test_dropbox_token",
        "DATA_FOLDER": "/legal-case-data",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def dropbox_client(mock_env_vars) -> DropboxClient:
    """Create a DropboxClient instance for testing."""
    return DropboxClient(access_token=mock_env_vars["DROPBOX_ACCESS_TOKEN"], timeout=5)
