"""Shared fixtures for the publishing helper test suite."""

from __future__ import annotations

import importlib
import io
from pathlib import Path
from types import ModuleType

import pytest

from publish_test_helpers import RecordingStorageClient
from s3_publish import Profile, Reporter


@pytest.fixture
def publish_cli() -> ModuleType:
    """Expose the command-line module for behavioural assertions."""

    return importlib.import_module("publish")


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated workspace and set ``GITHUB_WORKSPACE`` accordingly."""
    root = tmp_path / "workspace"
    root.mkdir()
    monkeypatch.setenv("GITHUB_WORKSPACE", str(root))
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)
    return root


@pytest.fixture
def profile() -> Profile:
    """Return a credential profile that never reaches the network."""

    return Profile(name="release", access_key="AKIDEXAMPLE", secret_key="secret")


@pytest.fixture
def recording_client() -> RecordingStorageClient:
    """Return a storage client that records uploads instead of sending them."""

    return RecordingStorageClient()


@pytest.fixture
def log_sink() -> io.StringIO:
    """Return an in-memory log sink."""

    return io.StringIO()


@pytest.fixture
def reporter(log_sink: io.StringIO) -> Reporter:
    """Return a reporter writing to :func:`log_sink`."""

    return Reporter(log_sink)
