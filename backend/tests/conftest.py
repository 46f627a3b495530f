"""Pytest configuration and fixtures for backend tests."""

import sys
import threading
from pathlib import Path
from typing import List, Tuple
from unittest.mock import MagicMock

import pytest

# Add backend to path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from coderunner.core.executor import EventSink  # noqa: E402


class RecordingSink(EventSink):
    """Event sink that keeps everything it is given."""

    def __init__(self):
        self.events: List[Tuple[str, str, str]] = []
        self.closed: List[str] = []
        self.closed_event = threading.Event()
        self._lock = threading.Lock()

    def send(self, run_id: str, event_type: str, data: str) -> None:
        with self._lock:
            self.events.append((run_id, event_type, data))

    def close(self, run_id: str) -> None:
        with self._lock:
            self.closed.append(run_id)
        self.closed_event.set()

    def of(self, run_id: str) -> List[Tuple[str, str]]:
        with self._lock:
            return [(t, d) for r, t, d in self.events if r == run_id]

    def statuses(self, run_id: str) -> List[str]:
        return [d for t, d in self.of(run_id) if t == "status"]


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Event sink recording every emitted event."""
    return RecordingSink()


@pytest.fixture
def temp_workspace(tmp_path) -> Path:
    """Create a temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def mock_docker_client():
    """Create mock Docker client."""
    mock = MagicMock()
    mock.ping.return_value = True
    mock.containers = MagicMock()
    mock.api = MagicMock()
    return mock
