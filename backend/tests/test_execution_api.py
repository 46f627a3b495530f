"""Tests for the HTTP and WebSocket endpoints."""

import time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from coderunner.core.channel_manager import ExecutionChannelManager, get_channel_manager
from coderunner.core.executor import StdinPipe
from coderunner.main import app
from coderunner.models import ExecutionSession, ExecutionStatus
from coderunner.service import ExecutionService, get_execution_service
from coderunner.utils.model import ResponseCode


@pytest.fixture
def channels():
    return ExecutionChannelManager()


@pytest.fixture
def runtime():
    runtime = MagicMock()
    runtime.create_container.return_value = "abc123"
    runtime.attach.return_value.drain.return_value = True
    runtime.wait.return_value = 0
    runtime.check_available.return_value = True
    return runtime


@pytest.fixture
def service(runtime, channels, tmp_path):
    service = ExecutionService(
        runtime=runtime,
        sink=channels,
        timeout_seconds=5,
        output_drain_seconds=1,
        workspace_root=str(tmp_path / "runs"),
    )
    yield service
    service.shutdown()


@pytest.fixture
def client(service, channels):
    app.dependency_overrides[get_execution_service] = lambda: service
    app.dependency_overrides[get_channel_manager] = lambda: channels
    yield TestClient(app)
    app.dependency_overrides.clear()


def wait_until(predicate, timeout=3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def live_session(service, status=ExecutionStatus.READY) -> ExecutionSession:
    session = ExecutionSession()
    if status != ExecutionStatus.READY:
        session.transition(status)
    service.registry.put(session)
    return session


class TestExecuteEndpoint:
    """Tests for POST /api/execute."""

    def test_returns_run_id(self, client, service):
        response = client.post("/api/execute", json={"language": "python", "code": "print(1)"})

        assert response.status_code == 200
        run_id = response.json()["runId"]
        assert service.current_status(run_id) is not None

    def test_unsupported_language_still_accepted(self, client):
        """The failure is reported on the run, not the request."""
        response = client.post("/api/execute", json={"language": "cobol", "code": "DISPLAY 'HI'."})

        assert response.status_code == 200
        assert "runId" in response.json()

    def test_missing_code_rejected(self, client):
        response = client.post("/api/execute", json={"language": "python"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == ResponseCode.VALIDATION_ERROR
        assert body["data"]["details"][0]["loc"] == ["body", "code"]


class TestRunStatusEndpoint:
    """Tests for GET /api/runs/{run_id}."""

    def test_live_run(self, client, service):
        session = live_session(service, ExecutionStatus.RUNNING)

        response = client.get(f"/api/runs/{session.run_id}")

        assert response.status_code == 200
        assert response.json() == {"runId": session.run_id, "status": "RUNNING"}

    def test_finished_run(self, client, service):
        session = live_session(service, ExecutionStatus.TIMEOUT)
        service.registry.remove(session.run_id)

        response = client.get(f"/api/runs/{session.run_id}")

        assert response.json()["status"] == "TIMEOUT"

    def test_unknown_run(self, client):
        response = client.get("/api/runs/no-such-run")

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == ResponseCode.NOT_FOUND
        assert "no-such-run" in body["message"]


class TestMiscEndpoints:
    """Tests for /api/languages and /health."""

    def test_languages(self, client):
        response = client.get("/api/languages")

        assert response.json() == {"languages": ["java", "javascript", "python"]}

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json()["code"] == ResponseCode.NOT_FOUND

    def test_health(self, client, service):
        live_session(service)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "docker": True,
            "activeRuns": 1,
            "admission": {"capacity": 3, "inUse": 0},
        }


class TestRunChannel:
    """Tests for WS /ws/run/{run_id}."""

    def test_attach_sends_current_status(self, client, service):
        session = live_session(service, ExecutionStatus.RUNNING)

        with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
            assert ws.receive_json() == {"type": "status", "data": "RUNNING"}

    def test_input_is_forwarded_in_order(self, client, service):
        session = live_session(service, ExecutionStatus.RUNNING)
        stdin = MagicMock()
        session.attach("abc123", stdin)

        with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "input", "data": "42\n"})
            ws.send_json({"type": "input", "data": "43\n"})
            assert wait_until(lambda: stdin.write.call_count == 2)

        assert [c.args[0] for c in stdin.write.call_args_list] == [b"42\n", b"43\n"]

    def test_stop_not_held_up_by_blocked_input(self, client, service):
        """Input the program never reads cannot delay a stop."""
        session = live_session(service, ExecutionStatus.RUNNING)
        stdin = StdinPipe()
        session.attach("abc123", stdin)

        try:
            with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
                ws.receive_json()
                ws.send_json({"type": "input", "data": "x" * 200_000})
                ws.send_json({"type": "stop"})

                assert wait_until(lambda: service.current_status(session.run_id) == ExecutionStatus.STOPPED)
                assert ws.receive_json() == {"type": "status", "data": "STOPPED"}
        finally:
            stdin.close()

    def test_stop_kills_container(self, client, service, runtime):
        session = live_session(service, ExecutionStatus.RUNNING)
        session.attach("abc123", MagicMock())

        with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "stop"})
            assert ws.receive_json() == {"type": "status", "data": "STOPPED"}

        runtime.kill.assert_called_once_with("abc123")
        assert session.status == ExecutionStatus.STOPPED

    def test_malformed_messages_ignored(self, client, service):
        session = live_session(service, ExecutionStatus.RUNNING)
        stdin = MagicMock()
        session.attach("abc123", stdin)

        with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
            ws.receive_json()
            ws.send_text("not json")
            ws.send_json(["input", "x"])
            ws.send_json({"type": "input", "data": 42})
            ws.send_json({"type": "dance"})
            ws.send_json({"type": "stop"})
            assert ws.receive_json() == {"type": "status", "data": "STOPPED"}

        stdin.write.assert_not_called()

    def test_attach_after_teardown(self, client, service):
        """A finished run reports its final status and closes."""
        session = live_session(service, ExecutionStatus.FINISHED)
        service.registry.remove(session.run_id)

        with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
            assert ws.receive_json() == {"type": "status", "data": "FINISHED"}
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

    def test_unknown_run_closes(self, client):
        with client.websocket_connect("/ws/run/no-such-run") as ws:
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

    def test_run_teardown_closes_channel(self, client, service, channels):
        session = live_session(service, ExecutionStatus.RUNNING)

        with client.websocket_connect(f"/ws/run/{session.run_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "stop"})
            assert ws.receive_json() == {"type": "status", "data": "STOPPED"}
            service.registry.remove(session.run_id)
            channels.close(session.run_id)
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()
