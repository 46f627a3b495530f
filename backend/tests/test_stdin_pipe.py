"""Tests for the stdin conduit and run workspaces."""

import os
import stat
import threading

import pytest

from coderunner.core.executor import StdinPipe, create_workspace, delete_workspace
from coderunner.utils.exceptions import WorkspaceIOError


class TestStdinPipe:
    """Tests for StdinPipe."""

    def test_write_then_read(self):
        pipe = StdinPipe()
        try:
            pipe.write(b"hi\n")
            assert pipe.read(16) == b"hi\n"
        finally:
            pipe.close()

    def test_close_writer_gives_eof(self):
        """Readers see EOF once the write end is closed and drained."""
        pipe = StdinPipe()
        pipe.write(b"last")
        pipe.close_writer()

        assert pipe.writer_closed
        assert pipe.read(16) == b"last"
        assert pipe.read(16) == b""
        pipe.close_reader()

    def test_write_after_close_raises(self):
        pipe = StdinPipe()
        pipe.close()

        with pytest.raises(ValueError):
            pipe.write(b"late")

    def test_write_without_reader_raises(self):
        """Writing into a pipe whose reader is gone is a broken pipe."""
        pipe = StdinPipe()
        pipe.close_reader()

        with pytest.raises(OSError):
            pipe.write(b"nobody listening")
        pipe.close_writer()

    def test_close_is_repeatable(self):
        pipe = StdinPipe()
        pipe.close()
        pipe.close()

    def test_abandon_releases_blocked_writer(self):
        """A write stuck on a full pipe returns once input is abandoned."""
        pipe = StdinPipe()
        outcome = []

        def write():
            try:
                pipe.write(b"x" * 1_000_000)
                outcome.append("returned")
            except OSError as e:
                outcome.append(e)

        writer = threading.Thread(target=write, daemon=True)
        writer.start()
        writer.join(0.2)
        assert writer.is_alive()

        pipe.abandon()
        writer.join(2)

        assert not writer.is_alive()
        assert len(outcome) == 1
        pipe.close()


class TestWorkspace:
    """Tests for create_workspace / delete_workspace."""

    def test_create_writes_source(self, tmp_path):
        workspace = create_workspace("run-1", "main.py", "print('hi')\n", root=str(tmp_path))

        assert workspace.parent == tmp_path
        assert workspace.name.startswith("run-run-1-")
        assert (workspace / "main.py").read_text(encoding="utf-8") == "print('hi')\n"

    def test_workspace_is_world_writable(self, tmp_path):
        """The container user must be able to write compiled output."""
        workspace = create_workspace("r", "Main.java", "class Main {}", root=str(tmp_path))

        assert stat.S_IMODE(os.stat(workspace).st_mode) == 0o777

    def test_non_ascii_source(self, tmp_path):
        code = "print('héllo ☃')"
        workspace = create_workspace("r", "main.py", code, root=str(tmp_path))

        assert (workspace / "main.py").read_bytes() == code.encode("utf-8")

    def test_none_code_writes_empty_file(self, tmp_path):
        workspace = create_workspace("r", "main.js", None, root=str(tmp_path))

        assert (workspace / "main.js").read_text() == ""

    def test_workspaces_are_exclusive(self, tmp_path):
        first = create_workspace("same", "main.py", "", root=str(tmp_path))
        second = create_workspace("same", "main.py", "", root=str(tmp_path))

        assert first != second

    def test_create_fails_with_workspace_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")

        with pytest.raises(WorkspaceIOError):
            create_workspace("r", "main.py", "", root=str(blocker / "runs"))

    def test_delete(self, tmp_path):
        workspace = create_workspace("r", "main.py", "x", root=str(tmp_path))

        delete_workspace(workspace)

        assert not workspace.exists()

    def test_delete_missing_is_noop(self, tmp_path):
        delete_workspace(tmp_path / "gone")
