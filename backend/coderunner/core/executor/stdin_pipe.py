# -*- coding: utf-8 -*-
"""
In-process pipe feeding a container's stdin.

The orchestrator owns the write end and forwards client input into it;
the container attachment owns the read end and pumps it into the attach
socket. Either end can be closed on its own: closing the writer makes the
reader see EOF, writes after close raise ``ValueError``.
"""

import os
import threading


class StdinPipe:
    """OS pipe with independently closable ends."""

    def __init__(self):
        read_fd, write_fd = os.pipe()
        self.reader = os.fdopen(read_fd, "rb", buffering=0)
        self._writer = os.fdopen(write_fd, "wb", buffering=0)
        self._write_lock = threading.Lock()

    @property
    def writer_closed(self) -> bool:
        return self._writer.closed

    def write(self, data: bytes) -> None:
        """
        Write and flush ``data``. Concurrent writers do not interleave.

        Raises:
            ValueError: If the write end is closed
            OSError: If the read end is gone (broken pipe)
        """
        with self._write_lock:
            if self._writer.closed:
                raise ValueError("stdin pipe is closed")
            self._writer.write(data)
            self._writer.flush()

    def read(self, size: int) -> bytes:
        """
        Read up to ``size`` bytes; ``b""`` once the writer is closed and drained.

        Raises:
            ValueError: If the read end is closed
        """
        return self.reader.read(size) or b""

    def close_writer(self) -> None:
        with self._write_lock:
            self._writer.close()

    def close_reader(self) -> None:
        self.reader.close()

    def abandon(self) -> None:
        """Drop pending and future input, releasing any write blocked on a full pipe."""
        self.close_reader()

    def close(self) -> None:
        # Reader first: a write blocked on a full pipe fails with EPIPE and
        # releases the write lock; closing the writer then wakes any reader.
        self.close_reader()
        self.close_writer()
