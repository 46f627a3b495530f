"""Run lifecycle state: status enum and the per-run session record."""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol


class ExecutionStatus(str, Enum):
    """Lifecycle status of a run."""
    READY = "READY"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    STOPPED = "STOPPED"
    TIMEOUT = "TIMEOUT"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self not in (ExecutionStatus.READY, ExecutionStatus.RUNNING)


class StdinSink(Protocol):
    """Write end of a run's stdin conduit."""

    def write(self, data: bytes) -> None: ...

    def abandon(self) -> None: ...


def new_run_id() -> str:
    return str(uuid.uuid4())


@dataclass(eq=False)
class ExecutionSession:
    """Mutable record of one run.

    Owned by the orchestrator for the run's lifetime; other components only
    read ``status``. ``container_id`` and ``stdin_sink`` are set together by
    :meth:`attach` and cleared together by :meth:`detach`.
    """
    run_id: str = field(default_factory=new_run_id)
    status: ExecutionStatus = ExecutionStatus.READY
    container_id: Optional[str] = None
    workspace: Optional[Path] = None
    stdin_sink: Optional[StdinSink] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def can_transition(self, status: ExecutionStatus) -> bool:
        """Terminal states are final; RUNNING is only reachable from READY."""
        if self.status.is_terminal:
            return False
        if status == ExecutionStatus.READY:
            return False
        if status == ExecutionStatus.RUNNING:
            return self.status == ExecutionStatus.READY
        return True

    def transition(self, status: ExecutionStatus) -> bool:
        """Check-and-set the status. Returns False when the change is refused."""
        with self.lock:
            if not self.can_transition(status):
                return False
            self.status = status
            return True

    def attach(self, container_id: str, stdin_sink: StdinSink) -> None:
        with self.lock:
            self.container_id = container_id
            self.stdin_sink = stdin_sink

    def detach(self) -> None:
        with self.lock:
            self.container_id = None
            self.stdin_sink = None
