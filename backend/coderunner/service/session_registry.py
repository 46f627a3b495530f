"""
Registry of live execution sessions.

The only lookup structure shared between runs. Every operation holds the
lock for a single dictionary access, so runs never wait on each other's
work. Terminal statuses of torn-down runs are remembered in a bounded
history so a client attaching late can still learn how the run ended.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, Optional

from coderunner.config.settings import ExecutorConfig
from coderunner.models import ExecutionSession, ExecutionStatus

logger = logging.getLogger(__name__)


class ExecutionSessionRegistry:
    """Concurrency-safe ``run_id -> ExecutionSession`` store."""

    def __init__(self, history_size: Optional[int] = None):
        self._sessions: Dict[str, ExecutionSession] = {}
        self._history: "OrderedDict[str, ExecutionStatus]" = OrderedDict()
        self._history_size = history_size if history_size is not None else ExecutorConfig.FINISHED_HISTORY_SIZE
        self._lock = threading.Lock()

    def put(self, session: ExecutionSession) -> None:
        with self._lock:
            self._sessions[session.run_id] = session

    def get(self, run_id: str) -> Optional[ExecutionSession]:
        with self._lock:
            return self._sessions.get(run_id)

    def remove(self, run_id: str) -> Optional[ExecutionSession]:
        """Remove a session and remember its final status."""
        with self._lock:
            session = self._sessions.pop(run_id, None)
            if session is not None and self._history_size > 0:
                self._history[run_id] = session.status
                self._history.move_to_end(run_id)
                while len(self._history) > self._history_size:
                    self._history.popitem(last=False)
        return session

    def last_status(self, run_id: str) -> Optional[ExecutionStatus]:
        """Final status of a run that has already been torn down."""
        with self._lock:
            return self._history.get(run_id)

    def __contains__(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
