# -*- coding: utf-8 -*-
"""
Admission gate limiting how many runs hold container resources at once.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

# How often a queued holder re-checks whether it should give up
CANCEL_POLL_SECONDS = 0.05


class AdmissionGate:
    """
    Bounded counting gate.

    ``slot()`` blocks until a permit is free and releases it exactly once
    when the block exits, whatever the exit path.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Admission capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    def acquire(self, timeout: Optional[float] = None) -> bool:
        if not self._semaphore.acquire(timeout=timeout):
            return False
        with self._lock:
            self._in_use += 1
        return True

    def release(self) -> None:
        with self._lock:
            self._in_use -= 1
        self._semaphore.release()

    def acquire_unless(self, cancelled: Callable[[], bool]) -> bool:
        """
        Block for a permit, giving up as soon as ``cancelled()`` is true.

        Returns:
            True if a permit was taken, False if the wait was abandoned
        """
        while not cancelled():
            if self.acquire(timeout=CANCEL_POLL_SECONDS):
                return True
        return False

    @contextmanager
    def slot(self, owner: str = "", cancelled: Optional[Callable[[], bool]] = None) -> Iterator[bool]:
        """
        Hold one permit for the duration of the block.

        Yields whether a permit is held. Without ``cancelled`` this is
        always True; with it, the wait ends early and yields False once
        ``cancelled()`` returns true.
        """
        admitted = self.acquire(timeout=0)
        if not admitted:
            logger.info(f"[{owner}] waiting for an execution slot ({self._capacity} in use)")
            admitted = self.acquire_unless(cancelled) if cancelled is not None else self.acquire()
        try:
            yield admitted
        finally:
            if admitted:
                self.release()
