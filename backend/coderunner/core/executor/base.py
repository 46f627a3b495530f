# -*- coding: utf-8 -*-
"""
Base executor interfaces: error types and the event sink contract.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class ExecutorError(Exception):
    """Base exception for container operations."""

    def __init__(self, message: str, operation: str, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class ContainerNotFoundError(ExecutorError):
    """Exception when container is not found."""
    pass


class ContainerLifecycleError(ExecutorError):
    """Exception when creating, attaching, starting, killing or removing a container fails."""
    pass


class ContainerWaitTimeout(ExecutorError):
    """Raised when a container outlives the wall-clock limit."""
    pass


class EventSink(ABC):
    """
    Destination for run events.

    Implementations must not block the caller: runs emit from worker
    threads and never wait for delivery. Events for runs without an
    attached client are dropped.
    """

    @abstractmethod
    def send(self, run_id: str, event_type: str, data: str) -> None:
        """
        Push ``{"type": event_type, "data": data}`` to the run's client.

        Args:
            run_id: Run identifier
            event_type: One of status, stdout, stderr, exit, error
            data: Event payload
        """
        pass

    @abstractmethod
    def close(self, run_id: str) -> None:
        """
        Close the run's channel after pending events are delivered.

        Args:
            run_id: Run identifier
        """
        pass


class NullEventSink(EventSink):
    """Sink that only logs; used when no client transport is wired."""

    def send(self, run_id: str, event_type: str, data: str) -> None:
        logger.debug(f"[{run_id}] dropped {event_type} event")

    def close(self, run_id: str) -> None:
        pass
