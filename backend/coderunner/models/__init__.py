"""
Domain models for code runs.
"""

from .execution import ExecutionStatus, ExecutionSession, StdinSink, new_run_id

__all__ = [
    "ExecutionStatus",
    "ExecutionSession",
    "StdinSink",
    "new_run_id",
]
