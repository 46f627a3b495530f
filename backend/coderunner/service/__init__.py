"""
Services Module

Business logic services for the application.
"""

from .session_registry import ExecutionSessionRegistry
from .execution_service import ExecutionService, get_execution_service

__all__ = [
    "ExecutionSessionRegistry",
    "ExecutionService",
    "get_execution_service",
]
