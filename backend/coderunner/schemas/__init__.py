"""
Pydantic schemas for the HTTP API.
"""

from .execution import (
    ExecuteRequest,
    ExecuteStartResponse,
    RunStatusResponse,
    LanguagesResponse,
    HealthResponse,
)

__all__ = [
    "ExecuteRequest",
    "ExecuteStartResponse",
    "RunStatusResponse",
    "LanguagesResponse",
    "HealthResponse",
]
