"""
API Routers Module

FastAPI routers for the code runner.
"""

from .execution_router import execution_router
from .execution_ws_router import execution_ws_router

__all__ = [
    "execution_router",
    "execution_ws_router",
]
