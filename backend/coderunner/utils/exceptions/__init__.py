"""
Exception Classes

Contains all custom exception types for the application.
"""

from .base_exceptions import (
    BusinessException,
    NotFoundError,
    UnsupportedLanguageError,
    WorkspaceIOError,
)

from .exception_handlers import (
    register_exception_handlers,
    validation_exception_handler,
    http_exception_handler,
    business_exception_handler,
    general_exception_handler,
)

__all__ = [
    "BusinessException",
    "NotFoundError",
    "UnsupportedLanguageError",
    "WorkspaceIOError",
    "register_exception_handlers",
    "validation_exception_handler",
    "http_exception_handler",
    "business_exception_handler",
    "general_exception_handler",
]
