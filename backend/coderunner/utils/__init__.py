"""
Utilities Module

Common exceptions and response models.
"""

from .exceptions import (
    BusinessException,
    NotFoundError,
    UnsupportedLanguageError,
    WorkspaceIOError,
    register_exception_handlers,
)
from .model import (
    ResponseCode,
    BaseResponse,
)

__all__ = [
    # Exceptions
    "BusinessException",
    "NotFoundError",
    "UnsupportedLanguageError",
    "WorkspaceIOError",
    "register_exception_handlers",
    # Response models
    "ResponseCode",
    "BaseResponse",
]
