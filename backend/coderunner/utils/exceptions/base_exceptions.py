"""
Business Exception Classes - Base Exception Definitions

Exceptions raised by request handling and run provisioning.
"""

from typing import Optional, Any

from ..model.response_code import ResponseCode


class BusinessException(Exception):
    """
    Business Logic Exception

    Used to handle exceptions in business logic. ``code`` is the
    ``ResponseCode`` reported to API clients.
    """

    def __init__(self, message: str, code: int = ResponseCode.BUSINESS_ERROR, data: Any = None):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(self.message)


class NotFoundError(BusinessException):
    """
    Resource Not Found Exception

    Used when a requested run is unknown to the service.
    """

    def __init__(self, message: str = "Resource not found", resource_type: Optional[str] = None, resource_id: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message=message, code=ResponseCode.NOT_FOUND)


class UnsupportedLanguageError(BusinessException):
    """Raised when a language identifier has no execution spec."""

    def __init__(self, language: Optional[str]):
        self.language = language
        super().__init__(
            message=f"Unsupported language: {language}",
            code=ResponseCode.UNSUPPORTED_LANGUAGE,
            data={"language": language},
        )


class WorkspaceIOError(BusinessException):
    """Raised when a run workspace cannot be written or removed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message=message, code=ResponseCode.WORKSPACE_IO_ERROR, data={"path": path})
