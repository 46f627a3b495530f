"""
Response Status Codes

Defines the status codes carried in the ``code`` field of API responses.
"""


class ResponseCode:
    """Standard response status codes"""

    # Success codes (2xx)
    SUCCESS = 200
    ACCEPTED = 202

    # Client error codes (4xx)
    BAD_REQUEST = 400
    NOT_FOUND = 404
    UNPROCESSABLE_ENTITY = 422

    # Server error codes (5xx)
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    # Custom business codes (1xxx)
    BUSINESS_ERROR = 1000
    VALIDATION_ERROR = 1001
    RESOURCE_NOT_FOUND = 1004
    UNSUPPORTED_LANGUAGE = 1010
    WORKSPACE_IO_ERROR = 1011

    _MESSAGES = {
        SUCCESS: "Success",
        ACCEPTED: "Request accepted",
        BAD_REQUEST: "Bad request",
        NOT_FOUND: "Resource not found",
        UNPROCESSABLE_ENTITY: "Validation failed",
        INTERNAL_SERVER_ERROR: "Internal server error",
        SERVICE_UNAVAILABLE: "Service unavailable",
        BUSINESS_ERROR: "Business logic error",
        VALIDATION_ERROR: "Validation error",
        RESOURCE_NOT_FOUND: "Resource not found",
        UNSUPPORTED_LANGUAGE: "Unsupported language",
        WORKSPACE_IO_ERROR: "Workspace I/O failure",
    }

    @classmethod
    def get_message(cls, code: int) -> str:
        """Get default message for status code"""
        return cls._MESSAGES.get(code, "Unknown error")
