"""
Unified Response Model

Envelope used for every error the HTTP API reports.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field
from .response_code import ResponseCode


class BaseResponse(BaseModel):
    """Base response model for API errors and informational payloads"""

    code: int = Field(200, description="API status code")
    message: str = Field("success", description="API status message")
    data: Optional[Any] = Field(default="", description="API data")

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": 1010,
                "message": "Unsupported language: cobol",
                "data": None
            }
        }
    }

    @classmethod
    def _build(cls, code: int, data: Optional[Any], message: Optional[str]):
        if message is None:
            message = ResponseCode.get_message(code)
        return cls(code=code, message=message, data=data)

    @classmethod
    def success(cls, data: Optional[Any] = "", message: str = None):
        """Create success response"""
        return cls._build(ResponseCode.SUCCESS, data, message)

    @classmethod
    def error(cls, data: Optional[Any] = "", message: str = None, code: int = None):
        """Create error response (defaults to 500)"""
        return cls._build(code or ResponseCode.INTERNAL_SERVER_ERROR, data, message)

    @classmethod
    def not_found(cls, data: Optional[Any] = "", message: str = None):
        return cls._build(ResponseCode.NOT_FOUND, data, message)

    @classmethod
    def bad_request(cls, data: Optional[Any] = "", message: str = None):
        return cls._build(ResponseCode.BAD_REQUEST, data, message)

    @classmethod
    def validation_error(cls, data: Optional[Any] = "", message: str = None):
        return cls._build(ResponseCode.VALIDATION_ERROR, data, message)

    @classmethod
    def business_error(cls, data: Optional[Any] = "", message: str = None, code: int = None):
        return cls._build(code or ResponseCode.BUSINESS_ERROR, data, message)
