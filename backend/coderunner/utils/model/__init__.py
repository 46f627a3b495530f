"""
Response Models

Standard response models for API endpoints.
"""

from .response_code import ResponseCode
from .response_model import BaseResponse

__all__ = [
    "ResponseCode",
    "BaseResponse",
]
