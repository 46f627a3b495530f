"""
Global Exception Handlers

Every HTTP failure is rendered in the BaseResponse envelope
(``code`` / ``message`` / ``data``). Run failures never reach these
handlers: they are reported on the run's channel as an ERROR status.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError, HTTPException
from starlette.exceptions import HTTPException as StarletteHTTPException

from coderunner.config.settings import ServerConfig
from coderunner.utils.model.response_model import BaseResponse
from coderunner.utils.model.response_code import ResponseCode
from coderunner.utils.exceptions.base_exceptions import BusinessException, NotFoundError

logger = logging.getLogger(__name__)


def _respond(status_code: int, response: BaseResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.model_dump())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle malformed submissions (missing language/code, wrong types)

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        422 with one detail entry per failing field
    """
    logger.warning(f"Validation error on {request.url}: {exc.errors()}")

    messages = []
    details = []
    for error in exc.errors():
        ctx = error.get("ctx")
        if isinstance(ctx, dict) and "error" in ctx:
            messages.append(str(ctx["error"]))
        else:
            messages.append(error["msg"])

        # Raw inputs can be whole source files; leave them out
        details.append({
            "loc": list(error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
        })

    return _respond(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        BaseResponse.validation_error(data={"details": details}, message="; ".join(messages)),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions raised by routing or endpoints"""
    logger.warning(f"HTTP {exc.status_code} on {request.url}: {exc.detail}")

    if exc.status_code == status.HTTP_404_NOT_FOUND:
        response = BaseResponse.not_found(message=exc.detail)
    elif exc.status_code == status.HTTP_400_BAD_REQUEST:
        response = BaseResponse.bad_request(message=exc.detail)
    else:
        response = BaseResponse.error(message=exc.detail, code=exc.status_code)
    return _respond(exc.status_code, response)


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle Starlette HTTP exceptions (unknown routes, wrong methods)"""
    return await http_exception_handler(request, HTTPException(status_code=exc.status_code, detail=exc.detail))


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    """
    Handle business exceptions

    Unknown runs map to 404, everything else to 400. The envelope
    carries the exception's own code (e.g. 1010 for an unsupported
    language).
    """
    logger.warning(f"Business error on {request.url}: {exc.message}")

    http_status = status.HTTP_404_NOT_FOUND if isinstance(exc, NotFoundError) else status.HTTP_400_BAD_REQUEST
    return _respond(
        http_status,
        BaseResponse.business_error(message=exc.message, data=exc.data, code=exc.code),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all uncaught exceptions

    Details are only exposed when the server runs with ``debug`` enabled.
    """
    logger.error(f"Unhandled exception on {request.url}: {exc}", exc_info=True)

    if ServerConfig.DEBUG:
        response = BaseResponse.error(
            message=f"Internal server error: {exc}",
            data={"error_type": type(exc).__name__, "error_message": str(exc)},
            code=ResponseCode.INTERNAL_SERVER_ERROR,
        )
    else:
        response = BaseResponse.error(
            message="Internal server error, please try again later",
            data=None,
            code=ResponseCode.INTERNAL_SERVER_ERROR,
        )
    return _respond(status.HTTP_500_INTERNAL_SERVER_ERROR, response)


def register_exception_handlers(app):
    """
    Register all exception handlers

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")
