"""
Errors

Client-visible failures raised by services and dependencies, and the
handlers that turn them into the JSON error envelope
``{statusCode, message, stack?}``.
"""

import logging
import traceback
from typing import TYPE_CHECKING, Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

if TYPE_CHECKING:
    from fastapi import FastAPI

    from config import Settings

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class UnprocessableEntity(ApiError):
    status_code = 422


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = INTERNAL_ERROR_MESSAGE):
        super().__init__(message)


class ConfigurationError(Exception):
    """Raised at startup when the environment holds invalid settings."""


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status_code: int = Field(..., alias="statusCode", description="HTTP status code")
    message: str = Field(..., description="Error message")
    stack: Optional[str] = Field(None, description="Stack trace (development only)")


def format_field_message(message: str, location: str, path: str, value: Any) -> str:
    """Render ``"<Message>: [<location> / <path>] (<value>)"``."""
    return f"{message}: [{location} / {path}] ({render_value(value)})"


def render_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(render_value(v) for v in value)
    return str(value)


def build_error_response(
    status_code: int, message: str, exc: Optional[BaseException], include_stack: bool
) -> JSONResponse:
    stack = None
    if include_stack and exc is not None:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    body = ErrorResponse(status_code=status_code, message=message, stack=stack)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def register_error_handlers(app: "FastAPI", settings: "Settings") -> None:
    """Install the handlers mapping every failure onto the error envelope."""
    include_stack = settings.is_development

    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                f"{exc.status_code} on {request.method} {request.url.path}: {exc.message}",
                exc_info=exc,
            )
        else:
            logger.warning(
                f"{exc.status_code}/{type(exc).__name__} on "
                f"{request.method} {request.url.path}: {exc.message}"
            )
        return build_error_response(exc.status_code, exc.message, exc, include_stack)

    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ())]
        location = loc[0] if loc else "body"
        path = ".".join(loc[1:])
        value = "" if path.endswith("password") else first.get("input")
        message = format_field_message(first.get("msg", "Invalid value"), location, path, value)
        logger.warning(f"422 on {request.method} {request.url.path}: {message}")
        return build_error_response(
            UnprocessableEntity.status_code, message, exc, include_stack
        )

    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        # no route handles this method and path
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            message = f"Page {request.url.path} not found"
            logger.warning(f"404 on {request.method} {request.url.path}: {message}")
            return build_error_response(status.HTTP_404_NOT_FOUND, message, exc, include_stack)
        message = str(exc.detail)
        logger.warning(f"{exc.status_code} on {request.method} {request.url.path}: {message}")
        response = build_error_response(exc.status_code, message, exc, include_stack)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        return build_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE, exc, include_stack
        )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
