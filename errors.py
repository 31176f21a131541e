"""
Error taxonomy for the API.

Every handler-local failure is raised as an ApiError subclass and turned
into a JSON body of the shape {"message": ...} by the handlers registered
in register_error_handlers(). Anything else falls through to the generic
500 handler, which logs the traceback and hides the message.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        expose: Optional[bool] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message or self.message)
        self.message = message or self.message
        # server-side failures stay hidden unless marked otherwise
        self.expose = self.status_code < 500 if expose is None else expose
        self.headers = headers

    def body(self) -> Dict[str, Any]:
        return {"message": self.message if self.expose else "Internal Server Error"}


class InvalidIdentifier(ApiError):
    status_code = 400
    message = "Invalid id"


class MalformedBody(ApiError):
    status_code = 400
    message = "Malformed JSON body"


class ValidationFailed(ApiError):
    status_code = 400
    message = "Validation error"

    def __init__(self, errors: List[Dict[str, Any]]):
        super().__init__()
        self.errors = errors

    def body(self) -> Dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class UnsupportedMediaType(ApiError):
    status_code = 415
    message = "Content-Type must be application/json"


class NotFound(ApiError):
    status_code = 404
    message = "Not found"


class Unauthenticated(ApiError):
    status_code = 401
    message = "Unauthorized"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ApiError):
    status_code = 403
    message = "Forbidden"


# -----------------------------
# Handlers
# -----------------------------

async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=exc.headers)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (404, 405):
        # an unrouted method is just another unmatched route
        return JSONResponse(status_code=404, content={"message": "Not Found"})
    message = exc.detail if isinstance(exc.detail, str) else "Error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
