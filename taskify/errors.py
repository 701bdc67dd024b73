# taskify/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TaskifyError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthenticated(TaskifyError):
    status_code = 401
    message = "Not authorized, no valid credentials"


class Forbidden(TaskifyError):
    status_code = 403
    message = "Not authorized to perform this action"


class InvalidIdentifier(TaskifyError):
    status_code = 400
    message = "Invalid ID format"


class NotFound(TaskifyError):
    status_code = 404
    message = "Resource not found"


class Conflict(TaskifyError):
    status_code = 409
    message = "Resource already exists"


class ValidationFailed(TaskifyError):
    status_code = 400
    message = "Invalid request"


class Internal(TaskifyError):
    status_code = 500
    message = "Server error"


def error_body(status_code: int, message: str) -> dict:
    return {"success": False, "statusCode": status_code, "message": message}


def _describe(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or ValidationFailed.message


async def _taskify_error(request: Request, exc: TaskifyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.message))


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    status = ValidationFailed.status_code
    return JSONResponse(status_code=status, content=error_body(status, _describe(exc.errors())))


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body(500, Internal.message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskifyError, _taskify_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)
