"""
Centralized error handling.

Route handlers raise `AppError` subclasses (or let library errors bubble up);
`register_exception_handlers` installs the single translator that turns every
failure into the `{"success": false, "message": ...}` envelope.
"""
import logging
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import config

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequestError(AppError):
    """Request breaks a business rule (overdue, duplicate application...)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class ValidationError(AppError):
    """Validation error."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class DuplicateKeyError(AppError):
    """Unique constraint violation."""
    def __init__(self, message: str = "Duplicate email entered", details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class UnauthenticatedError(AppError):
    """No usable credential on the request."""
    def __init__(self, message: str = "Please sign in to proceed", details: dict | None = None):
        super().__init__(message, status_code=401, details=details)


class InvalidTokenError(AppError):
    """Bearer token failed signature/expiry verification."""
    def __init__(self, message: str = "JSON Web Token is invalid. Try again!", details: dict | None = None):
        super().__init__(message, status_code=401, details=details)


class ForbiddenError(AppError):
    """Forbidden access error."""
    def __init__(self, message: str = "Access forbidden", details: dict | None = None):
        super().__init__(message, status_code=403, details=details)


class NotFoundError(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found", details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class InternalError(AppError):
    """Server-side failure (e.g. email could not be delivered)."""
    def __init__(self, message: str = "Internal Server Error", details: dict | None = None):
        super().__init__(message, status_code=500, details=details)


def is_unique_violation(error: Exception) -> bool:
    """Detect unique-constraint failures across SQLite/Postgres/MySQL messages."""
    error_str = str(getattr(error, "orig", None) or error).lower()
    return "unique" in error_str or "duplicate" in error_str


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Please check your input and try again."
    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    msg = str(first.get("msg") or "Invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


def translate_exception(exc: Exception) -> AppError:
    """Map a raw exception onto the application error taxonomy."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, RequestValidationError):
        return ValidationError(_validation_message(exc), details={"errors": _jsonable_errors(exc)})
    if isinstance(exc, (HTTPException, StarletteHTTPException)):
        return AppError(str(exc.detail), status_code=exc.status_code)
    if isinstance(exc, IntegrityError):
        if is_unique_violation(exc):
            return DuplicateKeyError()
        return ValidationError("Invalid reference. The related record may have been deleted.")
    if isinstance(exc, SQLAlchemyError):
        return InternalError("Database operation failed")
    if isinstance(exc, JWTError):
        return InvalidTokenError()
    return InternalError()


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    out = []
    for e in exc.errors():
        out.append({"loc": [str(p) for p in e.get("loc", ())], "msg": str(e.get("msg", ""))})
    return out


def build_error_body(error: AppError, original: Exception) -> dict:
    content: dict = {
        "success": False,
        "message": error.message,
    }
    if not config.IS_PRODUCTION:
        content["error"] = {
            "type": type(original).__name__,
            "status_code": error.status_code,
            "details": error.details,
        }
        content["stack"] = "".join(
            traceback.format_exception(type(original), original, original.__traceback__)
        )
    return content


def create_error_response(error: AppError, original: Exception | None = None) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=error.status_code,
        content=build_error_body(error, original or error),
    )


async def _handle(request: Request, exc: Exception) -> JSONResponse:
    error = translate_exception(exc)
    if error.status_code >= 500:
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s -> %s %s", request.method, request.url.path, error.status_code, error.message)
    return create_error_response(error, exc)


async def _handle_not_found(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return create_error_response(NotFoundError(f"{request.url.path} route not found"), exc)
    return await _handle(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _handle)
    app.add_exception_handler(RequestValidationError, _handle)
    app.add_exception_handler(StarletteHTTPException, _handle_not_found)
    app.add_exception_handler(SQLAlchemyError, _handle)
    app.add_exception_handler(JWTError, _handle)
    app.add_exception_handler(Exception, _handle)
