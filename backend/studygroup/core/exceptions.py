"""
Error taxonomy shared by the services, the HTTP layer and the Python client.

Every domain failure is a StudyGroupError subclass carrying the HTTP status
it maps to. Services raise them; the FastAPI handlers below render them as
{"detail": message}; the client maps responses back onto the same classes.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

logger = structlog.get_logger()


class StudyGroupError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StudyGroupError):
    """Missing or malformed input, rejected before any mutation."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(StudyGroupError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(StudyGroupError):
    """Caller is known but not allowed to do this (e.g. non-admin delete)."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(StudyGroupError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StudyGroupError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(StudyGroupError):
    """The AI collaborator failed, timed out or returned unusable content."""
    status_code = status.HTTP_502_BAD_GATEWAY


class TransportError(StudyGroupError):
    """Store or network failure."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


ERRORS_BY_STATUS = {
    cls.status_code: cls
    for cls in (
        ValidationError,
        AuthenticationError,
        AuthorizationError,
        NotFoundError,
        ConflictError,
        UpstreamError,
        TransportError,
    )
}


async def study_group_exception_handler(request: Request, exc: StudyGroupError):
    """
    Domain errors carry their own status code and a human-readable message.
    """
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_failed", error=type(exc).__name__, message=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )

async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all for unhandled exceptions.
    Prevents stack trace leakage to clients.
    """
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred."},
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Pydantic validation error handler.
    """
    logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "errors": jsonable_errors(exc.errors())},
    )

def jsonable_errors(errors) -> list:
    # pydantic puts the raw exception under "ctx" for custom validators
    cleaned = []
    for err in errors:
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        cleaned.append(err)
    return cleaned
