"""
Error taxonomy and the exception handlers that render it.

Services raise these the same way they would raise HTTPException; each class
pins the status code so call sites only carry the message. Every error body is
`{"error": "<message>"}`, which is what the frontend reads.

    InvalidArgument   400  missing/malformed field or identifier
    NotFound          404  no matching user or event
    Conflict          400  membership state does not allow the transition
    Unavailable       503  database not reachable
    Internal          500  anything unexpected
"""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from volunteer_api.core.logging import get_logger

logger = get_logger(__name__)


class InvalidArgument(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    """Membership conflicts are reported as 400 to match the frontend contract."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class CapacityExceeded(Conflict):
    def __init__(self, detail: str = "Event is full"):
        super().__init__(detail)


class AlreadyJoined(Conflict):
    def __init__(self, detail: str = "You have already joined this event"):
        super().__init__(detail)


class NotJoined(Conflict):
    def __init__(self, detail: str = "You have not joined this event"):
        super().__init__(detail)


class Unavailable(HTTPException):
    def __init__(self, detail: str = "Database is not available"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class Internal(HTTPException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        # Last element of 'loc' is the offending field name
        field = str(error["loc"][-1]) if error["loc"] else "unknown"
        fields.append({"field": field, "message": error["msg"]})

    missing = [f["field"] for f in fields]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": f"Invalid or missing fields: {', '.join(missing)}",
            "fields": fields,
        },
    )


def _is_connection_error(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    if _is_connection_error(exc):
        logger.error("database_unavailable", error=str(exc))
        error = Unavailable()
    else:
        logger.exception("database_error", error=str(exc))
        error = Internal()
    return JSONResponse(status_code=error.status_code, content={"error": error.detail})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", error=str(exc), error_type=type(exc).__name__)
    error = Internal()
    return JSONResponse(status_code=error.status_code, content={"error": error.detail})


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
