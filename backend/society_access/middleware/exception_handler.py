"""Exception handlers translating service errors into JSON error bodies."""

import logging

import sqlalchemy.exc
from fastapi import Request
from fastapi.responses import JSONResponse

from ..exceptions import ConflictError, SocietyAccessError

logger = logging.getLogger(__name__)


async def society_access_exception_handler(request: Request, exc: SocietyAccessError) -> JSONResponse:
    """
    Convert a ``SocietyAccessError`` into its JSON body and status code.

    Client errors (4xx) are logged at WARNING, server errors at ERROR.
    """
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"{type(exc).__name__}: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def integrity_error_handler(request: Request, exc: sqlalchemy.exc.IntegrityError) -> JSONResponse:
    """A unique or foreign-key constraint lost a race with a concurrent write."""
    conflict = ConflictError("The change conflicts with existing data")
    logger.warning(
        "IntegrityError",
        extra={"path": request.url.path, "method": request.method, "error": str(exc.orig)},
    )
    return JSONResponse(status_code=conflict.status_code, content=conflict.to_dict())
