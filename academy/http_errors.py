import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from academy.data import errors
from academy.data.errors import AcademyError, ErrorKind

logger = logging.getLogger("http_errors")

_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.FATAL: 500,
}


def http_exception(error: AcademyError) -> HTTPException:
    status = _STATUS[error.kind]
    if error.code == errors.ALREADY_GRADED:
        status = 409
    if error.kind is ErrorKind.FATAL:
        logger.error(f"Fatal backend error: {error.message}")
        return HTTPException(status_code=status, detail={"code": "Fatal", "message": "Something went wrong"})
    if error.kind is ErrorKind.TRANSIENT:
        return HTTPException(status_code=status, detail={"code": error.code, "message": error.message},
                             headers={"Retry-After": "1"})
    return HTTPException(status_code=status, detail={"code": error.code, "message": error.message})


def unwrap(result):
    """Value of a ``Result`` or the matching ``HTTPException``."""
    value, error = result
    if error is not None:
        raise http_exception(error)
    return value


async def academy_error_handler(request: Request, exc: AcademyError):
    http_exc = http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail},
                        headers=http_exc.headers)
