import logging

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError

from core.exceptions import BaseCustomException, UpstreamException, StorageException

logger = logging.getLogger("wallet_gateway")


def error_content(kind: str, message: str, **extra) -> dict:
    """
    Build the error payload shared by every handler.

    Parameters
    ----------
    kind : str
        Machine-readable error kind
    message : str
        Human-readable message

    Returns
    -------
    dict
        Response body
    """
    return {"status": "error", "kind": kind, "message": message, **extra}


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation errors.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : RequestValidationError
        Validation error

    Returns
    -------
    JSONResponse
        Error response
    """
    errors = []
    for error in exc.errors():
        field_path = ".".join(
            str(x) for x in error["loc"] if not isinstance(x, int) and x != "body"
        )
        errors.append({
            "field": field_path or "body",
            "message": error["msg"],
            "type": error["type"]
        })

    return JSONResponse(
        status_code=422,
        content=error_content("error.validation", "Validation error", errors=errors)
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handler for HTTP exceptions.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : HTTPException
        HTTP exception

    Returns
    -------
    JSONResponse
        Error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content("error.http", str(exc.detail))
    )


async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for Starlette HTTP exceptions (unknown routes, wrong methods).
    """
    return await http_exception_handler(request, HTTPException(status_code=exc.status_code, detail=exc.detail))


async def custom_exception_handler(request: Request, exc: Exception):
    """
    Handler for custom exceptions and anything left unhandled.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : Exception
        Exception

    Returns
    -------
    JSONResponse
        Error response
    """
    if isinstance(exc, BaseCustomException):
        if isinstance(exc, (UpstreamException, StorageException)):
            logger.warning(f"{request.method} {request.url.path} failed: {exc.get_kind()}: {exc.message}")
        return JSONResponse(
            status_code=exc.get_status_code(),
            content=error_content(exc.get_kind(), exc.message)
        )

    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_content("error.internal", "Internal server error")
    )
