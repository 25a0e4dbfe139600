"""Exception handlers: every failure leaves the API as JSON with a ``detail``.

Domain errors also carry their stable ``code``. Unexpected exceptions are
logged with the request id bound by ``RequestIdMiddleware`` and never echo
their text to the caller.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from predictearn.errors import DecryptionError, PredictEarnError

logger = structlog.get_logger()


async def _domain_error(request: Request, exc: PredictEarnError) -> JSONResponse:
    if isinstance(exc, DecryptionError):
        # Never include the stored value: it is ciphertext.
        logger.error("secret_decryption_failed", path=request.url.path)
    elif exc.status_code >= 500:
        logger.error("domain_error", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PredictEarnError, _domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error)
