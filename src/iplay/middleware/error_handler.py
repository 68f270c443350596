"""Global error handlers: callable errors use the ``{"error": {...}}`` envelope."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from iplay.callables.errors import CallableError, ErrorCode

logger = structlog.get_logger()

CALLABLE_PREFIX = "/callable/"

_HTTP_TO_CODE: dict[int, ErrorCode] = {
    400: "invalid-argument",
    401: "unauthenticated",
    403: "permission-denied",
    404: "not-found",
    405: "invalid-argument",
}

def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(CallableError)
    async def callable_error_handler(request: Request, exc: CallableError) -> JSONResponse:
        """Return a callable error with its wire status and message."""
        logger.info("callable_rejected", path=request.url.path, code=exc.code, message=exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """A malformed request envelope is an invalid argument."""
        error = CallableError("invalid-argument", "Request body must be a JSON object with a 'data' field")
        return JSONResponse(status_code=error.http_status, content=error.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Callable paths keep the error envelope; everything else gets ``detail``."""
        if request.url.path.startswith(CALLABLE_PREFIX):
            code = _HTTP_TO_CODE.get(exc.status_code, "internal")
            error = CallableError(code, str(exc.detail))
            return JSONResponse(status_code=exc.status_code, content=error.to_payload(), headers=exc.headers)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        error = CallableError("internal", "Internal error")
        return JSONResponse(status_code=error.http_status, content=error.to_payload())
