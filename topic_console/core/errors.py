import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from topic_console.core.exceptions import ApiError, ErrorResponse

logger = logging.getLogger(__name__)


def _error(status: int, message: str, detail: str | None = None) -> JSONResponse:
    body = ErrorResponse(status=status, message=message, detail=detail)
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(_: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.error.model_dump(exclude_none=True),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Request, exc: ValueError):
        return _error(400, str(exc))

    @app.exception_handler(KeyError)
    async def key_error_handler(_: Request, exc: KeyError):
        # KeyError wraps its message in quotes
        message = exc.args[0] if exc.args else str(exc)
        return _error(404, str(message))

    # Catch-all
    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception):
        logger.exception("Unhandled error")
        return _error(500, "Internal Server Error", str(exc))
