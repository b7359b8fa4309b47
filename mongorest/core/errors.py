import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mongorest.core.config import config

logger = logging.getLogger(__name__)


class MongoRestError(Exception):
    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(MongoRestError):
    status_code = 400


class NotFoundError(MongoRestError):
    status_code = 404

    def __init__(self, message: str = "Document Not Found") -> None:
        super().__init__(message)


class RegistrationError(MongoRestError):
    pass


class HookError(MongoRestError):
    def __init__(self, message: str, action: str) -> None:
        super().__init__(message)
        self.action = action


class MapperError(MongoRestError):
    pass


def error_body(message: Any) -> dict[str, Any]:
    return {"message": message}


def install_exception_handlers(app: FastAPI, default_status: int | None = None) -> None:
    """
    Render mongorest errors and HTTP exceptions as ``{"message": ...}``.

    Args:
        app (FastAPI): The application to install the handlers on.
        default_status (int | None): Status for errors without one of their own,
            defaults to ``config.DEFAULT_ERROR_STATUS``.
    """
    fallback = default_status or config.DEFAULT_ERROR_STATUS

    @app.exception_handler(MongoRestError)
    async def _mongorest_error_handler(_request: Request, exc: MongoRestError) -> JSONResponse:
        status_code = exc.status_code or fallback
        if status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message, exc_info=exc.__cause__ or exc)
        else:
            logger.debug("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(status_code=status_code, content=error_body(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail), headers=exc.headers)
