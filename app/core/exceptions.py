from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logging import logger


class AppError(Exception):
    """Base error carrying an HTTP status and a message safe to show clients."""

    status_code = 500
    message = "Error interno del servidor"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidRequest(AppError):
    status_code = 400
    message = "Solicitud inválida"


class Unauthorized(AppError):
    status_code = 401
    message = "No autorizado"


class NotFound(AppError):
    status_code = 404
    message = "Planeación no encontrada"


class UpstreamError(AppError):
    """Record store or model provider failure.

    The cause is kept for server-side logs only; clients get the generic
    message.
    """

    status_code = 500

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


def _sanitize_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return validation errors without raw input payloads."""
    sanitized = []
    for error in errors:
        sanitized.append({
            "campo": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "mensaje": error.get("msg", ""),
        })
    return sanitized


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error(
            f"Upstream error on {request.method} {request.url.path}: {exc.message} ({exc.cause!r})"
        )
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _sanitize_validation_errors(exc.errors())
    logger.info(f"Validation failed on {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={"error": InvalidRequest.message, "detalles": details},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": AppError.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
