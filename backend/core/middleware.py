"""FastAPI middleware and exception handlers.

- X-Request-ID header (generated if not provided), bound into the structlog
  context so engine log lines emitted during the request carry it
- X-Process-Time header
- One access log line per request (health probes excluded)
- PipelineException family mapped to JSON errors
"""

import logging
import time
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings

logger = logging.getLogger(__name__)

_QUIET_PATHS = ("/api/health", "/api/v1/health")


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Add request ID and timing to every request/response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        start_time = time.monotonic()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    f"Unhandled exception on {request.method} {request.url.path}: {exc}",
                    exc_info=True,
                )
                detail = "Internal server error"
                if not get_settings().is_production:
                    detail = str(exc) or detail
                return JSONResponse(
                    status_code=500,
                    content={"detail": detail, "request_id": request_id},
                    headers={"X-Request-ID": request_id},
                )

            duration_ms = (time.monotonic() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"

            if not request.url.path.startswith(_QUIET_PATHS):
                level = logging.WARNING if response.status_code >= 400 else logging.INFO
                logger.log(
                    level,
                    f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.0f}ms)",
                )

        return response


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Every PipelineException carries its own HTTP status, so one handler
    covers not-found, validation, conflict and engine errors alike.
    """

    from core.exceptions import PipelineException

    @app.exception_handler(PipelineException)
    async def pipeline_exception_handler(request: Request, exc: PipelineException):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                "error_code": type(exc).__name__,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "request_id": _request_id(request)},
        )
