"""
HTTP server implementation for ResourceDB.

This module builds the FastAPI application that exposes a ResourceStore
over JSON/HTTP.

Invariants:
    - NotFoundError -> 404, InvalidArgumentError -> 400,
      DeadlineExceededError -> 504, anything else -> 500
    - Every response carries an X-Request-ID header
    - Error bodies are {"error", "error_code", "details"}

How to change safely:
    - Keep status mapping in sync with ResourceError.http_status
    - Add routes to routes.py, not here
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from .._version import __version__
from ..config import HttpConfig
from ..errors import DeadlineExceededError, InternalError, ResourceError
from ..store import ResourceStore
from .routes import router

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def handle_resource_error(request: Request, exc: ResourceError) -> JSONResponse:
    """Turn a store error into its JSON response."""
    if isinstance(exc, DeadlineExceededError):
        logger.warning(
            f"Request deadline exceeded: {exc.message}",
            extra={"path": request.url.path, "operation": exc.operation},
        )
    return JSONResponse(exc.to_dict(), status_code=exc.http_status)


def create_http_app(
    store: ResourceStore,
    config: HttpConfig | None = None,
) -> FastAPI:
    """Create the HTTP application for a store.

    Args:
        store: ResourceStore instance to serve
        config: HTTP server configuration

    Returns:
        FastAPI application instance
    """
    config = config or HttpConfig()

    app = FastAPI(
        title="ResourceDB",
        description="Deadline-aware CRUD over an integer-keyed resource store.",
        version=__version__,
    )
    app.state.store = store
    app.state.http_config = config

    app.include_router(router)
    app.add_exception_handler(ResourceError, handle_resource_error)

    # Innermost first: add_middleware wraps everything added before it

    @app.middleware("http")
    async def error_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"HTTP handler error: {e}", exc_info=True)
            return JSONResponse(InternalError(str(e)).to_dict(), status_code=500)

    @app.middleware("http")
    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request.state.received_at = time.monotonic()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round((time.monotonic() - request.state.received_at) * 1000, 2),
            },
        )
        return response

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Accept", "Content-Type", REQUEST_ID_HEADER, "X-Request-Timeout-Ms"],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=300,
    )

    return app
