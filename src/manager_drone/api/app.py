"""
FastAPI application factory.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.settings import Settings, get_settings
from ..errors import DroneError
from ..logging import get_logger
from ..registry import Dispatcher, ServiceRegistry, build_registry
from .auth import create_auth_adapter
from .routes import router

TRACE_HEADER = "X-Trace-Id"


async def drone_error_handler(request: Request, exc: DroneError) -> JSONResponse:
    body = {"error": exc.name, "message": exc.message}
    if exc.http_status >= 500:
        get_logger().log_error(exc, f"{request.method} {request.url.path} failed")
    return JSONResponse(status_code=exc.http_status, content=body)


def create_app(settings: Settings | None = None, registry: ServiceRegistry | None = None) -> FastAPI:
    """
    Build the API around a registry constructed once at startup.

    Args:
        settings: Settings to use (defaults to the global settings)
        registry: Prebuilt registry (defaults to ``build_registry(settings)``)
    """
    settings = settings or get_settings()
    if registry is None:
        registry = build_registry(settings)
    auth_adapter = create_auth_adapter(settings.auth)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await registry.close()

    app = FastAPI(title="manager-drone", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.dispatcher = Dispatcher(
        registry,
        log_probes=settings.logging.log_probes,
        log_actions=settings.logging.log_actions,
    )
    app.state.auth_adapter = auth_adapter

    app.add_exception_handler(DroneError, drone_error_handler)  # type: ignore[arg-type]

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        with get_logger().trace_context(trace_id=request.headers.get(TRACE_HEADER)) as trace_id:
            response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response

    app.include_router(router)
    return app


__all__ = ["create_app", "drone_error_handler"]
