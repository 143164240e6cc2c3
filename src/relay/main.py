"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay import __version__
from relay.api.deps import get_settings_dependency
from relay.api.routes import api_router
from relay.config import Settings, get_settings
from relay.core.catalog import ModelRegistry
from relay.middleware.logging import LoggingMiddleware, configure_logging
from relay.middleware.request_id import RequestIdMiddleware
from relay.middleware.warmup import CatalogWarmupMiddleware
from relay.utils.errors import RelayError, log_error, render_error

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown events."""
    settings: Settings = app.state.settings

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
    )

    logger.info(
        "Starting relay-server",
        extra={
            "version": __version__,
            "host": settings.server.host,
            "port": settings.server.port,
            "catalog_source": settings.catalog.url or "static",
            "log_level": settings.logging.level,
        },
    )

    yield

    logger.info("Shutting down relay-server")


def create_app(
    settings: Settings | None = None,
    registry: ModelRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing.
        registry: Optional model registry override for testing.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()
    if registry is None:
        registry = ModelRegistry(settings)

    app = FastAPI(
        title="relay-server",
        description="OpenAI- and Anthropic-compatible relay for the 1min.ai API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry

    # Last added = first executed; CORS outermost to answer preflight requests
    app.add_middleware(CatalogWarmupMiddleware, registry=registry)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors.allowed_origins,
        allow_credentials=False,
        allow_methods=settings.server.cors.allowed_methods,
        allow_headers=settings.server.cors.allowed_headers,
    )

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.include_router(api_router)

    # Routes resolve settings through get_settings_dependency; pin them to this app
    app.dependency_overrides.setdefault(get_settings_dependency, lambda: settings)

    return app


def _error_response(request: Request, exc: Exception) -> JSONResponse:
    status, body = render_error(exc, request.url.path)
    return JSONResponse(status_code=status, content=body)


async def relay_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render taxonomy and request validation errors in the route's protocol."""
    log_error(exc, request_id=getattr(request.state, "request_id", None), path=request.url.path)
    return _error_response(request, exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle routing errors such as unknown paths."""
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Not Found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors without echoing their details."""
    log_error(
        exc,
        request_id=getattr(request.state, "request_id", None),
        path=request.url.path,
        method=request.method,
    )
    return _error_response(request, exc)


# Create the default app instance
app = create_app()
