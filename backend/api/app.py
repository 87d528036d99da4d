"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from modules.auth.cookies import NO_STORE_HEADERS
from shared.config import Settings
from shared.exceptions import AuthenticationError, ParleyError

from .dependencies import ServiceContainer, get_container, set_container
from .models.errors import ErrorResponse
from .routes import auth, health, users

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Opens the credential store on startup and closes it on shutdown.
    """
    container = get_container()
    settings = container.settings
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    await container.startup()
    yield
    await container.shutdown()
    logger.info(f"Shutting down {settings.app_name}")


async def parley_error_handler(request: Request, exc: ParleyError) -> JSONResponse:
    """Map domain errors to their HTTP status with a uniform body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} ({exc.code})")

    headers = dict(NO_STORE_HEADERS)
    if isinstance(exc, AuthenticationError):
        headers["WWW-Authenticate"] = 'Bearer realm="api"'

    body = ErrorResponse(message=exc.message, code=exc.code)
    if exc.status_code >= 500:
        body = ErrorResponse(message="An internal error occurred", code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    body = ErrorResponse(message="Invalid request format", code="invalid_request")
    return JSONResponse(status_code=400, content=body.model_dump())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    body = ErrorResponse(message="An internal error occurred", code="server_error")
    return JSONResponse(status_code=500, content=body.model_dump())


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Service container to use; defaults to the process-wide one

    Returns:
        Configured FastAPI instance
    """
    if container is not None:
        set_container(container)
    settings = get_container().settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Chat backend authentication and session API",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.add_exception_handler(ParleyError, parley_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    return app


# Application instance for uvicorn
app = create_app()
