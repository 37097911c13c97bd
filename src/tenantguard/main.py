"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tenantguard.api.middleware.logging import LoggingMiddleware
from tenantguard.api.middleware.request_id import RequestIdMiddleware, add_request_id
from tenantguard.api.routes import router as api_router
from tenantguard.core.auth.errors import (
    AuthorizationError,
    ForbiddenError,
    InvalidRuleError,
    RoleInUseError,
    UnauthenticatedError,
    UnknownPermissionError,
    UnknownTenantLevelError,
)
from tenantguard.core.config import Settings, settings as default_settings
from tenantguard.core.container import container
from tenantguard.core.hooks.manager import hooks
from tenantguard.core.hooks.tenant import register_tenant_hooks
from tenantguard.core.logging import configure_logging

logger = structlog.get_logger()


def _uses_database(config: Settings) -> bool:
    auth = config.auth
    return "database" in (auth.policy_store, auth.token_registry, auth.tenant_directory_backend)


def build_lifespan(config: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan events."""
        # Startup
        from tenantguard.implementations.register import register_backends
        register_backends()

        engine = None
        session_factory = None
        if _uses_database(config):
            from tenantguard.models.database import create_engine, create_session_factory, init_db
            engine = create_engine(config.database)
            session_factory = create_session_factory(engine)
            await init_db(engine)

        container.configure(config.auth, session_factory=session_factory)
        register_tenant_hooks(hooks, container.bootstrapper, container.tenant_directory)

        if config.auth.policy_bootstrap_on_startup:
            await container.bootstrapper.warm_up(container.tenant_directory)

        await hooks.trigger("app.startup")
        logger.info("Application started", environment=config.environment)

        yield

        # Shutdown
        await hooks.trigger("app.shutdown")
        container.clear()
        if engine is not None:
            from tenantguard.models.database import close_db
            await close_db(engine)

    return lifespan


def _error_status(exc: AuthorizationError) -> int:
    if isinstance(exc, UnauthenticatedError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, ForbiddenError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, (UnknownPermissionError, InvalidRuleError, UnknownTenantLevelError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, RoleInUseError):
        return status.HTTP_409_CONFLICT
    if exc.retryable:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    config = config or default_settings
    configure_logging(config, extra_processors=[add_request_id])

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        debug=config.debug,
        lifespan=build_lifespan(config),
        docs_url="/docs" if config.is_development else None,
        redoc_url="/redoc" if config.is_development else None,
    )

    # Middleware (last added is outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # Routes
    app.include_router(api_router, prefix="/api")

    # Exception handlers
    @app.exception_handler(AuthorizationError)
    async def authorization_exception_handler(request: Request, exc: AuthorizationError):
        status_code = _error_status(exc)
        headers = {}
        if status_code == status.HTTP_401_UNAUTHORIZED:
            headers["WWW-Authenticate"] = "Bearer"
            message = "Not authenticated"
        elif status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
            headers["Retry-After"] = "1"
            message = "Authorization backend unavailable"
            logger.warning("Authorization backend unavailable", error=exc.message, path=request.url.path)
        else:
            message = exc.message

        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "message": message},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error("Unhandled error", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": str(exc) if config.debug else "An error occurred",
            },
        )

    @app.get("/health")
    async def health_check():
        """Quick health check endpoint (for load balancers)."""
        return {
            "status": "healthy",
            "version": config.app_version,
            "environment": config.environment,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tenantguard.main:app", host="0.0.0.0", port=8000)
