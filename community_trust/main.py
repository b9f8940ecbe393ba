"""Community Trust: Main FastAPI Application.

Authorization and community-trust policy for user-submitted compatibility
listings: role gates, the trust ledger, listing approval and routed
notifications.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api import api_router
from .core import Settings, close_db, get_settings, init_db
from .schemas import ErrorResponse
from .services import (
    ConflictError,
    DependencyUnavailable,
    NotFound,
    PermissionDenied,
    PolicyCore,
    PolicyError,
    ValidationError,
)
from .stores import PolicyStore, create_store

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[PolicyError], int] = {
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationError: 422,
    DependencyUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: PolicyError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    engine = app.state.engine
    settings: Settings = app.state.core.settings

    # Startup - production schemas are managed by migrations
    if engine is not None and settings.environment != "production":
        await init_db(engine)
    yield
    # Shutdown
    if engine is not None:
        await close_db(engine)


def create_app(
    store: PolicyStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the application.

    Passing ``store`` skips store construction from settings (tests, or
    embedding the API next to an existing store).
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = None
    if store is None:
        store, engine = create_store(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    ## Community Trust API

    Moderation and reputation for community compatibility listings.

    ### Key Features

    - **Role Hierarchy**: USER < AUTHOR < ADMIN < SUPER_ADMIN, with owner overrides.
    - **Trust Ledger**: Append-only trust facts; scores are always the sum of the ledger.
    - **Approval Workflow**: PENDING listings are approved or rejected exactly once.
    - **Notifications**: Idempotent, categorized and routed to the recipient's channel.

    ### Authentication

    All endpoints except trust levels and health require a valid JWT token
    in the `Authorization: Bearer <token>` header.
    """,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        lifespan=lifespan,
    )
    app.state.core = PolicyCore(store, settings)
    app.state.engine = engine

    @app.exception_handler(PolicyError)
    async def policy_exception_handler(request: Request, exc: PolicyError):
        """Map policy errors onto HTTP status codes."""
        code = status_for(exc)
        if code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=code,
            content=ErrorResponse(
                error=exc.code,
                message=exc.message,
                details=[],
                reason=getattr(exc, "reason", None),
            ).model_dump(by_alias=True),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        message = "An unexpected error occurred"
        if settings.debug or settings.environment != "production":
            message = f"{message}: {str(exc)[:200]}"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="internal_error",
                message=message,
                details=[],
            ).model_dump(by_alias=True),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "community_trust.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
