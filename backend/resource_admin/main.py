"""
Resource admin application.
Entry point for the FastAPI server.

Usage:
    from resource_admin.main import create_app
    from resource_admin.resources import ResourceRegistry

    registry = ResourceRegistry()
    registry.register("articles", ArticleService)
    app = create_app(registry, create_tables=True)
"""

from fastapi import FastAPI

from admin_shared.config.settings import settings
from admin_shared.infrastructure.correlation import CorrelationIdMiddleware
from resource_admin import __version__
from resource_admin.core import lifespan
from resource_admin.resources.registry import ResourceRegistry, load_registry, registry as default_registry
from resource_admin.routers import resources_router


def create_app(
    registry: ResourceRegistry | None = None,
    *,
    create_tables: bool = False,
) -> FastAPI:
    """
    Build the application around a resource registry.

    Every registered resource type is served under ``settings.api_prefix``.
    """
    app = FastAPI(
        title="Resource Admin API",
        description="Generic admin endpoints for registered resource types",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.registry = registry if registry is not None else default_registry
    app.state.create_tables = create_tables

    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(resources_router, prefix=settings.api_prefix)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/health")
    def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "service": "resource-admin",
            "environment": settings.environment,
            "resources": app.state.registry.keys(),
        }

    return app


def create_app_from_settings() -> FastAPI:
    """
    App factory driven by RESOURCE_MODULES and CREATE_TABLES.

    Usage:
        RESOURCE_MODULES='["blog.admin"]' uvicorn resource_admin.main:create_app_from_settings --factory
    """
    return create_app(
        load_registry(settings.resource_modules),
        create_tables=settings.create_tables,
    )


app = create_app()
