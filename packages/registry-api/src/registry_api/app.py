# SPDX-License-Identifier: MIT
"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import RegistryConfig
from .repository import EngineState, PackageValidator, RegistryEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    config: RegistryConfig = app.state.config
    engine: RegistryEngine = app.state.engine

    # Startup: start loading the registry; requests get 503 until it is ready
    if engine.state is EngineState.UNCONFIGURED:
        engine.configure(config)

    yield

    # Shutdown: wait for pending registry writes
    if engine.storage is not None:
        await engine.storage.flush()
        logger.info("Registry storage flushed")


def create_app(
    config: RegistryConfig | None = None,
    engine: RegistryEngine | None = None,
    validator: PackageValidator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Registry configuration. If None, loads from environment.
        engine: Registry engine to serve. If None, a new one is created and
            configured on startup.
        validator: Package validator for a newly created engine.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = RegistryConfig.from_env()
    if engine is None:
        engine = RegistryEngine(validator=validator)

    app = FastAPI(
        title=config.title,
        description=config.description,
        version=config.version,
        docs_url=config.docs_url,
        openapi_url=config.openapi_url,
        debug=config.debug,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .middleware.errors import add_error_handlers

    add_error_handlers(app)

    from .routes import packages, registry, stats

    app.include_router(registry.router, tags=["registry"])
    app.include_router(packages.router, tags=["packages"])
    app.include_router(stats.router, tags=["stats"])

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "registry": engine.state.value}

    return app


# Default app instance for uvicorn
app = create_app()
