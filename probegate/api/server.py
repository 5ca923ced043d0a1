"""FastAPI server exposing the health groups as probe endpoints."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from probegate import __version__
from probegate.api.health_routes import health_router
from probegate.config import Settings, settings
from probegate.health.engine import HealthEngine
from probegate.health.loader import load_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the health engine on startup unless one was injected."""
    engine: HealthEngine | None = getattr(app.state, "health_engine", None)
    owned = engine is None
    if owned:
        # ConfigError propagates and aborts startup.
        engine = load_engine(app.state.settings)
        app.state.health_engine = engine
        logger.info(
            "Health engine loaded: %d checks, groups: %s",
            len(engine.registry),
            ", ".join(engine.group_names()) or "none",
        )

    yield

    # Shutdown
    if owned:
        engine.close()


def create_app(engine: HealthEngine | None = None, config: Settings | None = None) -> FastAPI:
    config = config or settings
    app = FastAPI(
        title="probegate - Health Probe Aggregator",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.health_token = config.health_token
    if engine is not None:
        app.state.health_engine = engine

    app.include_router(health_router)
    return app
