"""FastAPI application factory for the Course Community LTI service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cclti.api.router_session import router as session_router
from cclti.core.logging import configure_logging
from cclti.core.settings import LtiSettings
from cclti.db.engine import create_schema
from cclti.lti.routes_dev import router as dev_router
from cclti.lti.routes_launch import router as launch_router
from cclti.lti.routes_login import router as login_router


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = LtiSettings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if settings.create_schema:
            await create_schema()
        yield

    app = FastAPI(
        title="Course Community LTI",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(login_router)
    app.include_router(launch_router)
    app.include_router(dev_router)
    app.include_router(session_router)

    return app
