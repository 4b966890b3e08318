"""FastAPI dependencies wiring the launch orchestrator's collaborators."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cclti.core.settings import LtiSettings
from cclti.db.engine import get_session
from cclti.db.repo_replay import ReplayStore
from cclti.lti.jwks import JwksFetcher
from cclti.lti.orchestrator import LaunchOrchestrator
from cclti.lti.registry import PlatformRegistry


def load_settings() -> LtiSettings:
    return LtiSettings()


def get_registry(
    settings: Annotated[LtiSettings, Depends(load_settings)],
) -> PlatformRegistry:
    """Platform trust table built from configuration."""
    return PlatformRegistry.from_settings(settings)


def get_jwks_fetcher(
    settings: Annotated[LtiSettings, Depends(load_settings)],
) -> JwksFetcher:
    return JwksFetcher(timeout=settings.jwks_timeout)


def get_orchestrator(
    db: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[LtiSettings, Depends(load_settings)],
    registry: Annotated[PlatformRegistry, Depends(get_registry)],
    fetcher: Annotated[JwksFetcher, Depends(get_jwks_fetcher)],
) -> LaunchOrchestrator:
    """Build a request-scoped orchestrator over the request's DB session."""
    return LaunchOrchestrator(
        registry=registry,
        store=ReplayStore(db),
        fetcher=fetcher,
        db=db,
        settings=settings,
    )
