"""Shared test fixtures for the LTI launch service."""

from collections.abc import AsyncIterator

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cclti.core.app import create_app
from cclti.core.settings import LtiSettings
from cclti.db.base import BaseEntity
from cclti.db.engine import get_session
from cclti.db.repo_replay import ReplayStore
from cclti.lti.deps import get_jwks_fetcher
from cclti.lti.jwks import JwksFetcher
from cclti.lti.orchestrator import LaunchOrchestrator
from cclti.lti.registry import PlatformConfig, PlatformRegistry
from tests.support import (
    APP_URL,
    AUTH_ENDPOINT,
    CLIENT_ID,
    ISSUER,
    JWKS_URI,
    PlatformKey,
    generate_platform_key,
    jwks_transport,
)


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("CCLTI_APP_URL", APP_URL)
    monkeypatch.setenv("CCLTI_LTI_ISSUER", ISSUER)
    monkeypatch.setenv("CCLTI_LTI_CLIENT_ID", CLIENT_ID)
    monkeypatch.setenv("CCLTI_LTI_AUTH_ENDPOINT", AUTH_ENDPOINT)
    monkeypatch.setenv("CCLTI_LTI_JWKS_URI", JWKS_URI)
    monkeypatch.delenv("CCLTI_DEBUG", raising=False)
    monkeypatch.delenv("CCLTI_DEV_MODE", raising=False)


@pytest.fixture(scope="session")
def platform_key() -> PlatformKey:
    """The fake platform's signing keypair."""
    return generate_platform_key()


@pytest.fixture
def jwks_calls() -> list[httpx.Request]:
    """Requests the fake platform's JWKS endpoint received."""
    return []


@pytest.fixture
def fetcher(
    platform_key: PlatformKey, jwks_calls: list[httpx.Request]
) -> JwksFetcher:
    """JWKS fetcher wired to the fake platform."""
    return JwksFetcher(transport=jwks_transport([platform_key], jwks_calls))


@pytest.fixture
def registry() -> PlatformRegistry:
    return PlatformRegistry(
        {
            ISSUER: PlatformConfig(
                client_id=CLIENT_ID,
                auth_endpoint=AUTH_ENDPOINT,
                jwks_uri=JWKS_URI,
            )
        }
    )


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec) -> None:
        # SQLAlchemy emits BEGIN itself so SAVEPOINT works under pysqlite.
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def orchestrator(
    db_session: AsyncSession,
    registry: PlatformRegistry,
    fetcher: JwksFetcher,
) -> LaunchOrchestrator:
    """Orchestrator over the test DB session and fake platform."""
    return LaunchOrchestrator(
        registry=registry,
        store=ReplayStore(db_session),
        fetcher=fetcher,
        db=db_session,
        settings=LtiSettings(),
    )


@pytest.fixture
def app(db_session: AsyncSession, fetcher: JwksFetcher) -> FastAPI:
    """Application with the DB session and JWKS fetcher overridden."""
    app = create_app()

    async def _override_session() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_jwks_fetcher] = lambda: fetcher
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client against the overridden app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=APP_URL) as ac:
        yield ac
