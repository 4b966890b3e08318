"""Single-use state and nonce storage for the LTI login handshake."""

from datetime import datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from cclti.db.models_lti import LtiNonceEntity, LtiStateEntity


class LoginStateRecord(BaseModel):
    """What a consumed login state tells the launch about its origin."""

    state: str
    nonce: str
    issuer: str
    client_id: str
    target_link_uri: str


class ReplayStore:
    """TTL-bound anti-replay tokens with atomic consume.

    ``consume_*`` is one conditional ``DELETE ... RETURNING`` statement, so
    two requests presenting the same token cannot both succeed.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def put_state(
        self, record: LoginStateRecord, *, now: datetime, ttl_seconds: int
    ) -> None:
        """Persist a freshly minted login state."""
        self._session.add(
            LtiStateEntity(
                state=record.state,
                nonce=record.nonce,
                issuer=record.issuer,
                client_id=record.client_id,
                target_link_uri=record.target_link_uri,
                expires_at=now + timedelta(seconds=ttl_seconds),
            )
        )
        await self._session.flush()

    async def put_nonce(self, nonce: str, *, now: datetime, ttl_seconds: int) -> None:
        """Persist a nonce expected back in the id_token."""
        self._session.add(
            LtiNonceEntity(
                nonce=nonce,
                expires_at=now + timedelta(seconds=ttl_seconds),
            )
        )
        await self._session.flush()

    async def consume_state(
        self, state: str, *, now: datetime
    ) -> LoginStateRecord | None:
        """Delete a live state and return it. None if missing, expired, or used."""
        stmt = (
            delete(LtiStateEntity)
            .where(LtiStateEntity.state == state, LtiStateEntity.expires_at > now)
            .returning(
                LtiStateEntity.state,
                LtiStateEntity.nonce,
                LtiStateEntity.issuer,
                LtiStateEntity.client_id,
                LtiStateEntity.target_link_uri,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return LoginStateRecord(
            state=row.state,
            nonce=row.nonce,
            issuer=row.issuer,
            client_id=row.client_id,
            target_link_uri=row.target_link_uri,
        )

    async def consume_nonce(self, nonce: str, *, now: datetime) -> bool:
        """Delete a live nonce. False if missing, expired, or already used."""
        stmt = (
            delete(LtiNonceEntity)
            .where(LtiNonceEntity.nonce == nonce, LtiNonceEntity.expires_at > now)
            .returning(LtiNonceEntity.nonce)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.one_or_none() is not None

    async def sweep_expired(self, *, now: datetime) -> None:
        """Drop expired states and nonces."""
        await self._session.execute(
            delete(LtiStateEntity)
            .where(LtiStateEntity.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(LtiNonceEntity)
            .where(LtiNonceEntity.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
