"""Session issuance and lookup."""

import hashlib
import secrets
from datetime import datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cclti.db.models_session import SessionEntity

SESSION_TOKEN_BYTES = 32


class IssuedSession(BaseModel):
    """A newly created session and the raw token to hand to the browser."""

    token: str
    user_id: str
    course_id: str
    role: str
    expires_at: datetime


def generate_session_token() -> str:
    """Generate a cryptographically random opaque session token."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hash a token for database storage."""
    return hashlib.sha256(token.encode()).hexdigest()


async def sweep_expired_sessions(session: AsyncSession, *, now: datetime) -> None:
    """Drop sessions past their expiry."""
    await session.execute(
        delete(SessionEntity)
        .where(SessionEntity.expires_at <= now)
        .execution_options(synchronize_session=False)
    )


async def create_session(
    session: AsyncSession,
    *,
    user_id: str,
    course_id: str,
    role: str,
    now: datetime,
    ttl_seconds: int,
) -> IssuedSession:
    """Store a new session; only the token's hash is persisted."""
    await sweep_expired_sessions(session, now=now)

    token = generate_session_token()
    expires_at = now + timedelta(seconds=ttl_seconds)
    session.add(
        SessionEntity(
            id=hash_token(token),
            user_id=user_id,
            course_id=course_id,
            role=role,
            expires_at=expires_at,
        )
    )
    await session.flush()
    return IssuedSession(
        token=token,
        user_id=user_id,
        course_id=course_id,
        role=role,
        expires_at=expires_at,
    )


async def get_live_session(
    session: AsyncSession, token: str, *, now: datetime
) -> SessionEntity | None:
    """Return the unexpired session for a raw token, if any."""
    stmt = select(SessionEntity).where(
        SessionEntity.id == hash_token(token),
        SessionEntity.expires_at > now,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def renew_session(
    session: AsyncSession, entity: SessionEntity, *, now: datetime, ttl_seconds: int
) -> None:
    """Slide a session's expiry forward."""
    entity.expires_at = now + timedelta(seconds=ttl_seconds)
    await session.flush()
