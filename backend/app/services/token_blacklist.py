"""Token blacklist - database-backed denylist of revoked session tokens.

A revoked token stays on the list for the session lifetime, after which the
token would have expired anyway. Expired rows are ignored on read and removed
by ``cleanup_expired_revoked_tokens`` (run periodically from the app lifespan).
"""

import hashlib
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import settings
from app.models.revoked_token import RevokedToken


def token_digest(token: str) -> str:
    """Stable identity of a token value (hex SHA-256)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def revoke_token(db: AsyncSession, token: str) -> RevokedToken:
    """Add a token to the blacklist. Revoking an already revoked token is a no-op."""
    digest = token_digest(token)
    existing = await db.get(RevokedToken, digest)
    if existing is not None:
        return existing

    now = datetime.now(UTC)
    entry = RevokedToken(
        token_digest=digest,
        issued_at=now,
        expires_at=now + timedelta(hours=settings.session_ttl_hours),
    )
    db.add(entry)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent logout revoked the same token first
        await db.rollback()
        result = await db.execute(select(RevokedToken).where(RevokedToken.token_digest == digest))
        return result.scalar_one()
    return entry


async def is_token_revoked(db: AsyncSession, token: str) -> bool:
    """Check if a token is on the blacklist and its entry has not yet expired."""
    now = datetime.now(UTC)
    result = await db.execute(
        select(RevokedToken.token_digest).where(
            RevokedToken.token_digest == token_digest(token),
            RevokedToken.expires_at > now,
        )
    )
    return result.scalar_one_or_none() is not None


async def cleanup_expired_revoked_tokens(db: AsyncSession) -> int:
    """Remove expired entries from the blacklist. Returns count removed."""
    now = datetime.now(UTC)
    result: CursorResult[Any] = await db.execute(  # type: ignore[assignment]
        delete(RevokedToken).where(RevokedToken.expires_at <= now)
    )
    return result.rowcount
