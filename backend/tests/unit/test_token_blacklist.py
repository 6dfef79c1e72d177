"""Unit tests for the database-backed token blacklist."""

from datetime import UTC, datetime, timedelta

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.revoked_token import RevokedToken
from app.services.token_blacklist import (
    cleanup_expired_revoked_tokens,
    is_token_revoked,
    revoke_token,
    token_digest,
)

pytestmark = pytest.mark.asyncio

TOKEN = "header.payload.signature"


async def _count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(RevokedToken))
    return result.scalar_one()


class TestTokenBlacklist:
    """Tests for revoke/check/cleanup."""

    async def test_digest_is_stable_and_hides_token(self):
        assert token_digest(TOKEN) == token_digest(TOKEN)
        assert len(token_digest(TOKEN)) == 64
        assert TOKEN not in token_digest(TOKEN)

    async def test_revoke_then_check(self, db_session):
        assert await is_token_revoked(db_session, TOKEN) is False

        entry = await revoke_token(db_session, TOKEN)
        await db_session.commit()

        assert entry.token_digest == token_digest(TOKEN)
        assert await is_token_revoked(db_session, TOKEN) is True
        assert await is_token_revoked(db_session, TOKEN + "x") is False

    async def test_entry_lives_for_session_ttl(self, db_session):
        entry = await revoke_token(db_session, TOKEN)
        assert entry.expires_at - entry.issued_at == timedelta(hours=24)

    async def test_revoke_is_idempotent(self, db_session):
        await revoke_token(db_session, TOKEN)
        await revoke_token(db_session, TOKEN)
        await db_session.commit()

        assert await _count(db_session) == 1

    async def test_concurrent_revoke_is_treated_as_revoked(self, db_engine, db_session):
        """A second logout that loses the insert race returns the stored entry."""
        first = await revoke_token(db_session, TOKEN)
        await db_session.commit()

        session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as other:
            with patch.object(other, "get", AsyncMock(return_value=None)):
                entry = await revoke_token(other, TOKEN)
            await other.commit()

            assert entry.token_digest == first.token_digest

        assert await _count(db_session) == 1

    async def test_expired_entry_is_ignored(self, db_session):
        """An entry past its expiry no longer counts as revoked."""
        past = datetime.now(UTC) - timedelta(hours=1)
        db_session.add(
            RevokedToken(
                token_digest=token_digest(TOKEN),
                issued_at=past - timedelta(hours=24),
                expires_at=past,
            )
        )
        await db_session.commit()

        assert await is_token_revoked(db_session, TOKEN) is False

    async def test_cleanup_removes_only_expired(self, db_session):
        past = datetime.now(UTC) - timedelta(hours=1)
        db_session.add(
            RevokedToken(
                token_digest=token_digest("old.token.value"),
                issued_at=past - timedelta(hours=24),
                expires_at=past,
            )
        )
        await revoke_token(db_session, TOKEN)
        await db_session.commit()

        removed = await cleanup_expired_revoked_tokens(db_session)
        await db_session.commit()

        assert removed == 1
        assert await _count(db_session) == 1
        assert await is_token_revoked(db_session, TOKEN) is True
