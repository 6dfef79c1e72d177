"""Revoked session tokens - persisted so logout survives process restarts."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class RevokedToken(Base):
    """A session token revoked by logout, keyed by the SHA-256 digest of its value.

    Rows are ignored once ``expires_at`` has passed and are swept periodically.
    """

    __tablename__ = "revoked_tokens"

    token_digest: Mapped[str] = mapped_column(String(64), primary_key=True)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
