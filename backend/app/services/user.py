"""User service - profile lookup and edit for the authenticated user."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.user import User
from app.schemas.user import UserEditRequest
from app.services.auth import hash_password

logger = logging.getLogger(__name__)


class UserService:
    """Service for the current user's profile."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: UUID) -> User:
        """Get a user by ID, raising NotFoundError if absent."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def edit(self, user_id: UUID, data: UserEditRequest) -> User:
        """Update name and/or password. A new password is re-hashed."""
        user = await self.get(user_id)

        if data.name is not None:
            user.name = data.name
        if data.password is not None:
            user.password_hash = hash_password(data.password)

        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"Profile updated: {user.email}", extra={"user_id": str(user.id)})
        return user
