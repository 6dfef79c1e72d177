"""User model for registration and session authentication."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.task import Task


class User(BaseModel):
    """A registered account.

    Only an Argon2id hash of the password is stored. Users are never
    hard-deleted; their tasks reference them by owner_id.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(30), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    tasks: Mapped[list["Task"]] = relationship(back_populates="owner", lazy="noload")

    def __repr__(self) -> str:
        return f"<User {self.email}>"
