"""Task model - a to-do item owned by a single user."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User

TASK_STATUSES = ("pending", "in-progress", "completed")

TaskStatus = Enum(
    *TASK_STATUSES,
    name="task_status",
    create_constraint=True,
)


class Task(BaseModel):
    """A task belonging to its creator.

    owner_id is fixed at creation; only the owner may update or delete it.
    """

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_owner_created", "owner_id", "created_at"),)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(TaskStatus, nullable=False, default="pending")

    owner: Mapped["User"] = relationship(back_populates="tasks", lazy="noload")

    def __repr__(self) -> str:
        return f"<Task {self.id} status={self.status}>"
