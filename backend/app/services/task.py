"""Task service - owner-scoped task CRUD with realtime notification."""

import builtins
import logging
import math
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AuthError, NotFoundError, ValidationError
from app.models.task import Task
from app.schemas.task import (
    TaskCreate,
    TaskDeletedPayload,
    TaskEventPayload,
    TaskFilters,
    TaskResponse,
    TaskUpdate,
)
from app.services.broadcaster import (
    TASK_CREATED,
    TASK_DELETED,
    TASK_UPDATED,
    TaskEventBroadcaster,
    get_broadcaster,
)

logger = logging.getLogger(__name__)


def parse_task_id(task_id: str | UUID) -> UUID:
    """Parse a task identifier, raising ValidationError if it is malformed."""
    if isinstance(task_id, UUID):
        return task_id
    try:
        return UUID(str(task_id))
    except ValueError as e:
        raise ValidationError("Invalid task ID format") from e


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total > 0 else 0


class TaskService:
    """Service for a user's tasks.

    Every operation is restricted to tasks owned by ``owner_id``. Mutations
    are committed before the corresponding event is broadcast.
    """

    def __init__(self, db: AsyncSession, broadcaster: TaskEventBroadcaster | None = None):
        self.db = db
        self.broadcaster = broadcaster or get_broadcaster()

    async def _publish_task(self, event: str, task: Task) -> None:
        payload = TaskEventPayload(task=TaskResponse.model_validate(task), user_id=task.owner_id)
        await self.broadcaster.publish(
            event, payload.model_dump(mode="json", by_alias=True), task.owner_id
        )

    async def get_owned(self, owner_id: UUID, task_id: str | UUID) -> Task | None:
        """Get a task by ID only if it belongs to ``owner_id``."""
        result = await self.db.execute(
            select(Task).where(Task.id == parse_task_id(task_id), Task.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def create(self, owner_id: UUID, data: TaskCreate) -> Task:
        """Create a task for ``owner_id`` and broadcast taskCreated."""
        task = Task(owner_id=owner_id, title=data.title, status=data.status)
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)

        logger.debug("Task created", extra={"user_id": str(owner_id), "task_id": str(task.id)})
        await self._publish_task(TASK_CREATED, task)
        return task

    async def update(self, owner_id: UUID, task_id: str | UUID, data: TaskUpdate) -> Task:
        """Apply a partial update and broadcast taskUpdated.

        A task owned by someone else is reported as not found.
        """
        task = await self.get_owned(owner_id, task_id)
        if task is None:
            raise NotFoundError("Task not found or unauthorized!")

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(task, field, value)

        await self.db.commit()
        await self.db.refresh(task)

        logger.debug("Task updated", extra={"user_id": str(owner_id), "task_id": str(task.id)})
        await self._publish_task(TASK_UPDATED, task)
        return task

    async def list(self, owner_id: UUID, filters: TaskFilters) -> tuple[builtins.list[Task], int]:
        """List the owner's tasks, newest first.

        Returns a tuple of (tasks on the requested page, total matching count).
        """
        conditions = [Task.owner_id == owner_id]
        if filters.search:
            pattern = f"%{_escape_like(filters.search.lower())}%"
            conditions.append(func.lower(Task.title).like(pattern, escape="\\"))
        if filters.status:
            conditions.append(Task.status == filters.status)

        count_result = await self.db.execute(select(func.count(Task.id)).where(*conditions))
        total = count_result.scalar() or 0

        # Secondary sort by id for deterministic ordering when timestamps are identical
        offset = (filters.page - 1) * filters.limit
        result = await self.db.execute(
            select(Task)
            .where(*conditions)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .offset(offset)
            .limit(filters.limit)
        )
        return list(result.scalars().all()), total

    async def delete(self, owner_id: UUID, task_id: str | UUID) -> UUID:
        """Delete a task and broadcast taskDeleted. Returns the deleted task's ID.

        Unlike update, a task owned by another user is reported as forbidden.
        """
        parsed_id = parse_task_id(task_id)
        task = await self.db.get(Task, parsed_id)
        if task is None:
            raise NotFoundError("Task not found!")
        if task.owner_id != owner_id:
            raise AuthError("You are not authorized to delete this task!", status_code=403)

        await self.db.delete(task)
        await self.db.commit()

        logger.debug("Task deleted", extra={"user_id": str(owner_id), "task_id": str(parsed_id)})
        payload = TaskDeletedPayload(task_id=parsed_id, user_id=owner_id)
        await self.broadcaster.publish(
            TASK_DELETED, payload.model_dump(mode="json", by_alias=True), owner_id
        )
        return parsed_id
