"""Task API endpoints. Every route requires an authenticated session."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.core import get_db
from app.schemas.auth import CurrentUser
from app.schemas.task import (
    Pagination,
    TaskCreate,
    TaskDeleteResponse,
    TaskEnvelope,
    TaskFilters,
    TaskListEnvelope,
    TaskResponse,
    TaskUpdate,
)
from app.services.task import TaskService, total_pages

router = APIRouter(
    prefix="/task",
    tags=["task"],
)


def get_task_service(db: AsyncSession = Depends(get_db)) -> TaskService:
    """Dependency to get task service."""
    return TaskService(db)


@router.post("/create", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    """Create a task owned by the current user."""
    task = await service.create(current_user.user_id, data)
    return TaskEnvelope(data=TaskResponse.model_validate(task), message="Task created successfully")


@router.get("/", response_model=TaskListEnvelope)
async def list_tasks(
    filters: Annotated[TaskFilters, Query()],
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskListEnvelope:
    """List the current user's tasks, newest first.

    Supports case-insensitive title search, status filter and page/limit pagination.
    """
    tasks, total = await service.list(current_user.user_id, filters)
    return TaskListEnvelope(
        data=[TaskResponse.model_validate(t) for t in tasks],
        pagination=Pagination(
            total_tasks=total,
            page=filters.page,
            limit=filters.limit,
            total_pages=total_pages(total, filters.limit),
        ),
    )


@router.put("/{task_id}", response_model=TaskEnvelope)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    """Update a task's title and/or status."""
    task = await service.update(current_user.user_id, task_id, data)
    return TaskEnvelope(data=TaskResponse.model_validate(task), message="Task updated successfully")


@router.delete("/{task_id}", response_model=TaskDeleteResponse)
async def delete_task(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskDeleteResponse:
    """Delete a task. Returns 403 if it belongs to another user."""
    await service.delete(current_user.user_id, task_id)
    return TaskDeleteResponse()
