"""Pydantic schemas for Task API and realtime payloads."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.common import CamelModel

TaskStatusLiteral = Literal["pending", "in-progress", "completed"]


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    title: str = Field(..., min_length=1, max_length=100)
    status: TaskStatusLiteral = "pending"

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class TaskUpdate(BaseModel):
    """Schema for a partial task update. At least one field is required."""

    title: str | None = Field(None, min_length=1, max_length=100)
    status: TaskStatusLiteral | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def require_one_field(self) -> "TaskUpdate":
        if self.title is None and self.status is None:
            raise ValueError("at least one of title or status is required")
        return self


class TaskFilters(BaseModel):
    """Query parameters for listing tasks. Empty search/status mean no filter."""

    search: str | None = Field(None, max_length=100)
    status: TaskStatusLiteral | Literal[""] | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class TaskResponse(CamelModel):
    """Schema for task response."""

    id: UUID
    owner_id: UUID
    title: str
    status: str
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    total_tasks: int
    page: int
    limit: int
    total_pages: int


class TaskEnvelope(BaseModel):
    success: bool = True
    data: TaskResponse
    message: str


class TaskListEnvelope(BaseModel):
    success: bool = True
    data: list[TaskResponse]
    pagination: Pagination
    message: str = "Tasks fetched successfully"


class TaskDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Task deleted successfully"


class TaskEventPayload(CamelModel):
    """Payload of taskCreated / taskUpdated broadcasts."""

    task: TaskResponse
    user_id: UUID


class TaskDeletedPayload(CamelModel):
    """Payload of taskDeleted broadcasts."""

    task_id: UUID
    user_id: UUID
