# Taskboard Pydantic Schemas
from app.schemas.auth import CurrentUser, LoginRequest, LoginResponse, SessionUser
from app.schemas.common import CamelModel, MessageResponse
from app.schemas.task import (
    Pagination,
    TaskCreate,
    TaskDeletedPayload,
    TaskDeleteResponse,
    TaskEnvelope,
    TaskEventPayload,
    TaskFilters,
    TaskListEnvelope,
    TaskResponse,
    TaskUpdate,
)
from app.schemas.user import (
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    UserEditRequest,
    UserEnvelope,
    UserResponse,
)

__all__ = [
    # Auth
    "CurrentUser",
    "LoginRequest",
    "LoginResponse",
    "SessionUser",
    # Common
    "CamelModel",
    "MessageResponse",
    # Task
    "Pagination",
    "TaskCreate",
    "TaskDeleteResponse",
    "TaskDeletedPayload",
    "TaskEnvelope",
    "TaskEventPayload",
    "TaskFilters",
    "TaskListEnvelope",
    "TaskResponse",
    "TaskUpdate",
    # User
    "RegisteredUser",
    "RegisterRequest",
    "RegisterResponse",
    "UserEditRequest",
    "UserEnvelope",
    "UserResponse",
]
