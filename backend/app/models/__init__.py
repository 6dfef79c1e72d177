# Taskboard Models
from app.models.base import BaseModel
from app.models.revoked_token import RevokedToken
from app.models.task import TASK_STATUSES, Task
from app.models.user import User

__all__ = [
    "BaseModel",
    "RevokedToken",
    "TASK_STATUSES",
    "Task",
    "User",
]
