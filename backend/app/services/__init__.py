# Taskboard Services
from app.services.auth import AuthService
from app.services.broadcaster import TaskEventBroadcaster, get_broadcaster
from app.services.task import TaskService
from app.services.user import UserService

__all__ = [
    "AuthService",
    "TaskEventBroadcaster",
    "TaskService",
    "UserService",
    "get_broadcaster",
]
