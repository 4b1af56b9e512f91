"""SQLAlchemy models package."""

from taskboard.models.notification import Notification, NotificationPreference
from taskboard.models.project import (
    BoardColumn,
    Project,
    ProjectMember,
    Task,
    TaskComment,
)
from taskboard.models.user import User

__all__ = [
    "BoardColumn",
    "Notification",
    "NotificationPreference",
    "Project",
    "ProjectMember",
    "Task",
    "TaskComment",
    "User",
]
