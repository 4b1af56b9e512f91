"""Repository interfaces and their memory and SQL implementations."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard.config import Settings
from taskboard.repositories.base import (
    ColumnRepository,
    CommentRepository,
    NotificationRepository,
    PreferenceRepository,
    ProjectRepository,
    Repository,
    TaskRepository,
    UserRepository,
)
from taskboard.repositories.memory import (
    MemoryColumnRepository,
    MemoryCommentRepository,
    MemoryNotificationRepository,
    MemoryPreferenceRepository,
    MemoryProjectRepository,
    MemoryTaskRepository,
    MemoryUserRepository,
)
from taskboard.repositories.sql import (
    SqlColumnRepository,
    SqlCommentRepository,
    SqlNotificationRepository,
    SqlPreferenceRepository,
    SqlProjectRepository,
    SqlTaskRepository,
    SqlUserRepository,
)


@dataclass
class Repositories:
    """The full set of stores the application talks to."""

    projects: ProjectRepository
    columns: ColumnRepository
    tasks: TaskRepository
    users: UserRepository
    comments: CommentRepository
    notifications: NotificationRepository
    preferences: PreferenceRepository


def memory_repositories(latency_ms: int = 0) -> Repositories:
    """Empty in-process stores."""
    return Repositories(
        projects=MemoryProjectRepository(latency_ms=latency_ms),
        columns=MemoryColumnRepository(latency_ms=latency_ms),
        tasks=MemoryTaskRepository(latency_ms=latency_ms),
        users=MemoryUserRepository(latency_ms=latency_ms),
        comments=MemoryCommentRepository(latency_ms=latency_ms),
        notifications=MemoryNotificationRepository(latency_ms=latency_ms),
        preferences=MemoryPreferenceRepository(latency_ms=latency_ms),
    )


def sql_repositories(session_factory: async_sessionmaker[AsyncSession]) -> Repositories:
    """Stores sharing one SQLAlchemy session factory."""
    return Repositories(
        projects=SqlProjectRepository(session_factory),
        columns=SqlColumnRepository(session_factory),
        tasks=SqlTaskRepository(session_factory),
        users=SqlUserRepository(session_factory),
        comments=SqlCommentRepository(session_factory),
        notifications=SqlNotificationRepository(session_factory),
        preferences=SqlPreferenceRepository(session_factory),
    )


def build_repositories(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> Repositories:
    """Build the stores selected by ``settings.storage_backend``."""
    if settings.storage_backend == "memory":
        return memory_repositories(settings.memory_latency_ms)
    if session_factory is None:
        raise ValueError("SQL storage requires a session factory")
    return sql_repositories(session_factory)


__all__ = [
    "ColumnRepository",
    "CommentRepository",
    "NotificationRepository",
    "PreferenceRepository",
    "ProjectRepository",
    "Repositories",
    "Repository",
    "TaskRepository",
    "UserRepository",
    "build_repositories",
    "memory_repositories",
    "sql_repositories",
]
