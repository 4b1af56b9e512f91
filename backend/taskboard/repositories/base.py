"""Abstract repository interfaces.

The board engine consumes storage only through these interfaces, so any
backend (in-process, SQL, remote API) that implements them can sit behind
it. Every operation is a coroutine and may fail independently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from taskboard.schemas import (
    BoardColumn,
    ColumnCreate,
    ColumnUpdate,
    Comment,
    CommentCreate,
    Notification,
    NotificationCreate,
    NotificationPreferences,
    NotificationUpdate,
    Project,
    ProjectCreate,
    ProjectUpdate,
    Task,
    TaskCreate,
    TaskUpdate,
    User,
    UserCreate,
    UserUpdate,
)

EntityT = TypeVar("EntityT")
CreateT = TypeVar("CreateT")
UpdateT = TypeVar("UpdateT")


class Repository(ABC, Generic[EntityT, CreateT, UpdateT]):
    """CRUD collaborator for one entity type.

    Implementations must:
    - assign a fresh unique positive id on ``create``
    - raise NotFoundError from ``get``, ``update`` and ``delete`` for unknown ids
    - merge only the explicitly supplied fields on ``update``
    """

    entity_name: str = "Entity"

    @abstractmethod
    async def list(self) -> list[EntityT]:
        """Return every stored record."""
        pass

    @abstractmethod
    async def get(self, entity_id: int) -> EntityT:
        """Return one record or raise NotFoundError."""
        pass

    @abstractmethod
    async def create(self, data: CreateT) -> EntityT:
        """Store a new record and return it with its assigned id."""
        pass

    @abstractmethod
    async def update(self, entity_id: int, data: UpdateT) -> EntityT:
        """Merge ``data`` into an existing record and return the result."""
        pass

    @abstractmethod
    async def delete(self, entity_id: int) -> bool:
        """Remove a record. Returns True on success."""
        pass


class ProjectRepository(Repository[Project, ProjectCreate, ProjectUpdate]):
    entity_name = "Project"


class ProjectScopedRepository(Repository[EntityT, CreateT, UpdateT]):
    """Repository whose records belong to exactly one project."""

    @abstractmethod
    async def list_by_project(self, project_id: int) -> list[EntityT]:
        """Return the project's records in stored order."""
        pass


class ColumnRepository(ProjectScopedRepository[BoardColumn, ColumnCreate, ColumnUpdate]):
    """Columns are listed ordered by ``position``."""

    entity_name = "Column"


class TaskRepository(ProjectScopedRepository[Task, TaskCreate, TaskUpdate]):
    entity_name = "Task"


class UserRepository(Repository[User, UserCreate, UserUpdate]):
    entity_name = "User"


class CommentRepository(Repository[Comment, CommentCreate, CommentCreate]):
    entity_name = "Comment"

    @abstractmethod
    async def list_by_task(self, task_id: int) -> list[Comment]:
        """Return a task's comments, oldest first."""
        pass


class NotificationRepository(
    Repository[Notification, NotificationCreate, NotificationUpdate]
):
    """``list`` returns notifications newest first."""

    entity_name = "Notification"

    @abstractmethod
    async def mark_all_read(self) -> list[Notification]:
        """Mark every notification read and return the updated list."""
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Delete every notification."""
        pass


class PreferenceRepository(ABC):
    """Single-record store for notification preferences."""

    @abstractmethod
    async def get(self) -> NotificationPreferences:
        pass

    @abstractmethod
    async def update(self, preferences: NotificationPreferences) -> NotificationPreferences:
        pass
