"""In-process repositories backed by plain dicts.

Used for tests, demos and the ``memory`` storage backend. An optional
latency makes every call yield to the event loop for a while, so callers
see the same interleavings they would against a networked store.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from taskboard.exceptions import NotFoundError
from taskboard.repositories.base import (
    ColumnRepository,
    CommentRepository,
    CreateT,
    EntityT,
    NotificationRepository,
    PreferenceRepository,
    ProjectRepository,
    Repository,
    TaskRepository,
    UpdateT,
    UserRepository,
)
from taskboard.schemas import (
    BoardColumn,
    ColumnCreate,
    ColumnUpdate,
    Comment,
    CommentCreate,
    Notification,
    NotificationCreate,
    NotificationPreferences,
    Project,
    ProjectCreate,
    Task,
    TaskCreate,
    User,
    UserCreate,
    utcnow,
)


class MemoryRepository(Repository[EntityT, CreateT, UpdateT]):
    """Dict-backed repository; subclasses define how a record is built."""

    entity_type: type

    def __init__(self, records: Iterable[EntityT] = (), latency_ms: int = 0):
        self._records: dict[int, EntityT] = {r.id: r for r in records}
        self._latency = latency_ms / 1000

    async def _roundtrip(self) -> None:
        await asyncio.sleep(self._latency)

    def _next_id(self) -> int:
        return max(self._records, default=0) + 1

    def _require(self, entity_id: int) -> EntityT:
        try:
            return self._records[entity_id]
        except KeyError:
            raise NotFoundError(self.entity_name, entity_id) from None

    def _build(self, entity_id: int, data: CreateT) -> EntityT:
        raise NotImplementedError

    def _merge(self, current: EntityT, changes: dict) -> EntityT:
        return self.entity_type.model_validate({**current.model_dump(), **changes})

    async def list(self) -> list[EntityT]:
        await self._roundtrip()
        return list(self._records.values())

    async def get(self, entity_id: int) -> EntityT:
        await self._roundtrip()
        return self._require(entity_id)

    async def create(self, data: CreateT) -> EntityT:
        await self._roundtrip()
        record = self._build(self._next_id(), data)
        self._records[record.id] = record
        return record

    async def update(self, entity_id: int, data: UpdateT) -> EntityT:
        await self._roundtrip()
        current = self._require(entity_id)
        updated = self._merge(current, data.changes())
        self._records[entity_id] = updated
        return updated

    async def delete(self, entity_id: int) -> bool:
        await self._roundtrip()
        self._require(entity_id)
        del self._records[entity_id]
        return True


class MemoryProjectRepository(MemoryRepository, ProjectRepository):
    entity_type = Project

    def _build(self, entity_id: int, data: ProjectCreate) -> Project:
        return Project(
            id=entity_id,
            name=data.name,
            description=data.description,
            status=data.status,
            members=data.member_ids(),
            created_at=utcnow(),
        )


class MemoryColumnRepository(MemoryRepository, ColumnRepository):
    entity_type = BoardColumn

    def _ordered(self, project_id: int) -> list[BoardColumn]:
        columns = [c for c in self._records.values() if c.project_id == project_id]
        return sorted(columns, key=lambda c: (c.position, c.id))

    def _renumber(self, ordered: list[BoardColumn]) -> None:
        for position, column in enumerate(ordered, start=1):
            if column.position != position:
                self._records[column.id] = column.model_copy(update={"position": position})

    def _build(self, entity_id: int, data: ColumnCreate) -> BoardColumn:
        return BoardColumn(
            id=entity_id,
            project_id=data.project_id,
            key=data.key,
            name=data.name,
            color=data.color,
            position=len(self._ordered(data.project_id)) + 1,
        )

    async def list_by_project(self, project_id: int) -> list[BoardColumn]:
        await self._roundtrip()
        return self._ordered(project_id)

    async def update(self, entity_id: int, data: ColumnUpdate) -> BoardColumn:
        await self._roundtrip()
        current = self._require(entity_id)
        changes = data.changes()
        position = changes.pop("position", None)
        updated = self._merge(current, changes)
        self._records[entity_id] = updated
        if position is not None:
            ordered = [c for c in self._ordered(updated.project_id) if c.id != entity_id]
            ordered.insert(min(position, len(ordered) + 1) - 1, updated)
            self._renumber(ordered)
        return self._records[entity_id]

    async def delete(self, entity_id: int) -> bool:
        await self._roundtrip()
        column = self._require(entity_id)
        del self._records[entity_id]
        self._renumber(self._ordered(column.project_id))
        return True


class MemoryTaskRepository(MemoryRepository, TaskRepository):
    entity_type = Task

    def _build(self, entity_id: int, data: TaskCreate) -> Task:
        status = data.status or "todo"
        positions = [
            t.position
            for t in self._records.values()
            if t.project_id == data.project_id and t.status == status
        ]
        return Task(
            id=entity_id,
            project_id=data.project_id,
            title=data.title,
            description=data.description,
            assignee_id=data.assignee_id,
            priority=data.priority,
            status=status,
            due_date=data.due_date,
            created_at=utcnow(),
            position=max(positions, default=0) + 1,
        )

    async def list_by_project(self, project_id: int) -> list[Task]:
        await self._roundtrip()
        tasks = [t for t in self._records.values() if t.project_id == project_id]
        return sorted(tasks, key=lambda t: (t.position, t.id))


class MemoryUserRepository(MemoryRepository, UserRepository):
    entity_type = User

    def _build(self, entity_id: int, data: UserCreate) -> User:
        return User(id=entity_id, **data.model_dump())


class MemoryCommentRepository(MemoryRepository, CommentRepository):
    entity_type = Comment

    def _build(self, entity_id: int, data: CommentCreate) -> Comment:
        return Comment(id=entity_id, created_at=utcnow(), **data.model_dump())

    async def list_by_task(self, task_id: int) -> list[Comment]:
        await self._roundtrip()
        comments = [c for c in self._records.values() if c.task_id == task_id]
        return sorted(comments, key=lambda c: (c.created_at, c.id))


class MemoryNotificationRepository(MemoryRepository, NotificationRepository):
    entity_type = Notification

    def _build(self, entity_id: int, data: NotificationCreate) -> Notification:
        return Notification(
            id=entity_id,
            is_read=False,
            timestamp=utcnow(),
            **data.model_dump(),
        )

    async def list(self) -> list[Notification]:
        await self._roundtrip()
        return sorted(self._records.values(), key=lambda n: n.timestamp, reverse=True)

    async def mark_all_read(self) -> list[Notification]:
        await self._roundtrip()
        for notification_id, notification in self._records.items():
            if not notification.is_read:
                self._records[notification_id] = notification.model_copy(update={"is_read": True})
        return sorted(self._records.values(), key=lambda n: n.timestamp, reverse=True)

    async def clear(self) -> bool:
        await self._roundtrip()
        self._records.clear()
        return True


class MemoryPreferenceRepository(PreferenceRepository):
    def __init__(self, preferences: NotificationPreferences | None = None, latency_ms: int = 0):
        self._preferences = preferences or NotificationPreferences()
        self._latency = latency_ms / 1000

    async def get(self) -> NotificationPreferences:
        await asyncio.sleep(self._latency)
        return self._preferences

    async def update(self, preferences: NotificationPreferences) -> NotificationPreferences:
        await asyncio.sleep(self._latency)
        self._preferences = preferences
        return preferences
