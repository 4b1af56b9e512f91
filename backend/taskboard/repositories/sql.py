"""SQLAlchemy-backed repositories.

Each call runs in its own session and commits before returning, so a
record handed back to the caller is already durable. ORM rows are
converted to frozen schema records at the boundary; nothing outside this
module sees a live ORM object.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard.db.session import session_scope
from taskboard.exceptions import NotFoundError
from taskboard.models import (
    BoardColumn as BoardColumnRow,
    Notification as NotificationRow,
    NotificationPreference as NotificationPreferenceRow,
    Project as ProjectRow,
    ProjectMember,
    Task as TaskRow,
    TaskComment as TaskCommentRow,
    User as UserRow,
)
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
from taskboard.schemas import (
    BoardColumn,
    ColumnCreate,
    Comment,
    Notification,
    NotificationCreate,
    NotificationPreferences,
    Project,
    ProjectCreate,
    Task,
    TaskCreate,
    User,
)


def _plain(values: dict[str, Any]) -> dict[str, Any]:
    """Replace enum members with their stored values."""
    return {k: v.value if isinstance(v, Enum) else v for k, v in values.items()}


class SqlRepository(Repository):
    """Generic CRUD over one ORM model."""

    model: type
    schema: type

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _to_schema(self, row: Any) -> Any:
        return self.schema.model_validate(row)

    def _list_query(self):
        return select(self.model).order_by(self.model.id)

    async def _build(self, session: AsyncSession, data: Any) -> Any:
        return self.model(**_plain(data.model_dump()))

    async def _apply(self, session: AsyncSession, row: Any, changes: dict[str, Any]) -> None:
        for field, value in _plain(changes).items():
            setattr(row, field, value)

    async def _load(self, session: AsyncSession, entity_id: int) -> Any:
        row = await session.get(self.model, entity_id)
        if row is None:
            raise NotFoundError(self.entity_name, entity_id)
        return row

    async def list(self) -> list:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(self._list_query())
            return [self._to_schema(row) for row in result.scalars().all()]

    async def get(self, entity_id: int) -> Any:
        async with session_scope(self._session_factory) as session:
            return self._to_schema(await self._load(session, entity_id))

    async def create(self, data: Any) -> Any:
        async with session_scope(self._session_factory) as session:
            row = await self._build(session, data)
            session.add(row)
            await session.flush()
            return self._to_schema(row)

    async def update(self, entity_id: int, data: Any) -> Any:
        async with session_scope(self._session_factory) as session:
            row = await self._load(session, entity_id)
            await self._apply(session, row, data.changes())
            await session.flush()
            return self._to_schema(row)

    async def delete(self, entity_id: int) -> bool:
        async with session_scope(self._session_factory) as session:
            row = await self._load(session, entity_id)
            await session.delete(row)
            await session.flush()
            return True


class SqlProjectRepository(SqlRepository, ProjectRepository):
    model = ProjectRow
    schema = Project

    async def _build(self, session: AsyncSession, data: ProjectCreate) -> ProjectRow:
        return ProjectRow(
            name=data.name,
            description=data.description,
            status=data.status.value,
            member_links=[ProjectMember(user_id=user_id) for user_id in data.member_ids()],
        )

    async def _apply(self, session: AsyncSession, row: ProjectRow, changes: dict[str, Any]) -> None:
        members = changes.pop("members", None)
        await super()._apply(session, row, changes)
        if members is None:
            return
        # Keep surviving links so the unique (project, user) pair is never re-inserted
        keep = [link for link in row.member_links if link.user_id in members]
        existing = {link.user_id for link in keep}
        row.member_links = keep + [
            ProjectMember(user_id=user_id) for user_id in members if user_id not in existing
        ]


class SqlColumnRepository(SqlRepository, ColumnRepository):
    model = BoardColumnRow
    schema = BoardColumn

    async def _ordered(self, session: AsyncSession, project_id: int) -> list[BoardColumnRow]:
        result = await session.execute(
            select(BoardColumnRow)
            .where(BoardColumnRow.project_id == project_id)
            .order_by(BoardColumnRow.position.asc(), BoardColumnRow.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _renumber(ordered: list[BoardColumnRow]) -> None:
        for position, row in enumerate(ordered, start=1):
            row.position = position

    async def _build(self, session: AsyncSession, data: ColumnCreate) -> BoardColumnRow:
        count = await session.scalar(
            select(func.count(BoardColumnRow.id)).where(
                BoardColumnRow.project_id == data.project_id
            )
        )
        return BoardColumnRow(**data.model_dump(), position=(count or 0) + 1)

    async def _apply(self, session: AsyncSession, row: BoardColumnRow, changes: dict[str, Any]) -> None:
        position = changes.pop("position", None)
        await super()._apply(session, row, changes)
        if position is not None:
            ordered = [c for c in await self._ordered(session, row.project_id) if c.id != row.id]
            ordered.insert(min(position, len(ordered) + 1) - 1, row)
            self._renumber(ordered)

    async def list_by_project(self, project_id: int) -> list[BoardColumn]:
        async with session_scope(self._session_factory) as session:
            return [self._to_schema(row) for row in await self._ordered(session, project_id)]

    async def delete(self, entity_id: int) -> bool:
        async with session_scope(self._session_factory) as session:
            row = await self._load(session, entity_id)
            project_id = row.project_id
            await session.delete(row)
            await session.flush()
            self._renumber(await self._ordered(session, project_id))
            return True


class SqlTaskRepository(SqlRepository, TaskRepository):
    model = TaskRow
    schema = Task

    async def _build(self, session: AsyncSession, data: TaskCreate) -> TaskRow:
        status = data.status or "todo"
        max_position = await session.scalar(
            select(func.max(TaskRow.position)).where(
                TaskRow.project_id == data.project_id,
                TaskRow.status == status,
            )
        )
        values = _plain(data.model_dump(exclude={"status"}))
        return TaskRow(**values, status=status, position=(max_position or 0) + 1)

    async def list_by_project(self, project_id: int) -> list[Task]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(TaskRow)
                .where(TaskRow.project_id == project_id)
                .order_by(TaskRow.position.asc(), TaskRow.id.asc())
            )
            return [self._to_schema(row) for row in result.scalars().all()]


class SqlUserRepository(SqlRepository, UserRepository):
    model = UserRow
    schema = User


class SqlCommentRepository(SqlRepository, CommentRepository):
    model = TaskCommentRow
    schema = Comment

    async def list_by_task(self, task_id: int) -> list[Comment]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(TaskCommentRow)
                .where(TaskCommentRow.task_id == task_id)
                .order_by(TaskCommentRow.created_at.asc(), TaskCommentRow.id.asc())
            )
            return [self._to_schema(row) for row in result.scalars().all()]


class SqlNotificationRepository(SqlRepository, NotificationRepository):
    model = NotificationRow
    schema = Notification

    def _list_query(self):
        return select(NotificationRow).order_by(
            NotificationRow.timestamp.desc(), NotificationRow.id.asc()
        )

    async def _build(self, session: AsyncSession, data: NotificationCreate) -> NotificationRow:
        return NotificationRow(**_plain(data.model_dump()), is_read=False)

    async def mark_all_read(self) -> list[Notification]:
        async with session_scope(self._session_factory) as session:
            await session.execute(
                sql_update(NotificationRow)
                .where(NotificationRow.is_read.is_(False))
                .values(is_read=True)
            )
        return await self.list()

    async def clear(self) -> bool:
        async with session_scope(self._session_factory) as session:
            await session.execute(sql_delete(NotificationRow))
        return True


class SqlPreferenceRepository(PreferenceRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _current(self, session: AsyncSession) -> NotificationPreferenceRow | None:
        result = await session.execute(
            select(NotificationPreferenceRow).order_by(NotificationPreferenceRow.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def get(self) -> NotificationPreferences:
        async with session_scope(self._session_factory) as session:
            row = await self._current(session)
            if row is None:
                return NotificationPreferences()
            return NotificationPreferences.model_validate(row)

    async def update(self, preferences: NotificationPreferences) -> NotificationPreferences:
        async with session_scope(self._session_factory) as session:
            row = await self._current(session)
            if row is None:
                row = NotificationPreferenceRow()
                session.add(row)
            for field, value in preferences.model_dump().items():
                setattr(row, field, value)
            await session.flush()
            return NotificationPreferences.model_validate(row)
