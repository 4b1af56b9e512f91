"""Shared test fixtures for taskboard tests."""

from datetime import datetime, timedelta, timezone

import pytest

from taskboard.repositories import Repositories
from taskboard.repositories.memory import (
    MemoryColumnRepository,
    MemoryCommentRepository,
    MemoryNotificationRepository,
    MemoryPreferenceRepository,
    MemoryProjectRepository,
    MemoryTaskRepository,
    MemoryUserRepository,
)
from taskboard.schemas import (
    BoardColumn,
    Notification,
    NotificationType,
    Priority,
    Project,
    Task,
    User,
    UserRole,
)

NOW = datetime.now(timezone.utc).replace(microsecond=0)


class RecordingTaskRepository(MemoryTaskRepository):
    """Task store that records writes and can be told to reject them."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: list[tuple[str, int | None]] = []
        self.fail = False
        self.fail_ids: set[int] = set()

    def set_latency(self, latency_ms: int) -> None:
        self._latency = latency_ms / 1000

    def _check(self, operation: str, task_id: int | None) -> None:
        self.calls.append((operation, task_id))
        if self.fail or task_id in self.fail_ids:
            raise ConnectionError("task store unavailable")

    async def create(self, data):
        self._check("create", None)
        return await super().create(data)

    async def update(self, entity_id, data):
        self._check("update", entity_id)
        return await super().update(entity_id, data)

    async def delete(self, entity_id):
        self._check("delete", entity_id)
        return await super().delete(entity_id)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Sample data
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def users() -> list[User]:
    return [
        User(id=1, name="Ada Lovelace", email="ada@example.com", role=UserRole.ADMIN),
        User(id=2, name="Grace Hopper", email="grace@example.com", role=UserRole.MEMBER),
        User(id=3, name="Linus Pauling", email="linus@chem.org", role=UserRole.VIEWER),
    ]


@pytest.fixture
def projects() -> list[Project]:
    return [
        Project(id=1, name="Apollo", members=[1, 2], created_at=NOW - timedelta(days=30)),
        Project(id=2, name="Borealis", members=[3], created_at=NOW - timedelta(days=20)),
    ]


@pytest.fixture
def columns() -> list[BoardColumn]:
    result = []
    for project_id in (1, 2):
        for position, (key, name) in enumerate(
            [("todo", "To Do"), ("inprogress", "In Progress"), ("done", "Done")], start=1
        ):
            result.append(
                BoardColumn(
                    id=len(result) + 1,
                    project_id=project_id,
                    key=key,
                    name=name,
                    position=position,
                )
            )
    return result


@pytest.fixture
def tasks() -> list[Task]:
    """Project 1 holds A (done, due yesterday), B (todo, due yesterday), C (todo, due tomorrow)."""
    return [
        Task(
            id=1,
            project_id=1,
            title="Draft proposal",
            status="done",
            assignee_id=1,
            priority=Priority.HIGH,
            due_date=NOW - timedelta(days=1),
            created_at=NOW - timedelta(days=3),
            position=1,
        ),
        Task(
            id=2,
            project_id=1,
            title="Build prototype",
            status="todo",
            assignee_id=2,
            due_date=NOW - timedelta(days=1),
            created_at=NOW - timedelta(days=2),
            position=1,
        ),
        Task(
            id=3,
            project_id=1,
            title="Run user study",
            status="todo",
            priority=Priority.LOW,
            due_date=NOW + timedelta(days=1),
            created_at=NOW - timedelta(days=1),
            position=2,
        ),
        Task(
            id=4,
            project_id=2,
            title="Collect samples",
            status="inprogress",
            assignee_id=3,
            created_at=NOW - timedelta(days=5),
            position=1,
        ),
    ]


@pytest.fixture
def notifications() -> list[Notification]:
    return [
        Notification(
            id=1,
            title="Welcome",
            type=NotificationType.SYSTEM,
            is_read=True,
            timestamp=NOW - timedelta(hours=5),
        ),
        Notification(
            id=2,
            title="Task assigned",
            type=NotificationType.TASK_ASSIGNMENT,
            timestamp=NOW - timedelta(hours=1),
            project="Apollo",
            assignee="Grace Hopper",
        ),
        Notification(
            id=3,
            title="Deadline tomorrow",
            type=NotificationType.DEADLINE_REMINDER,
            timestamp=NOW - timedelta(hours=3),
        ),
    ]


@pytest.fixture
def task_repo(tasks) -> RecordingTaskRepository:
    return RecordingTaskRepository(tasks)


@pytest.fixture
def repos(projects, columns, task_repo, users, notifications) -> Repositories:
    return Repositories(
        projects=MemoryProjectRepository(projects),
        columns=MemoryColumnRepository(columns),
        tasks=task_repo,
        users=MemoryUserRepository(users),
        comments=MemoryCommentRepository(),
        notifications=MemoryNotificationRepository(notifications),
        preferences=MemoryPreferenceRepository(),
    )
