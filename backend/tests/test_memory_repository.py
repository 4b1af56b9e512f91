"""
Tests for the in-process repositories.
"""
import asyncio

import pytest
from pydantic import ValidationError

from taskboard.config import Settings
from taskboard.exceptions import NotFoundError
from taskboard.repositories import build_repositories
from taskboard.repositories.memory import (
    MemoryColumnRepository,
    MemoryCommentRepository,
    MemoryNotificationRepository,
    MemoryPreferenceRepository,
    MemoryProjectRepository,
    MemoryTaskRepository,
)
from taskboard.schemas import (
    ColumnCreate,
    ColumnUpdate,
    CommentCreate,
    DeliveryChannels,
    NotificationCreate,
    NotificationPreferences,
    Priority,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
    UserUpdate,
)


def test_create_assigns_next_id_and_stamps_created_at(tasks):
    repo = MemoryTaskRepository(tasks)

    created = asyncio.run(repo.create(TaskCreate(project_id=1, title="New", status="todo")))

    assert created.id == 5
    assert created.created_at.tzinfo is not None
    assert asyncio.run(repo.get(5)) == created


def test_task_position_is_end_of_bucket(tasks):
    repo = MemoryTaskRepository(tasks)

    in_todo = asyncio.run(repo.create(TaskCreate(project_id=1, title="A", status="todo")))
    in_review = asyncio.run(repo.create(TaskCreate(project_id=1, title="B", status="inprogress")))

    assert in_todo.position == 3
    assert in_review.position == 1


def test_list_by_project_orders_by_position(tasks):
    repo = MemoryTaskRepository(tasks)

    listed = asyncio.run(repo.list_by_project(1))

    assert [t.id for t in listed] == [1, 2, 3]
    assert asyncio.run(repo.list_by_project(99)) == []


def test_update_merges_only_supplied_fields(tasks):
    repo = MemoryTaskRepository(tasks)

    updated = asyncio.run(repo.update(2, TaskUpdate(priority=Priority.HIGH)))

    assert updated.priority == Priority.HIGH
    assert updated.title == "Build prototype"
    assert updated.assignee_id == 2


def test_update_explicit_none_clears_field(tasks):
    repo = MemoryTaskRepository(tasks)

    updated = asyncio.run(repo.update(2, TaskUpdate(assignee_id=None, due_date=None)))

    assert updated.assignee_id is None
    assert updated.due_date is None


def test_missing_ids_raise_not_found(tasks):
    repo = MemoryTaskRepository(tasks)

    for call in (repo.get(42), repo.update(42, TaskUpdate(title="x")), repo.delete(42)):
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(call)
        assert exc_info.value.entity == "Task"


def test_delete_returns_true(tasks):
    repo = MemoryTaskRepository(tasks)

    assert asyncio.run(repo.delete(3)) is True
    assert [t.id for t in asyncio.run(repo.list())] == [1, 2, 4]


def test_project_members_default_to_creator():
    repo = MemoryProjectRepository()

    solo = asyncio.run(repo.create(ProjectCreate(name="Solo", created_by_id=7)))
    team = asyncio.run(repo.create(ProjectCreate(name="Team", members=[2, 3, 2], created_by_id=7)))
    nobody = asyncio.run(repo.create(ProjectCreate(name="Unowned")))

    assert solo.members == [7]
    assert team.members == [2, 3]
    assert nobody.members == []


def test_project_update_dedupes_members(projects):
    repo = MemoryProjectRepository(projects)

    updated = asyncio.run(repo.update(1, ProjectUpdate(members=[2, 1, 2])))

    assert updated.members == [2, 1]
    assert updated.name == "Apollo"


def test_updates_reject_null_for_required_fields(projects):
    repo = MemoryProjectRepository(projects)

    with pytest.raises(ValidationError):
        ProjectUpdate(members=None)
    with pytest.raises(ValidationError):
        UserUpdate(name=None)
    with pytest.raises(ValidationError):
        ColumnUpdate(position=None)

    unchanged = asyncio.run(repo.update(1, ProjectUpdate()))
    assert unchanged.members == [1, 2]


def test_column_positions_are_dense(columns):
    repo = MemoryColumnRepository(columns)

    review = asyncio.run(
        repo.create(ColumnCreate(project_id=1, key="review", name="Review"))
    )
    assert review.position == 4

    asyncio.run(repo.delete(2))
    listed = asyncio.run(repo.list_by_project(1))

    assert [c.key for c in listed] == ["todo", "done", "review"]
    assert [c.position for c in listed] == [1, 2, 3]


def test_column_reposition(columns):
    repo = MemoryColumnRepository(columns)

    moved = asyncio.run(repo.update(3, ColumnUpdate(position=1)))
    listed = asyncio.run(repo.list_by_project(1))

    assert moved.position == 1
    assert [c.key for c in listed] == ["done", "todo", "inprogress"]
    assert [c.position for c in listed] == [1, 2, 3]
    assert [c.position for c in asyncio.run(repo.list_by_project(2))] == [1, 2, 3]


def test_comments_listed_by_task():
    repo = MemoryCommentRepository()
    asyncio.run(repo.create(CommentCreate(task_id=1, user_id=1, content="First")))
    asyncio.run(repo.create(CommentCreate(task_id=2, user_id=1, content="Other task")))
    asyncio.run(repo.create(CommentCreate(task_id=1, user_id=2, content="Second")))

    comments = asyncio.run(repo.list_by_task(1))

    assert [c.content for c in comments] == ["First", "Second"]


def test_notifications_newest_first(notifications):
    repo = MemoryNotificationRepository(notifications)

    assert [n.id for n in asyncio.run(repo.list())] == [2, 3, 1]

    created = asyncio.run(repo.create(NotificationCreate(title="Fresh")))
    assert asyncio.run(repo.list())[0].id == created.id


def test_notifications_mark_all_read_and_clear(notifications):
    repo = MemoryNotificationRepository(notifications)

    marked = asyncio.run(repo.mark_all_read())
    assert all(n.is_read for n in marked)

    assert asyncio.run(repo.clear()) is True
    assert asyncio.run(repo.list()) == []


def test_preferences_round_trip():
    repo = MemoryPreferenceRepository()
    assert asyncio.run(repo.get()) == NotificationPreferences()

    prefs = NotificationPreferences(sound_enabled=False, team=DeliveryChannels(email=False))
    asyncio.run(repo.update(prefs))

    stored = asyncio.run(repo.get())
    assert stored.sound_enabled is False
    assert stored.team.email is False
    assert stored.team.in_app is True


def test_build_repositories_memory_backend():
    repos = build_repositories(Settings(storage_backend="memory"))

    assert asyncio.run(repos.projects.list()) == []
    assert asyncio.run(repos.preferences.get()).enabled is True


def test_build_repositories_sql_requires_session_factory():
    with pytest.raises(ValueError):
        build_repositories(Settings(storage_backend="sql"))
