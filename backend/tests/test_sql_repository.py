"""
Tests for the SQLAlchemy repositories against a throwaway SQLite database.
"""
import asyncio
from datetime import datetime, timezone

import pytest

from taskboard.config import Settings
from taskboard.db import close_db, create_engine, create_session_factory, init_db
from taskboard.exceptions import NotFoundError
from taskboard.repositories import sql_repositories
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
    UserCreate,
    UserRole,
    UserUpdate,
)
from taskboard.services import BoardAggregator, TransitionEngine


@pytest.fixture
def run_sql(tmp_path):
    """Run ``scenario(repos)`` against a fresh database in one event loop."""
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}")

    def run(scenario):
        async def main():
            engine = create_engine(settings)
            await init_db(engine)
            try:
                return await scenario(sql_repositories(create_session_factory(engine)))
            finally:
                await close_db(engine)

        return asyncio.run(main())

    return run


async def seed_board(repos, keys=("todo", "inprogress", "done")):
    project = await repos.projects.create(ProjectCreate(name="Apollo"))
    for key in keys:
        await repos.columns.create(ColumnCreate(project_id=project.id, key=key, name=key.title()))
    return project


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Projects and users
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_project_members_round_trip(run_sql):
    async def scenario(repos):
        created = await repos.projects.create(
            ProjectCreate(name="Apollo", members=[2, 3, 2], created_by_id=9)
        )
        updated = await repos.projects.update(created.id, ProjectUpdate(members=[3, 4]))
        return created, updated, await repos.projects.get(created.id)

    created, updated, reloaded = run_sql(scenario)

    assert created.members == [2, 3]
    assert created.created_at.tzinfo is not None
    assert updated.members == [3, 4]
    assert reloaded.members == [3, 4]
    assert reloaded.name == "Apollo"


def test_project_defaults_members_to_creator(run_sql):
    async def scenario(repos):
        return await repos.projects.create(ProjectCreate(name="Solo", created_by_id=9))

    assert run_sql(scenario).members == [9]


def test_user_update(run_sql):
    async def scenario(repos):
        user = await repos.users.create(UserCreate(name="Ada", email="ada@example.com"))
        await repos.users.update(user.id, UserUpdate(role=UserRole.ADMIN))
        return await repos.users.list()

    users = run_sql(scenario)

    assert [(u.name, u.role) for u in users] == [("Ada", UserRole.ADMIN)]


def test_missing_rows_raise_not_found(run_sql):
    async def scenario(repos):
        errors = []
        for call in (repos.tasks.get(99), repos.projects.delete(99), repos.users.update(99, UserUpdate(name="x"))):
            try:
                await call
            except NotFoundError as exc:
                errors.append(exc.entity)
        return errors

    assert run_sql(scenario) == ["Task", "Project", "User"]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Columns and tasks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_column_lifecycle_keeps_positions_dense(run_sql):
    async def scenario(repos):
        project = await seed_board(repos)
        todo, inprogress, done = await repos.columns.list_by_project(project.id)
        await repos.columns.update(done.id, ColumnUpdate(position=1, name="Shipped"))
        reordered = await repos.columns.list_by_project(project.id)
        await repos.columns.delete(todo.id)
        return reordered, await repos.columns.list_by_project(project.id)

    reordered, remaining = run_sql(scenario)

    assert [(c.key, c.position) for c in reordered] == [("done", 1), ("todo", 2), ("inprogress", 3)]
    assert reordered[0].name == "Shipped"
    assert [(c.key, c.position) for c in remaining] == [("done", 1), ("inprogress", 2)]


def test_task_positions_and_ordering(run_sql):
    async def scenario(repos):
        project = await seed_board(repos)
        first = await repos.tasks.create(TaskCreate(project_id=project.id, title="A", status="todo"))
        second = await repos.tasks.create(TaskCreate(project_id=project.id, title="B", status="todo"))
        other = await repos.tasks.create(TaskCreate(project_id=project.id, title="C", status="inprogress"))
        unplaced = await repos.tasks.create(TaskCreate(project_id=project.id, title="D"))
        listed = await repos.tasks.list_by_project(project.id)
        return [first, second, other, unplaced], listed

    created, listed = run_sql(scenario)

    assert [t.position for t in created] == [1, 2, 1, 3]
    assert created[3].status == "todo"
    assert [t.title for t in listed] == ["A", "C", "B", "D"]


def test_task_update_merges_fields(run_sql):
    due = datetime(2024, 6, 14, 17, 0, tzinfo=timezone.utc)

    async def scenario(repos):
        project = await seed_board(repos)
        task = await repos.tasks.create(
            TaskCreate(project_id=project.id, title="Write report", status="todo", due_date=due)
        )
        await repos.tasks.update(task.id, TaskUpdate(priority=Priority.HIGH))
        return await repos.tasks.get(task.id)

    stored = run_sql(scenario)

    assert stored.priority == Priority.HIGH
    assert stored.title == "Write report"
    assert stored.due_date == due


def test_comments_listed_by_task(run_sql):
    async def scenario(repos):
        project = await seed_board(repos)
        task = await repos.tasks.create(TaskCreate(project_id=project.id, title="A"))
        await repos.comments.create(CommentCreate(task_id=task.id, content="First"))
        await repos.comments.create(CommentCreate(task_id=task.id, content="Second"))
        return await repos.comments.list_by_task(task.id)

    assert [c.content for c in run_sql(scenario)] == ["First", "Second"]


def test_engine_move_is_persisted(run_sql):
    """Test a board move through the engine lands in the database"""

    async def scenario(repos):
        project = await seed_board(repos)
        task = await repos.tasks.create(TaskCreate(project_id=project.id, title="A"))
        await repos.tasks.create(TaskCreate(project_id=project.id, title="B", status="done"))

        board = await BoardAggregator(repos.columns, repos.tasks, repos.users).load_board(project.id)
        engine = TransitionEngine(board, repos.tasks)
        await engine.move_task(task.id, "done")
        return task.id, await repos.tasks.get(task.id)

    task_id, stored = run_sql(scenario)

    assert stored.id == task_id
    assert stored.status == "done"
    assert stored.position == 2


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Notifications and preferences
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_notifications_newest_first_and_bulk_operations(run_sql):
    async def scenario(repos):
        for title in ("First", "Second", "Third"):
            await repos.notifications.create(NotificationCreate(title=title))
        listed = await repos.notifications.list()
        marked = await repos.notifications.mark_all_read()
        await repos.notifications.clear()
        return listed, marked, await repos.notifications.list()

    listed, marked, cleared = run_sql(scenario)

    assert [n.title for n in listed] == ["Third", "Second", "First"]
    assert not any(n.is_read for n in listed)
    assert all(n.is_read for n in marked)
    assert cleared == []


def test_preferences_default_then_persisted(run_sql):
    async def scenario(repos):
        before = await repos.preferences.get()
        await repos.preferences.update(
            NotificationPreferences(do_not_disturb=True, deadlines=DeliveryChannels(push=False))
        )
        await repos.preferences.update(
            NotificationPreferences(do_not_disturb=True, deadlines=DeliveryChannels(in_app=False))
        )
        return before, await repos.preferences.get()

    before, after = run_sql(scenario)

    assert before == NotificationPreferences()
    assert after.do_not_disturb is True
    assert after.deadlines == DeliveryChannels(in_app=False)
    assert after.tasks == DeliveryChannels()
