"""Projects API endpoints: projects, their boards, columns and timeline."""

import asyncio
from datetime import date

import structlog
from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from taskboard.api.deps import AppSettings, Repos, get_project, open_board
from taskboard.exceptions import NotFoundError, ValidationFailedError, repository_errors
from taskboard.schemas import (
    BoardColumn,
    ColumnCreate,
    ColumnUpdate,
    Project,
    ProjectCreate,
    ProjectUpdate,
    Task,
    User,
    utcnow,
)
from taskboard.services import compute_task_stats, project_progress, tasks_by_day, week_days
from taskboard.services.statistics import ProjectProgress, TaskStats
from taskboard.services.timeline import TimelineDay

router = APIRouter()
logger = structlog.get_logger()


# Request/Response Models
class ProjectResponse(Project):
    """Project with its derived task statistics."""
    stats: TaskStats
    progress: int
    band: str


class ColumnRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = "#6b7280"


class ColumnView(BaseModel):
    column: BoardColumn
    tasks: list[Task]
    count: int


class BoardResponse(BaseModel):
    project: Project
    columns: list[ColumnView]
    orphans: list[Task]
    users: list[User]
    stats: TaskStats


def _with_stats(project: Project, progress: ProjectProgress) -> ProjectResponse:
    return ProjectResponse(
        **project.model_dump(),
        stats=progress.stats,
        progress=progress.progress,
        band=progress.band,
    )


async def _project_column(repos: Repos, project_id: int, column_id: int) -> BoardColumn:
    with repository_errors("get_column"):
        column = await repos.columns.get(column_id)
    if column.project_id != project_id:
        raise NotFoundError("Column", column_id)
    return column


async def _discard_project(repos: Repos, project_id: int) -> None:
    try:
        for column in await repos.columns.list_by_project(project_id):
            await repos.columns.delete(column.id)
        await repos.projects.delete(project_id)
    except Exception:
        logger.exception("project_cleanup_failed", project_id=project_id)
    else:
        logger.warning("project_creation_rolled_back", project_id=project_id)


@router.get("", response_model=list[ProjectResponse])
async def list_projects(repos: Repos, settings: AppSettings) -> list[ProjectResponse]:
    """List projects with their progress."""
    with repository_errors("list_projects"):
        projects, tasks = await asyncio.gather(repos.projects.list(), repos.tasks.list())
    progress = project_progress(projects, tasks, utcnow(), settings.done_status)
    return [_with_stats(p, pr) for p, pr in zip(projects, progress)]


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate, repos: Repos, settings: AppSettings
) -> Project:
    """Create a project and seed its board with the default columns."""
    with repository_errors("create_project"):
        project = await repos.projects.create(data)
        try:
            for column in settings.default_columns:
                await repos.columns.create(
                    ColumnCreate(
                        project_id=project.id,
                        key=column.key,
                        name=column.name,
                        color=column.color,
                    )
                )
        except Exception:
            # A project without its board is unusable; take it back out
            await _discard_project(repos, project.id)
            raise

    logger.info("project_created", project_id=project.id, members=project.members)
    return project


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project_detail(
    project_id: int, repos: Repos, settings: AppSettings
) -> ProjectResponse:
    project = await get_project(repos, project_id)
    with repository_errors("list_tasks"):
        tasks = await repos.tasks.list_by_project(project_id)
    progress = project_progress([project], tasks, utcnow(), settings.done_status)
    return _with_stats(project, progress[0])


@router.patch("/{project_id}", response_model=Project)
async def update_project(project_id: int, data: ProjectUpdate, repos: Repos) -> Project:
    with repository_errors("update_project"):
        project = await repos.projects.update(project_id, data)
    logger.info("project_updated", project_id=project_id, fields=sorted(data.changes()))
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: int, repos: Repos) -> Response:
    """Delete a project along with its tasks and columns."""
    await get_project(repos, project_id)
    with repository_errors("delete_project"):
        for task in await repos.tasks.list_by_project(project_id):
            await repos.tasks.delete(task.id)
        for column in await repos.columns.list_by_project(project_id):
            await repos.columns.delete(column.id)
        await repos.projects.delete(project_id)

    logger.info("project_deleted", project_id=project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Board
@router.get("/{project_id}/board", response_model=BoardResponse)
async def get_board(project_id: int, repos: Repos, settings: AppSettings) -> BoardResponse:
    """Columns in order, each with its tasks."""
    project = await get_project(repos, project_id)
    board = (await open_board(repos, project)).board
    return BoardResponse(
        project=project,
        columns=[
            ColumnView(column=c, tasks=board.buckets[c.key], count=len(board.buckets[c.key]))
            for c in board.columns
        ],
        orphans=board.orphans,
        users=board.users,
        stats=compute_task_stats(board.tasks(), utcnow(), settings.done_status),
    )


@router.post(
    "/{project_id}/columns",
    response_model=BoardColumn,
    status_code=status.HTTP_201_CREATED,
)
async def create_column(project_id: int, data: ColumnRequest, repos: Repos) -> BoardColumn:
    """Append a column to the project's board."""
    await get_project(repos, project_id)
    with repository_errors("create_column"):
        existing = await repos.columns.list_by_project(project_id)
        if any(c.key == data.key for c in existing):
            raise ValidationFailedError(
                f"Column '{data.key}' already exists on project {project_id}", field="key"
            )
        column = await repos.columns.create(
            ColumnCreate(project_id=project_id, **data.model_dump())
        )

    logger.info("column_created", project_id=project_id, key=column.key)
    return column


@router.patch("/{project_id}/columns/{column_id}", response_model=BoardColumn)
async def update_column(
    project_id: int, column_id: int, data: ColumnUpdate, repos: Repos
) -> BoardColumn:
    """Rename, recolor or reposition a column."""
    await _project_column(repos, project_id, column_id)
    with repository_errors("update_column"):
        return await repos.columns.update(column_id, data)


@router.delete(
    "/{project_id}/columns/{column_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_column(project_id: int, column_id: int, repos: Repos) -> Response:
    """Delete an empty column."""
    column = await _project_column(repos, project_id, column_id)
    with repository_errors("delete_column"):
        tasks = await repos.tasks.list_by_project(project_id)
        remaining = sum(1 for t in tasks if t.status == column.key)
        if remaining:
            raise ValidationFailedError(
                f"Column '{column.key}' still holds {remaining} task(s)", field="key"
            )
        await repos.columns.delete(column_id)

    logger.info("column_deleted", project_id=project_id, key=column.key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/timeline", response_model=list[TimelineDay])
async def get_timeline(
    project_id: int,
    repos: Repos,
    settings: AppSettings,
    week: date | None = Query(None, description="Any day of the week to show"),
) -> list[TimelineDay]:
    """The project's tasks by due day for one Monday-start week."""
    await get_project(repos, project_id)
    with repository_errors("list_tasks"):
        tasks = await repos.tasks.list_by_project(project_id)
    now = utcnow()
    return tasks_by_day(tasks, week_days(week or now.date()), now, settings.done_status)
