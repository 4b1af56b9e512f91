"""Tasks API endpoints.

Every task write goes through the project's transition engine so the
board, the repository and the derived notifications stay in step.
"""

import structlog
from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from taskboard.api.deps import Notifications, Repos, get_project, open_board
from taskboard.exceptions import NotFoundError, repository_errors
from taskboard.schemas import Comment, CommentCreate, Task, TaskCreate, TaskUpdate

router = APIRouter()
logger = structlog.get_logger()


# Request/Response Models
class MoveRequest(BaseModel):
    """Target column and, optionally, index within it."""
    status: str = Field(..., min_length=1)
    position: int | None = Field(None, ge=0)


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1)
    user_id: int | None = None


async def _get_task(repos: Repos, task_id: int) -> Task:
    with repository_errors("get_task"):
        return await repos.tasks.get(task_id)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(data: TaskCreate, repos: Repos, notifications: Notifications) -> Task:
    """Create a task; without a status it lands in the board's first column."""
    project = await get_project(repos, data.project_id)
    engine = await open_board(repos, project, notifications)
    return await engine.create_task(data)


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: int, repos: Repos) -> Task:
    return await _get_task(repos, task_id)


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: int, data: TaskUpdate, repos: Repos, notifications: Notifications
) -> Task:
    task = await _get_task(repos, task_id)
    project = await get_project(repos, task.project_id)
    engine = await open_board(repos, project, notifications)
    return await engine.update_task(task_id, data)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, repos: Repos) -> Response:
    task = await _get_task(repos, task_id)
    project = await get_project(repos, task.project_id)
    engine = await open_board(repos, project)
    await engine.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/move", response_model=Task)
async def move_task(
    task_id: int, data: MoveRequest, repos: Repos, notifications: Notifications
) -> Task:
    """Move a task to a different column and optionally a position in it."""
    task = await _get_task(repos, task_id)
    project = await get_project(repos, task.project_id)
    engine = await open_board(repos, project, notifications)
    return await engine.move_task(task_id, data.status, data.position)


# Task Comments
@router.get("/{task_id}/comments", response_model=list[Comment])
async def list_task_comments(task_id: int, repos: Repos) -> list[Comment]:
    await _get_task(repos, task_id)
    with repository_errors("list_comments"):
        return await repos.comments.list_by_task(task_id)


@router.post(
    "/{task_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED
)
async def create_task_comment(task_id: int, data: CommentRequest, repos: Repos) -> Comment:
    await _get_task(repos, task_id)
    with repository_errors("create_comment"):
        comment = await repos.comments.create(
            CommentCreate(task_id=task_id, user_id=data.user_id, content=data.content)
        )

    logger.info("comment_created", task_id=task_id, comment_id=comment.id)
    return comment


@router.delete(
    "/{task_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_task_comment(task_id: int, comment_id: int, repos: Repos) -> Response:
    with repository_errors("delete_comment"):
        comment = await repos.comments.get(comment_id)
        if comment.task_id != task_id:
            raise NotFoundError("Comment", comment_id)
        await repos.comments.delete(comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
