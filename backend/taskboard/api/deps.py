"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from taskboard.config import Settings
from taskboard.exceptions import repository_errors
from taskboard.repositories import Repositories
from taskboard.schemas import Project
from taskboard.services import BoardAggregator, NotificationCenter, TransitionEngine


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


Repos = Annotated[Repositories, Depends(get_repositories)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]


def get_notification_center(repos: Repos, settings: AppSettings) -> NotificationCenter:
    return NotificationCenter(
        repos.notifications,
        preferences=repos.preferences,
        done_status=settings.done_status,
    )


Notifications = Annotated[NotificationCenter, Depends(get_notification_center)]


async def get_project(repos: Repositories, project_id: int) -> Project:
    """Fetch a project, raising NotFoundError when it does not exist."""
    with repository_errors("get_project"):
        return await repos.projects.get(project_id)


async def open_board(
    repos: Repositories,
    project: Project,
    notifications: NotificationCenter | None = None,
) -> TransitionEngine:
    """Load a project's board and return the engine that writes to it.

    When ``notifications`` is given, confirmed task writes are turned into
    notifications.
    """
    board = await BoardAggregator(repos.columns, repos.tasks, repos.users).load_board(
        project.id
    )
    engine = TransitionEngine(board, repos.tasks)
    if notifications is not None:
        engine.subscribe(
            lambda event: notifications.handle_board_event(event, project.name, board.users)
        )
    return engine
