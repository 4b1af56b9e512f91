"""Team API endpoints."""

import asyncio
from typing import Literal

import structlog
from fastapi import APIRouter, Query, Response, status

from taskboard.api.deps import AppSettings, Repos
from taskboard.exceptions import repository_errors
from taskboard.schemas import User, UserCreate, UserUpdate, utcnow
from taskboard.services import UserStats, filter_users, team_stats

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=list[UserStats])
async def list_team(
    repos: Repos,
    settings: AppSettings,
    search: str = Query("", max_length=255),
    role: Literal["all", "admin", "member", "viewer"] = "all",
) -> list[UserStats]:
    """Team members matching the filters, each with task completion stats."""
    with repository_errors("list_team"):
        users, tasks = await asyncio.gather(repos.users.list(), repos.tasks.list())
    return team_stats(filter_users(users, search, role), tasks, utcnow(), settings.done_status)


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, repos: Repos) -> User:
    with repository_errors("create_user"):
        user = await repos.users.create(data)
    logger.info("user_created", user_id=user.id, role=user.role.value)
    return user


@router.patch("/{user_id}", response_model=User)
async def update_user(user_id: int, data: UserUpdate, repos: Repos) -> User:
    with repository_errors("update_user"):
        return await repos.users.update(user_id, data)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, repos: Repos) -> Response:
    with repository_errors("delete_user"):
        await repos.users.delete(user_id)
    logger.info("user_deleted", user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
