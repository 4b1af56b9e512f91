"""Dashboard API endpoint."""

import asyncio

from fastapi import APIRouter

from taskboard.api.deps import AppSettings, Repos
from taskboard.exceptions import repository_errors
from taskboard.schemas import utcnow
from taskboard.services import DashboardSummary, dashboard_summary

router = APIRouter()


@router.get("", response_model=DashboardSummary)
async def get_dashboard(repos: Repos, settings: AppSettings) -> DashboardSummary:
    """Totals, charts and recent activity across every project."""
    with repository_errors("load_dashboard"):
        projects, tasks, users = await asyncio.gather(
            repos.projects.list(),
            repos.tasks.list(),
            repos.users.list(),
        )

    return dashboard_summary(
        projects,
        tasks,
        users,
        utcnow(),
        top_projects=settings.top_projects_limit,
        activity_per_project=settings.recent_activity_per_project,
        activity_limit=settings.recent_activity_limit,
        done_status=settings.done_status,
    )
