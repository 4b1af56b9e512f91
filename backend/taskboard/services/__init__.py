"""Board, transition, statistics and notification services."""

from taskboard.services.board import Board, BoardAggregator
from taskboard.services.notification import (
    NotificationCenter,
    filter_notifications,
    unread_count,
)
from taskboard.services.statistics import (
    DashboardSummary,
    ProjectProgress,
    TaskStats,
    UserStats,
    compute_task_stats,
    dashboard_summary,
    is_overdue,
    project_progress,
    rank_projects,
    recent_activity,
    team_stats,
    user_stats,
)
from taskboard.services.team import filter_users
from taskboard.services.timeline import tasks_by_day, week_days
from taskboard.services.transitions import BoardEvent, TransitionEngine

__all__ = [
    "Board",
    "BoardAggregator",
    "BoardEvent",
    "DashboardSummary",
    "NotificationCenter",
    "ProjectProgress",
    "TaskStats",
    "TransitionEngine",
    "UserStats",
    "compute_task_stats",
    "dashboard_summary",
    "filter_notifications",
    "filter_users",
    "is_overdue",
    "project_progress",
    "rank_projects",
    "recent_activity",
    "tasks_by_day",
    "team_stats",
    "unread_count",
    "user_stats",
    "week_days",
]
