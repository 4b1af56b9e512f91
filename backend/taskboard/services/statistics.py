"""Derived statistics over a snapshot of projects, tasks and users.

Nothing here fetches or stores anything: every function takes the data it
needs plus ``now`` and returns fresh values, so the numbers are always
consistent with the snapshot they were computed from.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field

from taskboard.schemas import Priority, Project, ProjectStatus, Task, User

DONE_STATUS = "done"


# --- Schemas ---


class TaskStats(BaseModel):
    """Completion counts for a set of tasks."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    completed: int = 0
    overdue: int = 0

    @computed_field
    @property
    def in_progress(self) -> int:
        return self.total - self.completed - self.overdue

    @computed_field
    @property
    def progress(self) -> int:
        """Percentage of completed tasks, 0 for an empty set."""
        return percentage(self.completed, self.total)


class ProjectProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: int
    name: str
    status: ProjectStatus
    stats: TaskStats

    @computed_field
    @property
    def progress(self) -> int:
        return self.stats.progress

    @computed_field
    @property
    def band(self) -> str:
        return progress_band(self.stats.progress)


class UserStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: User
    stats: TaskStats

    @computed_field
    @property
    def completion_rate(self) -> int:
        return self.stats.progress


class ActivityItem(BaseModel):
    """A recently created task as shown in the activity feed."""
    task_id: int
    title: str
    status: str
    priority: Priority
    created_at: datetime
    project_id: int
    project_name: str | None
    assignee_name: str | None


class ProgressSeries(BaseModel):
    """Bar chart data aligned to a ranked project list."""
    categories: list[str]
    values: list[int]


class DashboardSummary(BaseModel):
    total_projects: int
    active_projects: int
    total_tasks: int
    completed_tasks: int
    overdue_tasks: int
    team_members: int
    completion_rate: int
    distribution: list[int]  # done, in progress, overdue
    top_projects: list[ProjectProgress]
    progress_series: ProgressSeries
    recent_activity: list[ActivityItem]


# --- Helper Functions ---


def percentage(part: int, total: int) -> int:
    """Rounded percentage with halves rounded up; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return math.floor(100 * part / total + 0.5)


def progress_band(progress: int) -> str:
    """Display band for a progress percentage."""
    if progress >= 80:
        return "success"
    if progress >= 50:
        return "primary"
    if progress >= 20:
        return "warning"
    return "error"


def is_overdue(task: Task, now: datetime, done_status: str = DONE_STATUS) -> bool:
    """Due in the past and not done. A done task is never overdue."""
    return task.due_date is not None and task.due_date < now and task.status != done_status


def compute_task_stats(
    tasks: Iterable[Task], now: datetime, done_status: str = DONE_STATUS
) -> TaskStats:
    total = completed = overdue = 0
    for task in tasks:
        total += 1
        if task.status == done_status:
            completed += 1
        elif is_overdue(task, now, done_status):
            overdue += 1
    return TaskStats(total=total, completed=completed, overdue=overdue)


def _tasks_by_project(tasks: Iterable[Task]) -> dict[int, list[Task]]:
    grouped: dict[int, list[Task]] = {}
    for task in tasks:
        grouped.setdefault(task.project_id, []).append(task)
    return grouped


def project_progress(
    projects: Sequence[Project],
    tasks: Iterable[Task],
    now: datetime,
    done_status: str = DONE_STATUS,
) -> list[ProjectProgress]:
    """Per-project stats, in the order ``projects`` is given."""
    grouped = _tasks_by_project(tasks)
    return [
        ProjectProgress(
            project_id=project.id,
            name=project.name,
            status=project.status,
            stats=compute_task_stats(grouped.get(project.id, []), now, done_status),
        )
        for project in projects
    ]


def user_stats(
    user: User, tasks: Iterable[Task], now: datetime, done_status: str = DONE_STATUS
) -> UserStats:
    assigned = [t for t in tasks if t.assignee_id == user.id]
    return UserStats(user=user, stats=compute_task_stats(assigned, now, done_status))


def team_stats(
    users: Sequence[User],
    tasks: Iterable[Task],
    now: datetime,
    done_status: str = DONE_STATUS,
) -> list[UserStats]:
    tasks = list(tasks)
    return [user_stats(user, tasks, now, done_status) for user in users]


def rank_projects(
    progress: Sequence[ProjectProgress], limit: int | None = None
) -> list[ProjectProgress]:
    """Highest progress first; equal progress keeps input order."""
    ranked = sorted(progress, key=lambda p: -p.progress)
    return ranked if limit is None else ranked[:limit]


def recent_activity(
    projects: Sequence[Project],
    tasks: Iterable[Task],
    users: Sequence[User] = (),
    per_project: int = 3,
    limit: int = 8,
) -> list[ActivityItem]:
    """Newest tasks across projects.

    Selection is two-stage: the ``per_project`` newest tasks of each
    project, then the ``limit`` newest of those. A project with many recent
    tasks contributes at most ``per_project`` items.
    """
    grouped = _tasks_by_project(tasks)
    names = {user.id: user.name for user in users}

    candidates: list[ActivityItem] = []
    for project in projects:
        newest = sorted(
            grouped.get(project.id, []), key=lambda t: t.created_at, reverse=True
        )[:per_project]
        candidates.extend(
            ActivityItem(
                task_id=task.id,
                title=task.title,
                status=task.status,
                priority=task.priority,
                created_at=task.created_at,
                project_id=project.id,
                project_name=project.name,
                assignee_name=names.get(task.assignee_id),
            )
            for task in newest
        )

    candidates.sort(key=lambda item: item.created_at, reverse=True)
    return candidates[:limit]


def completion_distribution(stats: TaskStats) -> list[int]:
    """[done, in progress, overdue] counts for a donut chart."""
    return [stats.completed, stats.in_progress, stats.overdue]


def progress_series(ranked: Sequence[ProjectProgress]) -> ProgressSeries:
    return ProgressSeries(
        categories=[p.name for p in ranked],
        values=[p.progress for p in ranked],
    )


def dashboard_summary(
    projects: Sequence[Project],
    tasks: Sequence[Task],
    users: Sequence[User],
    now: datetime,
    top_projects: int = 5,
    activity_per_project: int = 3,
    activity_limit: int = 8,
    done_status: str = DONE_STATUS,
) -> DashboardSummary:
    """Everything the dashboard shows, from one snapshot."""
    overall = compute_task_stats(tasks, now, done_status)
    ranked = rank_projects(
        project_progress(projects, tasks, now, done_status), limit=top_projects
    )
    return DashboardSummary(
        total_projects=len(projects),
        active_projects=sum(1 for p in projects if p.status == ProjectStatus.ACTIVE),
        total_tasks=overall.total,
        completed_tasks=overall.completed,
        overdue_tasks=overall.overdue,
        team_members=len(users),
        completion_rate=overall.progress,
        distribution=completion_distribution(overall),
        top_projects=ranked,
        progress_series=progress_series(ranked),
        recent_activity=recent_activity(
            projects, tasks, users, per_project=activity_per_project, limit=activity_limit
        ),
    )
