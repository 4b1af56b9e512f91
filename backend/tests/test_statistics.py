"""
Tests for derived statistics: progress, overdue counts, ranking and activity.
"""
from datetime import timedelta

import pytest

from taskboard.schemas import Project, ProjectStatus, Task
from taskboard.services import (
    compute_task_stats,
    dashboard_summary,
    is_overdue,
    project_progress,
    rank_projects,
    recent_activity,
    team_stats,
    user_stats,
)
from taskboard.services.statistics import (
    ProjectProgress,
    TaskStats,
    completion_distribution,
    percentage,
    progress_band,
    progress_series,
)


def make_task(task_id, now, status="todo", project_id=1, **fields) -> Task:
    fields.setdefault("created_at", now - timedelta(days=task_id))
    return Task(
        id=task_id,
        project_id=project_id,
        title=f"Task {task_id}",
        status=status,
        **fields,
    )


def ranked_entry(project_id, name, completed, total) -> ProjectProgress:
    return ProjectProgress(
        project_id=project_id,
        name=name,
        status=ProjectStatus.ACTIVE,
        stats=TaskStats(total=total, completed=completed),
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Task stats
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_project_example_counts(tasks, now):
    """Test done/overdue/upcoming tasks give 1 completed, 1 overdue, 33%"""
    stats = compute_task_stats([t for t in tasks if t.project_id == 1], now)

    assert stats.total == 3
    assert stats.completed == 1
    assert stats.overdue == 1
    assert stats.in_progress == 1
    assert stats.progress == 33
    assert completion_distribution(stats) == [1, 1, 1]


def test_empty_task_set_has_zero_progress(now):
    stats = compute_task_stats([], now)

    assert stats.progress == 0
    assert completion_distribution(stats) == [0, 0, 0]


def test_done_task_is_never_overdue(now):
    """Test a completed task past its due date counts only as completed"""
    late_but_done = make_task(1, now, status="done", due_date=now - timedelta(days=7))

    stats = compute_task_stats([late_but_done], now)

    assert not is_overdue(late_but_done, now)
    assert stats.completed == 1
    assert stats.overdue == 0


def test_undated_task_is_never_overdue(now):
    assert not is_overdue(make_task(1, now), now)


def test_custom_done_status(now):
    shipped = make_task(1, now, status="shipped", due_date=now - timedelta(days=1))

    stats = compute_task_stats([shipped], now, done_status="shipped")

    assert stats.completed == 1
    assert stats.overdue == 0


def test_progress_never_decreases_when_a_task_is_completed(now):
    """Test marking tasks done one at a time only ever raises progress"""
    snapshot = [
        make_task(i, now, due_date=now - timedelta(days=1) if i % 2 else None)
        for i in range(1, 8)
    ]
    previous = compute_task_stats(snapshot, now).progress

    for index in range(len(snapshot)):
        snapshot[index] = snapshot[index].model_copy(update={"status": "done"})
        current = compute_task_stats(snapshot, now).progress
        assert 0 <= current <= 100
        assert current >= previous
        previous = current

    assert previous == 100


@pytest.mark.parametrize(
    "part,total,expected",
    [(0, 0, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 2, 50), (5, 5, 100)],
)
def test_percentage_rounds_half_up(part, total, expected):
    assert percentage(part, total) == expected


@pytest.mark.parametrize(
    "progress,band",
    [(100, "success"), (80, "success"), (79, "primary"), (50, "primary"), (20, "warning"), (19, "error"), (0, "error")],
)
def test_progress_band(progress, band):
    assert progress_band(progress) == band


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Projects and users
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_project_progress_follows_project_order(projects, tasks, now):
    progress = project_progress(projects, tasks, now)

    assert [p.project_id for p in progress] == [1, 2]
    assert progress[0].progress == 33
    assert progress[0].band == "warning"
    assert progress[1].stats.total == 1
    assert progress[1].progress == 0


def test_project_without_tasks_has_zero_progress(now):
    progress = project_progress([Project(id=7, name="Empty")], [], now)

    assert progress[0].progress == 0


def test_rank_projects_is_stable_for_ties():
    """Test projects with equal progress keep their input order"""
    entries = [
        ranked_entry(1, "Alpha", 1, 2),
        ranked_entry(2, "Beta", 3, 4),
        ranked_entry(3, "Gamma", 2, 4),
        ranked_entry(4, "Delta", 0, 0),
    ]

    ranked = rank_projects(entries)

    assert [p.name for p in ranked] == ["Beta", "Alpha", "Gamma", "Delta"]


def test_rank_projects_limit():
    entries = [ranked_entry(i, f"P{i}", i, 10) for i in range(1, 8)]

    ranked = rank_projects(entries, limit=5)

    assert [p.project_id for p in ranked] == [7, 6, 5, 4, 3]


def test_progress_series_aligns_with_ranking():
    ranked = rank_projects([ranked_entry(1, "Alpha", 1, 4), ranked_entry(2, "Beta", 3, 4)])

    series = progress_series(ranked)

    assert series.categories == ["Beta", "Alpha"]
    assert series.values == [75, 25]


def test_user_stats_counts_assigned_tasks_only(users, tasks, now):
    grace = user_stats(users[1], tasks, now)

    assert grace.stats.total == 1
    assert grace.stats.overdue == 1
    assert grace.completion_rate == 0


def test_team_stats_covers_every_user(users, tasks, now):
    stats = team_stats(users, tasks, now)

    assert [s.user.id for s in stats] == [1, 2, 3]
    assert stats[0].completion_rate == 100
    assert stats[2].stats.total == 1


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Recent activity and dashboard
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_recent_activity_is_newest_first(projects, tasks, users, now):
    feed = recent_activity(projects, tasks, users)

    assert [item.task_id for item in feed] == [3, 2, 1, 4]
    assert feed[1].assignee_name == "Grace Hopper"
    assert feed[0].assignee_name is None
    assert feed[3].project_name == "Borealis"


def test_recent_activity_takes_three_per_project_then_eight_overall(now):
    """Test the two-stage selection caps each project before the global cut"""
    busy = Project(id=1, name="Busy")
    quiet = [Project(id=i, name=f"Quiet {i}") for i in range(2, 5)]
    snapshot = [
        make_task(i, now, project_id=1, created_at=now - timedelta(minutes=i))
        for i in range(1, 7)
    ]
    snapshot += [
        make_task(10 * p.id + n, now, project_id=p.id, created_at=now - timedelta(days=p.id, hours=n))
        for p in quiet
        for n in range(1, 4)
    ]

    feed = recent_activity([busy, *quiet], snapshot)

    assert len(feed) == 8
    busy_items = [item.task_id for item in feed if item.project_id == 1]
    # Busy has six tasks newer than everything else but only three make it
    assert busy_items == [1, 2, 3]
    assert [item.task_id for item in feed[3:]] == [21, 22, 23, 31, 32]


def test_dashboard_summary(projects, tasks, users, now):
    summary = dashboard_summary(projects, tasks, users, now)

    assert summary.total_projects == 2
    assert summary.active_projects == 2
    assert summary.total_tasks == 4
    assert summary.completed_tasks == 1
    assert summary.overdue_tasks == 1
    assert summary.team_members == 3
    assert summary.completion_rate == 25
    assert summary.distribution == [1, 2, 1]
    assert [p.name for p in summary.top_projects] == ["Apollo", "Borealis"]
    assert summary.progress_series.values == [33, 0]
    assert len(summary.recent_activity) == 4


def test_dashboard_summary_respects_limits(now):
    projects = [Project(id=i, name=f"P{i}") for i in range(1, 9)]

    summary = dashboard_summary(projects, [], [], now, top_projects=5)

    assert len(summary.top_projects) == 5
    assert summary.completion_rate == 0
    assert summary.recent_activity == []
