"""Week timeline of tasks by due date."""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from pydantic import BaseModel

from taskboard.schemas import Task
from taskboard.services.statistics import DONE_STATUS, is_overdue


class TimelineEntry(BaseModel):
    task: Task
    overdue: bool


class TimelineDay(BaseModel):
    day: date
    is_today: bool
    entries: list[TimelineEntry]


def week_days(anchor: date) -> list[date]:
    """The Monday-to-Sunday week containing ``anchor``."""
    monday = anchor - timedelta(days=anchor.weekday())
    return [monday + timedelta(days=offset) for offset in range(7)]


def tasks_by_day(
    tasks: Iterable[Task],
    days: Sequence[date],
    now: datetime,
    done_status: str = DONE_STATUS,
) -> list[TimelineDay]:
    """Group dated tasks under the day they are due.

    Tasks without a due date, or due outside ``days``, are left out.
    """
    grouped: dict[date, list[TimelineEntry]] = {day: [] for day in days}
    for task in tasks:
        if task.due_date is None:
            continue
        entries = grouped.get(task.due_date.date())
        if entries is not None:
            entries.append(TimelineEntry(task=task, overdue=is_overdue(task, now, done_status)))

    today = now.date()
    return [
        TimelineDay(day=day, is_today=day == today, entries=grouped[day]) for day in days
    ]
