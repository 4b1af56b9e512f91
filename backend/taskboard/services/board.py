"""Board aggregation: one project's columns with tasks bucketed by status."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from taskboard.exceptions import NotFoundError, repository_errors
from taskboard.repositories import ColumnRepository, TaskRepository, UserRepository
from taskboard.schemas import BoardColumn, Task, User

logger = structlog.get_logger()


@dataclass
class Board:
    """In-memory board for a single project view.

    ``buckets`` has one list per column key, in column order. Tasks whose
    status matches no column are kept in ``orphans`` so the partition over
    the project's tasks stays complete.
    """

    project_id: int
    columns: list[BoardColumn]
    buckets: dict[str, list[Task]]
    users: list[User] = field(default_factory=list)
    orphans: list[Task] = field(default_factory=list)

    @classmethod
    def partition(
        cls,
        project_id: int,
        columns: list[BoardColumn],
        tasks: list[Task],
        users: list[User] | None = None,
    ) -> "Board":
        """Bucket ``tasks`` by status, keeping input order within each bucket."""
        ordered = sorted(columns, key=lambda c: (c.position, c.id))
        buckets: dict[str, list[Task]] = {column.key: [] for column in ordered}
        orphans: list[Task] = []
        for task in tasks:
            buckets.get(task.status, orphans).append(task)
        return cls(
            project_id=project_id,
            columns=ordered,
            buckets=buckets,
            users=list(users or []),
            orphans=orphans,
        )

    # --- Queries ---

    def tasks(self) -> list[Task]:
        """Every task on the board, column by column, orphans last."""
        result = [task for bucket in self.buckets.values() for task in bucket]
        return result + self.orphans

    def has_column(self, key: str) -> bool:
        return key in self.buckets

    def first_column_key(self) -> str | None:
        return self.columns[0].key if self.columns else None

    def bucket(self, key: str) -> list[Task]:
        return list(self.buckets.get(key, []))

    def sorted_bucket(self, key: str, sort_key: Callable[[Task], Any]) -> list[Task]:
        """A re-ordered copy of a bucket; the board itself is left as is."""
        return sorted(self.buckets.get(key, []), key=sort_key)

    def locate(self, task_id: int) -> tuple[str | None, int] | None:
        """(column key, index) of a task; the key is None for orphans."""
        for key, bucket in self.buckets.items():
            for index, task in enumerate(bucket):
                if task.id == task_id:
                    return key, index
        for index, task in enumerate(self.orphans):
            if task.id == task_id:
                return None, index
        return None

    def get_task(self, task_id: int) -> Task:
        location = self.locate(task_id)
        if location is None:
            raise NotFoundError("Task", task_id)
        key, index = location
        return self._slot(key)[index]

    def user(self, user_id: int | None) -> User | None:
        if user_id is None:
            return None
        return next((u for u in self.users if u.id == user_id), None)

    # --- Mutations (used by the transition engine) ---

    def _slot(self, key: str | None) -> list[Task]:
        if key is None or key not in self.buckets:
            return self.orphans
        return self.buckets[key]

    def insert(self, task: Task, key: str | None, index: int | None = None) -> None:
        slot = self._slot(key)
        if index is None or index > len(slot):
            index = len(slot)
        slot.insert(index, task)

    def remove(self, task_id: int) -> tuple[str | None, int]:
        """Take a task off the board and return where it was."""
        location = self.locate(task_id)
        if location is None:
            raise NotFoundError("Task", task_id)
        key, index = location
        del self._slot(key)[index]
        return location

    def place(self, task: Task, replacing: int | None = None) -> None:
        """Put ``task`` into the bucket its status names.

        The record identified by ``replacing`` (default: ``task.id``) is
        swapped out in place when it already sits in that bucket, otherwise
        it is removed and ``task`` is appended to the right bucket.
        """
        location = self.locate(task.id if replacing is None else replacing)
        target = task.status if self.has_column(task.status) else None
        if location is not None and location[0] == target:
            self._slot(target)[location[1]] = task
            return
        if location is not None:
            del self._slot(location[0])[location[1]]
        self.insert(task, target)


class BoardAggregator:
    """Loads a project's board from the repositories."""

    def __init__(
        self,
        columns: ColumnRepository,
        tasks: TaskRepository,
        users: UserRepository,
    ):
        self.columns = columns
        self.tasks = tasks
        self.users = users

    async def load_board(self, project_id: int) -> Board:
        """Fetch columns, tasks and users concurrently and bucket the tasks.

        Any failed fetch fails the whole load. A board with no columns is
        returned as is.
        """
        with repository_errors("load_board"):
            columns, tasks, users = await asyncio.gather(
                self.columns.list_by_project(project_id),
                self.tasks.list_by_project(project_id),
                self.users.list(),
            )

        board = Board.partition(project_id, columns, tasks, users)
        if board.orphans:
            logger.warning(
                "board_orphaned_tasks",
                project_id=project_id,
                task_ids=[t.id for t in board.orphans],
            )
        logger.debug(
            "board_loaded",
            project_id=project_id,
            columns=len(board.columns),
            tasks=len(tasks),
        )
        return board
