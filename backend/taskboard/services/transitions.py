"""Task writes against a loaded board.

Every write is a command: it is applied to the board first so the change
is visible immediately, then committed to the task repository. The
repository's record replaces the local copy on success; on failure the
command is undone and the error propagates to the caller.
"""

import asyncio
import inspect
import itertools
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from pydantic import ValidationError

from taskboard.exceptions import ValidationFailedError, repository_errors
from taskboard.repositories import TaskRepository
from taskboard.schemas import Task, TaskCreate, TaskUpdate
from taskboard.services.board import Board

logger = structlog.get_logger()


@dataclass(frozen=True)
class BoardEvent:
    """Published after a task write is confirmed by the repository."""

    kind: str  # task_created, task_updated, task_moved, task_deleted
    task: Task
    previous: Task | None = None


BoardSubscriber = Callable[[BoardEvent], Awaitable[None] | None]


def _require_column(board: Board, status: str) -> None:
    if not board.has_column(status):
        raise ValidationFailedError(
            f"Column '{status}' does not exist on project {board.project_id}",
            field="status",
        )


def _next_position(board: Board, status: str) -> int:
    return max((t.position for t in board.bucket(status)), default=0) + 1


class TaskCommand(ABC):
    """One optimistic task write."""

    operation: str
    task_id: int

    def prepare(self, board: Board) -> Task | None:
        """Validate against the board; a returned task means nothing to do."""
        return None

    @abstractmethod
    def apply(self, board: Board) -> None:
        pass

    @abstractmethod
    async def commit(self, tasks: TaskRepository) -> Task:
        pass

    @abstractmethod
    def reconcile(self, board: Board, result: Task) -> BoardEvent:
        pass

    @abstractmethod
    def undo(self, board: Board) -> None:
        pass


class MoveTask(TaskCommand):
    """Move a task to another column, at ``index`` or the end of it."""

    operation = "move_task"

    def __init__(self, task_id: int, target: str, index: int | None = None):
        self.task_id = task_id
        self.target = target
        self.index = index

    def prepare(self, board: Board) -> Task | None:
        self.original = board.get_task(self.task_id)
        if self.original.status == self.target:
            return self.original
        _require_column(board, self.target)
        return None

    def _displace(self, board: Board) -> int:
        """Position for the moved task; pushes later tasks up to make room.

        Tasks from ``index`` on whose position would no longer be strictly
        greater than their predecessor's are recorded in ``self.shifted``
        with their new position.
        """
        self.shifted: list[tuple[Task, Task]] = []
        bucket = board.bucket(self.target)
        if self.index is None or not 0 <= self.index < len(bucket):
            return _next_position(board, self.target)

        position = bucket[self.index].position
        following = position + 1
        for task in bucket[self.index:]:
            if task.position < following:
                self.shifted.append((task, task.model_copy(update={"position": following})))
                following += 1
            else:
                following = task.position + 1
        return position

    def apply(self, board: Board) -> None:
        self.moved = self.original.model_copy(
            update={"status": self.target, "position": self._displace(board)}
        )
        for _, shifted in self.shifted:
            board.place(shifted)
        self.origin = board.remove(self.task_id)
        board.insert(self.moved, self.target, self.index)

    async def commit(self, tasks: TaskRepository) -> Task:
        self.shifted_results: list[Task] = []
        try:
            for original, shifted in self.shifted:
                self.shifted_results.append(
                    await tasks.update(original.id, TaskUpdate(position=shifted.position))
                )
            update = TaskUpdate.from_task(
                self.original, status=self.target, position=self.moved.position
            )
            return await tasks.update(self.task_id, update)
        except Exception:
            await self._restore_shifted(tasks)
            raise

    async def _restore_shifted(self, tasks: TaskRepository) -> None:
        """Put already-confirmed shifts back; the move as a whole failed."""
        for original, _ in self.shifted[: len(self.shifted_results)]:
            try:
                await tasks.update(original.id, TaskUpdate(position=original.position))
            except Exception:
                logger.exception(
                    "task_position_restore_failed",
                    task_id=original.id,
                    position=original.position,
                )

    def reconcile(self, board: Board, result: Task) -> BoardEvent:
        for shifted in self.shifted_results:
            board.place(shifted)
        board.place(result)
        return BoardEvent("task_moved", result, previous=self.original)

    def undo(self, board: Board) -> None:
        board.remove(self.task_id)
        board.insert(self.original, *self.origin)
        for original, _ in self.shifted:
            board.place(original)


class CreateTask(TaskCommand):
    """Create a task, showing a placeholder until the repository answers."""

    operation = "create_task"

    def __init__(self, data: TaskCreate, placeholder_id: int):
        self.data = data
        self.task_id = placeholder_id

    def prepare(self, board: Board) -> Task | None:
        if self.data.project_id != board.project_id:
            raise ValidationFailedError(
                f"Task belongs to project {self.data.project_id}, "
                f"board shows project {board.project_id}",
                field="project_id",
            )
        status = self.data.status or board.first_column_key()
        if status is None:
            raise ValidationFailedError(
                f"Project {board.project_id} has no columns", field="status"
            )
        _require_column(board, status)
        self.data = self.data.model_copy(update={"status": status})
        return None

    def apply(self, board: Board) -> None:
        self.placeholder = Task(
            id=self.task_id,
            position=_next_position(board, self.data.status),
            **self.data.model_dump(),
        )
        board.insert(self.placeholder, self.data.status)

    async def commit(self, tasks: TaskRepository) -> Task:
        return await tasks.create(self.data)

    def reconcile(self, board: Board, result: Task) -> BoardEvent:
        board.place(result, replacing=self.task_id)
        return BoardEvent("task_created", result)

    def undo(self, board: Board) -> None:
        board.remove(self.task_id)


class UpdateTask(TaskCommand):
    """Edit task fields; a status change relocates the task."""

    operation = "update_task"

    def __init__(self, task_id: int, changes: TaskUpdate):
        self.task_id = task_id
        self.changes = changes

    def prepare(self, board: Board) -> Task | None:
        self.original = board.get_task(self.task_id)
        fields = self.changes.changes()
        if not fields:
            return self.original
        if "status" in fields:
            if fields["status"] is None:
                raise ValidationFailedError("Task status cannot be cleared", field="status")
            _require_column(board, fields["status"])
            if fields["status"] != self.original.status and "position" not in fields:
                fields["position"] = _next_position(board, fields["status"])
                self.changes = TaskUpdate(**fields)
        try:
            self.updated = Task.model_validate({**self.original.model_dump(), **fields})
        except ValidationError as exc:
            error = exc.errors()[0]
            raise ValidationFailedError(
                error["msg"], field=".".join(str(p) for p in error["loc"])
            ) from exc
        return None

    def apply(self, board: Board) -> None:
        self.origin = board.locate(self.task_id)
        board.place(self.updated)

    async def commit(self, tasks: TaskRepository) -> Task:
        return await tasks.update(self.task_id, self.changes)

    def reconcile(self, board: Board, result: Task) -> BoardEvent:
        board.place(result)
        return BoardEvent("task_updated", result, previous=self.original)

    def undo(self, board: Board) -> None:
        board.remove(self.task_id)
        board.insert(self.original, *self.origin)


class DeleteTask(TaskCommand):
    operation = "delete_task"

    def __init__(self, task_id: int):
        self.task_id = task_id

    def prepare(self, board: Board) -> Task | None:
        self.original = board.get_task(self.task_id)
        return None

    def apply(self, board: Board) -> None:
        self.origin = board.remove(self.task_id)

    async def commit(self, tasks: TaskRepository) -> Task:
        await tasks.delete(self.task_id)
        return self.original

    def reconcile(self, board: Board, result: Task) -> BoardEvent:
        return BoardEvent("task_deleted", result)

    def undo(self, board: Board) -> None:
        board.insert(self.original, *self.origin)


class TransitionEngine:
    """The only writer of a board's tasks.

    Writes to the same task are serialized; writes to different tasks may
    interleave. Subscribers receive a BoardEvent after each confirmed write.
    """

    def __init__(self, board: Board, tasks: TaskRepository):
        self.board = board
        self.tasks = tasks
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}
        self._subscribers: list[BoardSubscriber] = []
        self._placeholder_ids = itertools.count(-1, -1)

    def subscribe(self, callback: BoardSubscriber) -> Callable[[], None]:
        """Register ``callback`` for board events. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def _emit(self, event: BoardEvent) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # The write is already committed; a failing listener must not undo it
                logger.exception(
                    "board_event_subscriber_failed",
                    kind=event.kind,
                    task_id=event.task.id,
                )

    @asynccontextmanager
    async def _lock(self, task_id: int) -> AsyncIterator[None]:
        """Hold the task's lock; it is dropped once no write holds or awaits it."""
        lock = self._locks.setdefault(task_id, asyncio.Lock())
        self._lock_users[task_id] = self._lock_users.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[task_id] -= 1
            if not self._lock_users[task_id]:
                del self._lock_users[task_id]
                del self._locks[task_id]

    async def execute(self, command: TaskCommand) -> Task:
        """Apply, commit and reconcile ``command``, undoing it if the commit fails."""
        async with self._lock(command.task_id):
            unchanged = command.prepare(self.board)
            if unchanged is not None:
                logger.debug(
                    "task_write_skipped",
                    operation=command.operation,
                    task_id=command.task_id,
                )
                return unchanged

            command.apply(self.board)
            try:
                with repository_errors(command.operation):
                    result = await command.commit(self.tasks)
            except BaseException as exc:
                command.undo(self.board)
                logger.warning(
                    f"{command.operation}_rolled_back",
                    task_id=command.task_id,
                    project_id=self.board.project_id,
                    error_code=getattr(exc, "code", type(exc).__name__),
                )
                raise
            event = command.reconcile(self.board, result)

        logger.info(
            event.kind,
            task_id=event.task.id,
            project_id=self.board.project_id,
            status=event.task.status,
        )
        await self._emit(event)
        return event.task

    async def move_task(
        self, task: Task | int, target_status: str, position: int | None = None
    ) -> Task:
        """Move a task to ``target_status``. Moving onto its own column is a no-op."""
        task_id = task.id if isinstance(task, Task) else task
        return await self.execute(MoveTask(task_id, target_status, position))

    async def create_task(self, data: TaskCreate) -> Task:
        return await self.execute(CreateTask(data, next(self._placeholder_ids)))

    async def update_task(self, task: Task | int, changes: TaskUpdate) -> Task:
        task_id = task.id if isinstance(task, Task) else task
        return await self.execute(UpdateTask(task_id, changes))

    async def delete_task(self, task: Task | int) -> Task:
        """Delete a task and return the record that was removed."""
        task_id = task.id if isinstance(task, Task) else task
        return await self.execute(DeleteTask(task_id))
