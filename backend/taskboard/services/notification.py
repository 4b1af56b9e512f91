"""Notification views and the notification center."""

from collections.abc import Callable, Iterable, Sequence

import structlog

from taskboard.exceptions import repository_errors
from taskboard.repositories import NotificationRepository, PreferenceRepository
from taskboard.schemas import (
    Notification,
    NotificationCreate,
    NotificationFilter,
    NotificationPreferences,
    NotificationType,
    NotificationUpdate,
    User,
)
from taskboard.services.statistics import DONE_STATUS
from taskboard.services.transitions import BoardEvent

logger = structlog.get_logger()

SnapshotSubscriber = Callable[[list[Notification]], None]


def filter_notifications(
    notifications: Iterable[Notification],
    mode: NotificationFilter | str = NotificationFilter.ALL,
) -> list[Notification]:
    """Notifications matching ``mode``, in the order given."""
    mode = NotificationFilter(mode)
    if mode == NotificationFilter.UNREAD:
        return [n for n in notifications if not n.is_read]
    if mode == NotificationFilter.READ:
        return [n for n in notifications if n.is_read]
    return list(notifications)


def unread_count(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.is_read)


class NotificationCenter:
    """Holds the latest notification snapshot and mutates the store.

    Counts are always derived from the snapshot read back after a
    mutation, never adjusted locally.
    """

    # Map notification types to preference categories
    TYPE_TO_CATEGORY = {
        NotificationType.TASK_ASSIGNMENT: "tasks",
        NotificationType.TASK_DUE: "deadlines",
        NotificationType.PROJECT_UPDATE: "projects",
        NotificationType.TEAM_MENTION: "team",
        NotificationType.DEADLINE_REMINDER: "deadlines",
        NotificationType.SYSTEM: "system",
    }

    def __init__(
        self,
        repository: NotificationRepository,
        preferences: PreferenceRepository | None = None,
        done_status: str = DONE_STATUS,
    ):
        self.repository = repository
        self.preferences = preferences
        self.done_status = done_status
        self._snapshot: list[Notification] = []
        self._subscribers: list[SnapshotSubscriber] = []

    # --- Views ---

    @property
    def notifications(self) -> list[Notification]:
        return list(self._snapshot)

    @property
    def unread_count(self) -> int:
        return unread_count(self._snapshot)

    def view(self, mode: NotificationFilter | str = NotificationFilter.ALL) -> list[Notification]:
        return filter_notifications(self._snapshot, mode)

    def subscribe(self, callback: SnapshotSubscriber) -> Callable[[], None]:
        """Call ``callback`` with every new snapshot. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self.notifications)
            except Exception:
                logger.exception("notification_subscriber_failed")

    # --- Store operations ---

    async def refresh(self) -> list[Notification]:
        """Re-read the store and publish the new snapshot."""
        with repository_errors("list_notifications"):
            self._snapshot = await self.repository.list()
        self._publish()
        return self.notifications

    async def mark_read(self, notification_id: int) -> list[Notification]:
        with repository_errors("mark_notification_read"):
            await self.repository.update(notification_id, NotificationUpdate(is_read=True))
        return await self.refresh()

    async def mark_all_read(self) -> list[Notification]:
        with repository_errors("mark_all_notifications_read"):
            await self.repository.mark_all_read()
        return await self.refresh()

    async def delete(self, notification_id: int) -> list[Notification]:
        with repository_errors("delete_notification"):
            await self.repository.delete(notification_id)
        return await self.refresh()

    async def clear_all(self) -> list[Notification]:
        with repository_errors("clear_notifications"):
            await self.repository.clear()
        logger.info("notifications_cleared")
        return await self.refresh()

    # --- Creation ---

    async def _get_preferences(self) -> NotificationPreferences:
        if self.preferences is None:
            return NotificationPreferences()
        with repository_errors("get_notification_preferences"):
            return await self.preferences.get()

    def _should_notify(self, prefs: NotificationPreferences, notification_type: NotificationType) -> bool:
        """Check the in-app switch of the type's category."""
        category = self.TYPE_TO_CATEGORY.get(notification_type)
        if category is None:
            return True
        return getattr(prefs, category).in_app

    async def notify(self, data: NotificationCreate) -> Notification | None:
        """
        Store a notification if preferences allow.

        Returns:
            The created notification, or None when it was suppressed
        """
        prefs = await self._get_preferences()

        if not prefs.enabled:
            logger.debug("notifications_disabled", notification_type=data.type.value)
            return None

        if not self._should_notify(prefs, data.type):
            logger.debug("notification_type_disabled", notification_type=data.type.value)
            return None

        with repository_errors("create_notification"):
            notification = await self.repository.create(data)

        logger.info(
            "notification_created",
            notification_id=notification.id,
            notification_type=data.type.value,
        )
        await self.refresh()
        return notification

    async def handle_board_event(
        self,
        event: BoardEvent,
        project_name: str | None = None,
        users: Sequence[User] = (),
    ) -> list[Notification]:
        """Derive notifications from a confirmed task write.

        A task gaining a new assignee produces a task assignment; a task
        entering the done column produces a project update.
        """
        if event.kind == "task_deleted":
            return []

        task, previous = event.task, event.previous
        assignee = next((u for u in users if u.id == task.assignee_id), None)
        assignee_name = assignee.name if assignee else None
        created: list[Notification] = []

        if task.assignee_id is not None and (
            previous is None or previous.assignee_id != task.assignee_id
        ):
            notification = await self.notify(
                NotificationCreate(
                    title="Task assigned",
                    message=f'{assignee_name or "A team member"} was assigned to "{task.title}"',
                    type=NotificationType.TASK_ASSIGNMENT,
                    priority=task.priority,
                    project=project_name,
                    assignee=assignee_name,
                )
            )
            if notification:
                created.append(notification)

        if (
            previous is not None
            and task.status == self.done_status
            and previous.status != self.done_status
        ):
            notification = await self.notify(
                NotificationCreate(
                    title="Task completed",
                    message=f'"{task.title}" was marked as done',
                    type=NotificationType.PROJECT_UPDATE,
                    priority=task.priority,
                    project=project_name,
                    assignee=assignee_name,
                )
            )
            if notification:
                created.append(notification)

        return created
