"""Notifications API endpoints."""

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from taskboard.api.deps import Notifications, Repos
from taskboard.exceptions import repository_errors
from taskboard.schemas import (
    Notification,
    NotificationCreate,
    NotificationFilter,
    NotificationPreferences,
)
from taskboard.services import NotificationCenter

router = APIRouter()


class NotificationList(BaseModel):
    items: list[Notification]
    unread_count: int


class UnreadCount(BaseModel):
    unread_count: int


def _listing(center: NotificationCenter, mode: NotificationFilter) -> NotificationList:
    return NotificationList(items=center.view(mode), unread_count=center.unread_count)


@router.get("", response_model=NotificationList)
async def list_notifications(
    center: Notifications,
    mode: NotificationFilter = Query(NotificationFilter.ALL, alias="filter"),
) -> NotificationList:
    """Notifications newest first, filtered by read state."""
    await center.refresh()
    return _listing(center, mode)


@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(center: Notifications) -> UnreadCount:
    await center.refresh()
    return UnreadCount(unread_count=center.unread_count)


@router.post("", response_model=Notification | None, status_code=status.HTTP_201_CREATED)
async def create_notification(
    data: NotificationCreate, center: Notifications
) -> Notification | None:
    """Store a notification; null when the preferences suppress it."""
    return await center.notify(data)


@router.post("/read-all", response_model=NotificationList)
async def mark_all_read(center: Notifications) -> NotificationList:
    await center.mark_all_read()
    return _listing(center, NotificationFilter.ALL)


@router.post("/{notification_id}/read", response_model=NotificationList)
async def mark_read(notification_id: int, center: Notifications) -> NotificationList:
    await center.mark_read(notification_id)
    return _listing(center, NotificationFilter.ALL)


@router.delete("/{notification_id}", response_model=NotificationList)
async def delete_notification(notification_id: int, center: Notifications) -> NotificationList:
    await center.delete(notification_id)
    return _listing(center, NotificationFilter.ALL)


@router.delete("", response_model=NotificationList)
async def clear_notifications(center: Notifications) -> NotificationList:
    await center.clear_all()
    return _listing(center, NotificationFilter.ALL)


# Preferences
@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(repos: Repos) -> NotificationPreferences:
    with repository_errors("get_notification_preferences"):
        return await repos.preferences.get()


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(
    data: NotificationPreferences, repos: Repos
) -> NotificationPreferences:
    with repository_errors("update_notification_preferences"):
        return await repos.preferences.update(data)
