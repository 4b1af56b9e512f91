"""Notification and notification preference models."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.db.base import BaseModel, _utcnow


class Notification(BaseModel):
    """In-app notification with denormalized project/assignee labels."""

    __tablename__ = "notifications"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="system", index=True
    )
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    project: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assignee: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Notification {self.type} read={self.is_read}>"


class NotificationPreference(BaseModel):
    """Notification settings; a single row holds the active preferences."""

    __tablename__ = "notification_preferences"

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    do_not_disturb: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sound_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Per-category delivery channels: {"email": bool, "push": bool, "in_app": bool}
    tasks: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    projects: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    team: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    deadlines: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    system: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
