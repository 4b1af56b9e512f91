"""Pydantic schemas for taskboard entities and their create/update payloads.

Entity records are frozen: a change to a task on the board is a new
record replacing the old one, never an in-place mutation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_ensure_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Priority(str, Enum):
    """Task and notification priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    """Team member role."""
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class NotificationType(str, Enum):
    """Kinds of notification a user can receive."""
    TASK_ASSIGNMENT = "task_assignment"
    TASK_DUE = "task_due"
    PROJECT_UPDATE = "project_update"
    TEAM_MENTION = "team_mention"
    DEADLINE_REMINDER = "deadline_reminder"
    SYSTEM = "system"


class NotificationFilter(str, Enum):
    """Read-state filter for the notification list."""
    ALL = "all"
    UNREAD = "unread"
    READ = "read"


# =============================================================================
# Entities
# =============================================================================


class Entity(BaseModel):
    """Base for repository records."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int


class Project(Entity):
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    members: list[int] = Field(default_factory=list)
    created_at: UTCDateTime = Field(default_factory=utcnow)


class BoardColumn(Entity):
    """A workflow column; tasks reference it through ``key``."""
    project_id: int
    key: str
    name: str
    color: str = "#6b7280"
    position: int = 1


class Task(Entity):
    project_id: int
    title: str
    description: str = ""
    assignee_id: int | None = None
    priority: Priority = Priority.MEDIUM
    status: str
    due_date: UTCDateTime | None = None
    created_at: UTCDateTime = Field(default_factory=utcnow)
    position: int = 0


class User(Entity):
    name: str
    email: str
    role: UserRole = UserRole.MEMBER
    avatar: str | None = None


class Notification(Entity):
    title: str
    message: str = ""
    type: NotificationType = NotificationType.SYSTEM
    priority: Priority = Priority.MEDIUM
    is_read: bool = False
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    project: str | None = None
    assignee: str | None = None


class Comment(Entity):
    task_id: int
    user_id: int | None = None
    content: str
    created_at: UTCDateTime = Field(default_factory=utcnow)


class DeliveryChannels(BaseModel):
    """Per-category delivery switches."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    email: bool = True
    push: bool = True
    in_app: bool = True


class NotificationPreferences(BaseModel):
    """Global and per-category notification settings."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    enabled: bool = True
    do_not_disturb: bool = False
    sound_enabled: bool = True
    tasks: DeliveryChannels = Field(default_factory=DeliveryChannels)
    projects: DeliveryChannels = Field(default_factory=DeliveryChannels)
    team: DeliveryChannels = Field(default_factory=DeliveryChannels)
    deadlines: DeliveryChannels = Field(default_factory=DeliveryChannels)
    system: DeliveryChannels = Field(default_factory=DeliveryChannels)


# =============================================================================
# Create payloads
# =============================================================================


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    members: list[int] | None = None
    created_by_id: int | None = None

    def member_ids(self) -> list[int]:
        """Members with the creator as the fallback, de-duplicated in order."""
        members = self.members
        if not members:
            members = [self.created_by_id] if self.created_by_id is not None else []
        return list(dict.fromkeys(members))


class ColumnCreate(BaseModel):
    project_id: int
    key: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = "#6b7280"


class TaskCreate(BaseModel):
    """Create a new task.

    ``status`` of None places the task in the board's first column.
    """

    project_id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    assignee_id: int | None = None
    priority: Priority = Priority.MEDIUM
    status: str | None = None
    due_date: UTCDateTime | None = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    role: UserRole = UserRole.MEMBER
    avatar: str | None = None


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    message: str = ""
    type: NotificationType = NotificationType.SYSTEM
    priority: Priority = Priority.MEDIUM
    project: str | None = None
    assignee: str | None = None


class CommentCreate(BaseModel):
    task_id: int
    user_id: int | None = None
    content: str = Field(..., min_length=1)


# =============================================================================
# Partial updates
# =============================================================================


class PartialUpdate(BaseModel):
    """Only explicitly supplied fields are merged into the stored record.

    Fields a record cannot be without may be left out, but an explicit
    null for them is rejected.
    """

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


def _not_null(value):
    if value is None:
        raise ValueError("may be omitted but not set to null")
    return value


class ProjectUpdate(PartialUpdate):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: ProjectStatus | None = None
    members: list[int] | None = None

    @field_validator("name", "description", "status", "members")
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)

    @field_validator("members")
    @classmethod
    def dedupe_members(cls, v: list[int] | None) -> list[int] | None:
        return list(dict.fromkeys(v)) if v is not None else None


class ColumnUpdate(PartialUpdate):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = None
    position: int | None = Field(None, ge=1)

    @field_validator("name", "color", "position")
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)


class TaskUpdate(PartialUpdate):
    """Mutable task fields. ``project_id`` is fixed at creation."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    assignee_id: int | None = None
    priority: Priority | None = None
    status: str | None = None
    due_date: UTCDateTime | None = None
    position: int | None = Field(None, ge=0)

    @classmethod
    def from_task(cls, task: Task, **overrides) -> "TaskUpdate":
        """Full-record update carrying every mutable field of ``task``."""
        fields = task.model_dump(include=set(cls.model_fields))
        fields.update(overrides)
        return cls(**fields)


class UserUpdate(PartialUpdate):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, min_length=3, max_length=255)
    role: UserRole | None = None
    avatar: str | None = None

    @field_validator("name", "email", "role")
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)


class NotificationUpdate(PartialUpdate):
    is_read: bool | None = None

    @field_validator("is_read")
    @classmethod
    def reject_null(cls, v: bool | None) -> bool:
        return _not_null(v)
