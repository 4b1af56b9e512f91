"""User model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.db.base import BaseModel


class User(BaseModel):
    """Team member who can be assigned tasks."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="member"
    )  # admin, member, viewer
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
