"""Database package."""

from taskboard.db.base import Base, BaseModel
from taskboard.db.session import close_db, create_engine, create_session_factory, init_db

__all__ = ["Base", "BaseModel", "close_db", "create_engine", "create_session_factory", "init_db"]
