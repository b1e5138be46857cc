"""Database layer."""

from .base import Base, create_session_factory, get_session, init_db

__all__ = ["Base", "create_session_factory", "get_session", "init_db"]
