"""Database helpers for the optional SQL storage backend."""

from .session import Base, create_all, dispose_engine, get_engine, session_scope

__all__ = ["Base", "create_all", "dispose_engine", "get_engine", "session_scope"]
