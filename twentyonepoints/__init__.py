"""
TwentyOnePoints user service.

A Starlette application exposing CRUD and full-text search for users,
backed by SQLAlchemy and an in-process search index.
"""

from twentyonepoints.application import create_app, main, run
from twentyonepoints.config import get_config
from twentyonepoints.domain import User
from twentyonepoints.version import get_version

__all__ = ["create_app", "run", "main", "get_config", "get_version", "User"]
