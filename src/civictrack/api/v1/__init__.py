# src/civictrack/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import admin_router, issues_router, users_router

__all__ = [
    "admin_router",
    "issues_router",
    "users_router",
]
