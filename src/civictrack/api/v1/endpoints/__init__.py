"""Endpoint routers for API v1."""

from .admin import router as admin_router
from .issues import router as issues_router
from .users import router as users_router

__all__ = ["admin_router", "issues_router", "users_router"]
