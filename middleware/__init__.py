"""
Middleware package for FastAPI application.
"""
from .auth import get_current_user, get_current_user_optional, require_admin_user

__all__ = ["get_current_user", "get_current_user_optional", "require_admin_user"]
