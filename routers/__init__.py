"""
API endpoints and request handling.
Can import from: services, models
Must NOT import from: repositories (call via services)
"""

from . import auth, comics, profile, announcements, admin, payments

__all__ = [
    "auth",
    "comics",
    "profile",
    "announcements",
    "admin",
    "payments"
]
