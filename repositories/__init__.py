"""
Database interactions and Supabase queries.
Can import from: models, database
Must NOT import from: services, routers
"""

from .comic_repository import ComicRepository
from .chapter_repository import ChapterRepository
from .rating_repository import RatingRepository
from .profile_repository import ProfileRepository
from .payment_repository import PaymentRepository
from .announcement_repository import AnnouncementRepository
from .storage_repository import StorageRepository

__all__ = [
    "ComicRepository",
    "ChapterRepository",
    "RatingRepository",
    "ProfileRepository",
    "PaymentRepository",
    "AnnouncementRepository",
    "StorageRepository"
]
