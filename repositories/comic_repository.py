"""
Comic repository for the komik and genre tables.
Pure database layer, no business logic.
"""
from typing import Optional, List, Dict, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)

COMIC_TABLE = "komik"
GENRE_TABLE = "genre"


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so a slug is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ComicRepository:
    """Repository for comic database operations."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def list_all(self, order_by: str = "created_at:desc") -> List[Dict[str, Any]]:
        """Every comic row; callers filter and sort in memory."""
        try:
            return await self.db.execute_query_async(COMIC_TABLE, "select", order_by=order_by)
        except Exception as e:
            logger.error(f"Failed to list comics: {e}")
            raise

    async def list_popular(self, limit: int = 6) -> List[Dict[str, Any]]:
        """Most viewed comics, newest first on ties."""
        try:
            return await self.db.execute_query_async(
                COMIC_TABLE,
                "select",
                order_by=["view:desc", "created_at:desc"],
                limit=limit
            )
        except Exception as e:
            logger.error(f"Failed to list popular comics: {e}")
            raise

    async def get_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Case-insensitive slug lookup."""
        try:
            return await self.db.execute_query_async(
                COMIC_TABLE,
                "select",
                ilike={"slug": _escape_like(slug)},
                limit=1,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to get comic by slug {slug}: {e}")
            raise

    async def get_by_id(self, comic_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.db.execute_query_async(
                COMIC_TABLE,
                "select",
                filters={"id": comic_id},
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to get comic {comic_id}: {e}")
            raise

    async def get_rating_stats(self, comic_id: str) -> Optional[Dict[str, Any]]:
        """Current rating average and count (maintained by the database)."""
        try:
            return await self.db.execute_query_async(
                COMIC_TABLE,
                "select",
                columns="rating, rating_count",
                filters={"id": comic_id},
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to get rating stats for comic {comic_id}: {e}")
            raise

    async def set_views(self, comic_id: str, views: int) -> None:
        try:
            await self.db.execute_query_async(
                COMIC_TABLE,
                "update",
                data={"view": views},
                filters={"id": comic_id},
                use_service_key=True
            )
        except Exception as e:
            logger.error(f"Failed to update views for comic {comic_id}: {e}")
            raise

    async def create(self, comic_data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a comic row and return it."""
        try:
            return await self.db.execute_query_async(
                COMIC_TABLE,
                "insert",
                data=comic_data,
                use_service_key=True,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to create comic: {e}")
            raise

    async def list_genre_rows(self) -> List[Dict[str, Any]]:
        """Raw genre rows; each holds an array of genre names."""
        try:
            return await self.db.execute_query_async(GENRE_TABLE, "select", columns="genre", order_by="id")
        except Exception as e:
            logger.error(f"Failed to list genres: {e}")
            raise
