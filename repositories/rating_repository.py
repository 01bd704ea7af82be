"""
Rating repository for komik_ratings (one row per comic and user).
"""
from typing import Optional
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


class RatingRepository:
    """Repository for star ratings."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def get_user_rating(self, comic_id: str, user_id: str) -> Optional[int]:
        try:
            row = await self.db.execute_query_async(
                "komik_ratings",
                "select",
                columns="rating",
                filters={"komik_id": comic_id, "user_id": user_id},
                use_service_key=True,
                single=True
            )
            return int(row["rating"]) if row and row.get("rating") is not None else None
        except Exception as e:
            logger.error(f"Failed to get rating of user {user_id} for comic {comic_id}: {e}")
            raise

    async def upsert_rating(self, comic_id: str, user_id: str, rating: int) -> None:
        """Insert or replace the user's rating."""
        try:
            await self.db.execute_query_async(
                "komik_ratings",
                "upsert",
                data={"komik_id": comic_id, "user_id": user_id, "rating": rating},
                on_conflict="komik_id,user_id",
                use_service_key=True
            )
        except Exception as e:
            logger.error(f"Failed to upsert rating of user {user_id} for comic {comic_id}: {e}")
            raise
