"""
Chapter and page repository for komik_chapters and komik_pages.
"""
from typing import Optional, List, Dict, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


class ChapterRepository:
    """Repository for chapter and page database operations."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def list_for_comic(self, comic_id: str) -> List[Dict[str, Any]]:
        """All chapters of a comic in ascending number order."""
        try:
            return await self.db.execute_query_async(
                "komik_chapters",
                "select",
                columns="id, komik_id, number, title, volume, released_at",
                filters={"komik_id": comic_id},
                order_by="number"
            )
        except Exception as e:
            logger.error(f"Failed to list chapters for comic {comic_id}: {e}")
            raise

    async def get_chapter(self, comic_id: str, number: int) -> Optional[Dict[str, Any]]:
        try:
            return await self.db.execute_query_async(
                "komik_chapters",
                "select",
                columns="id, komik_id, number, title, volume, released_at",
                filters={"komik_id": comic_id, "number": number},
                limit=1,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to get chapter {number} of comic {comic_id}: {e}")
            raise

    async def list_pages(self, chapter_id: str) -> List[Dict[str, Any]]:
        """Pages of a chapter ordered by page number."""
        try:
            return await self.db.execute_query_async(
                "komik_pages",
                "select",
                columns="page_no, image_path",
                filters={"chapter_id": chapter_id},
                order_by="page_no"
            )
        except Exception as e:
            logger.error(f"Failed to list pages for chapter {chapter_id}: {e}")
            raise
