"""
Announcement repository for the pengumuman table.
"""
from typing import List, Dict, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


class AnnouncementRepository:

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def list_all(self) -> List[Dict[str, Any]]:
        """Newest first."""
        try:
            return await self.db.execute_query_async(
                "pengumuman",
                "select",
                columns="id, title, content, created_at, updated_at",
                order_by="created_at:desc"
            )
        except Exception as e:
            logger.error(f"Failed to list announcements: {e}")
            raise

    async def create(self, title: str, content: str) -> Dict[str, Any]:
        try:
            return await self.db.execute_query_async(
                "pengumuman",
                "insert",
                data={"title": title, "content": content},
                use_service_key=True,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to create announcement: {e}")
            raise
