"""
Storage repository for Supabase Storage buckets (covers, avatars, manga_pages).
Pure storage layer, no business logic.
"""
from typing import List, Optional
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


class StorageRepository:
    """Repository for Supabase Storage operations."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    @property
    def storage(self):
        return self.db.storage

    async def upload_file(
        self,
        bucket_name: str,
        file_path: str,
        file_data: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False
    ) -> str:
        """Upload bytes to a bucket and return the stored path."""
        try:
            file_options = {
                "cache-control": "3600",
                "upsert": "true" if upsert else "false",
            }
            if content_type:
                file_options["content-type"] = content_type

            self.storage.from_(bucket_name).upload(
                path=file_path,
                file=file_data,
                file_options=file_options
            )
            logger.info(f"📦 [STORAGE] Uploaded {bucket_name}/{file_path} ({len(file_data)} bytes)")
            return file_path

        except Exception as e:
            logger.error(f"Failed to upload file {file_path} to {bucket_name}: {e}")
            raise

    def get_public_url(self, bucket_name: str, file_path: str) -> Optional[str]:
        """Public URL of an object; None when the client returns nothing usable."""
        try:
            url = self.storage.from_(bucket_name).get_public_url(file_path)
        except Exception as e:
            logger.error(f"Failed to resolve public URL for {bucket_name}/{file_path}: {e}")
            raise
        if isinstance(url, str) and url:
            return url
        return None

    async def delete_files(self, bucket_name: str, file_paths: List[str]) -> bool:
        """Remove objects from a bucket."""
        try:
            self.storage.from_(bucket_name).remove(file_paths)
            logger.info(f"🗑️ [STORAGE] Removed {len(file_paths)} object(s) from {bucket_name}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete {file_paths} from {bucket_name}: {e}")
            raise
