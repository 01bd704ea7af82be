"""
Profile repository: role and premium flags keyed by auth user id.
"""
from typing import Optional, Dict, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


class ProfileRepository:
    """Repository for the profiles table."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.db.execute_query_async(
                "profiles",
                "select",
                columns="id, role, is_premium, premium_since",
                filters={"id": user_id},
                use_service_key=True,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to get profile {user_id}: {e}")
            raise

    async def get_role(self, user_id: str) -> Optional[str]:
        profile = await self.get_profile(user_id)
        return profile.get("role") if profile else None

    async def mark_premium(self, user_id: str, since: str) -> None:
        try:
            await self.db.execute_query_async(
                "profiles",
                "update",
                data={"is_premium": True, "premium_since": since},
                filters={"id": user_id},
                use_service_key=True
            )
        except Exception as e:
            logger.error(f"Failed to mark user {user_id} as premium: {e}")
            raise
