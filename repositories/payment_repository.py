"""
Payment repository for premium purchases.
All access uses the service key; the webhook has no user session.
"""
from typing import Optional, List, Dict, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


class PaymentRepository:
    """Repository for payment database operations."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def create(self, payment_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return await self.db.execute_query_async(
                "payments",
                "insert",
                data=payment_data,
                use_service_key=True,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to create payment {payment_data.get('order_id')}: {e}")
            raise

    async def get_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.db.execute_query_async(
                "payments",
                "select",
                filters={"order_id": order_id},
                use_service_key=True,
                single=True
            )
        except Exception as e:
            logger.error(f"Failed to get payment {order_id}: {e}")
            raise

    async def update_by_order_id(
        self,
        order_id: str,
        data: Dict[str, Any],
        only_status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Update a payment by order id.

        Args:
            only_status: when set, rows in any other status are left untouched
        """
        filters = {"order_id": order_id}
        if only_status:
            filters["status"] = only_status
        try:
            return await self.db.execute_query_async(
                "payments",
                "update",
                data=data,
                filters=filters,
                use_service_key=True
            )
        except Exception as e:
            logger.error(f"Failed to update payment {order_id}: {e}")
            raise

    async def list_recent_for_user(self, user_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        try:
            return await self.db.execute_query_async(
                "payments",
                "select",
                columns="id, order_id, amount, status, created_at",
                filters={"user_id": user_id},
                order_by="created_at:desc",
                limit=limit,
                use_service_key=True
            )
        except Exception as e:
            logger.error(f"Failed to list payments for user {user_id}: {e}")
            raise
