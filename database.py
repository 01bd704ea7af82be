"""
Database connection and session management for Supabase.
Pure database layer, no business logic.
Thread-safe singleton wrapper around the anon and service-role clients.
"""
from supabase import create_client, Client
from typing import Optional, Dict, Any, List, Union
from config import settings
from utils.exceptions import DatabaseError
import asyncio
import logging
import threading
import time

logger = logging.getLogger(__name__)

OrderBy = Union[str, List[str], None]


class SupabaseClient:
    """
    Thread-safe singleton Supabase client wrapper.

    The anon client is subject to row-level security and is used for public
    catalog reads. The service client bypasses RLS and is used for writes the
    backend performs on behalf of an already-authenticated user, and for the
    payment webhook.
    """

    _instance = None
    _initialized = False
    _lock = threading.RLock()

    def __new__(cls):
        # Double-checked locking pattern for thread-safe singleton
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            self._client: Optional[Client] = None
            self._service_client: Optional[Client] = None
            self._is_available: Optional[bool] = None
            self._total_queries = 0
            self._failed_queries = 0
            self._initialization_time = time.time()
            self._stats_lock = threading.RLock()

            SupabaseClient._initialized = True
            logger.info("🔗 [DATABASE] Supabase client wrapper initialized")

    @property
    def client(self) -> Client:
        """Get client with anon key (for public reads)."""
        if self._client is None:
            logger.info(f"Creating Supabase client with URL: {settings.supabase_url[:50]}...")
            try:
                self._client = create_client(
                    settings.supabase_url,
                    settings.supabase_anon_key
                )
                logger.info("✅ Supabase client created successfully")
            except Exception as e:
                logger.error(f"❌ Failed to create Supabase client: {e}")
                raise
        return self._client

    @property
    def service_client(self) -> Client:
        """Get client with service key (for server-side writes, bypasses RLS)."""
        if self._service_client is None:
            if not settings.supabase_service_role_key:
                logger.warning("⚠️ [DATABASE] No service role key configured - falling back to anon client")
                return self.client
            try:
                self._service_client = create_client(
                    settings.supabase_url,
                    settings.get_service_key.strip()
                )
                logger.info("✅ [DATABASE] Service client created")
            except Exception as e:
                logger.error(f"❌ [DATABASE] Failed to create Supabase service client: {e}")
                raise
        return self._service_client

    @property
    def storage(self):
        """Get storage client (uses service key for uploads and removals)."""
        return self.service_client.storage

    def is_available(self) -> bool:
        """Check if Supabase is reachable."""
        if self._is_available is not None:
            return self._is_available

        try:
            result = self.client.table("komik").select("id").limit(1).execute()
            self._is_available = result.data is not None
            if self._is_available:
                logger.info("✅ Supabase connection verified")
            else:
                logger.warning("⚠️ Supabase connection failed")
            return self._is_available
        except Exception as e:
            logger.error(f"❌ Supabase connection error: {e}")
            self._is_available = False
            return False

    def get_performance_metrics(self) -> Dict[str, Any]:
        """Query counters for the health endpoint."""
        with self._stats_lock:
            return {
                "total_queries": self._total_queries,
                "failed_queries": self._failed_queries,
                "uptime_seconds": round(time.time() - self._initialization_time, 1),
                "service_client_ready": self._service_client is not None,
            }

    @staticmethod
    def _apply_order(query, order_by: OrderBy):
        """Apply one or more "column[:desc]" order clauses."""
        if not order_by:
            return query
        clauses = [order_by] if isinstance(order_by, str) else order_by
        for clause in clauses:
            if ":" in clause:
                column, direction = clause.split(":", 1)
                query = query.order(column, desc=direction.lower() == "desc")
            else:
                query = query.order(clause)
        return query

    @staticmethod
    def _apply_filters(query, filters: Optional[Dict[str, Any]], ilike: Optional[Dict[str, str]] = None):
        if filters:
            for key, value in filters.items():
                query = query.eq(key, value)
        if ilike:
            for key, pattern in ilike.items():
                query = query.ilike(key, pattern)
        return query

    def execute_query(
        self,
        table: str,
        operation: str,
        data: Optional[Dict[str, Any]] = None,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = "*",
        use_service_key: bool = False,
        single: bool = False,
        order_by: OrderBy = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        on_conflict: Optional[str] = None,
        ilike: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Execute database query with proper error handling.

        Args:
            table: Table name
            operation: 'select', 'insert', 'update', 'upsert', 'delete'
            data: Data for insert/update/upsert operations
            filters: Equality filters for select/update/delete operations
            columns: Column list for select
            use_service_key: Whether to use service key (bypasses RLS)
            single: Return the first record (or None) instead of a list
            order_by: Order clause(s), e.g. "created_at:desc"
            limit: Limit number of results
            offset: Offset for pagination
            on_conflict: Conflict target columns for upsert
            ilike: Case-insensitive pattern filters for select
        """
        with self._stats_lock:
            self._total_queries += 1

        client = self.service_client if use_service_key else self.client
        start_time = time.time()

        try:
            query = client.table(table)

            if operation == "select":
                query = query.select(columns)
                query = self._apply_filters(query, filters, ilike)
                query = self._apply_order(query, order_by)
                if limit:
                    query = query.limit(limit)
                if offset:
                    query = query.range(offset, offset + (limit or 100) - 1)

            elif operation == "insert":
                if not data:
                    raise ValueError("Data required for insert operation")
                query = query.insert(data)

            elif operation == "upsert":
                if not data:
                    raise ValueError("Data required for upsert operation")
                if on_conflict:
                    query = query.upsert(data, on_conflict=on_conflict)
                else:
                    query = query.upsert(data)

            elif operation == "update":
                if not data:
                    raise ValueError("Data required for update operation")
                query = self._apply_filters(query.update(data), filters)

            elif operation == "delete":
                query = self._apply_filters(query.delete(), filters)

            else:
                raise ValueError(f"Unsupported operation: {operation}")

            result = query.execute()
            rows = result.data or []
            logger.debug(
                f"🔍 [DATABASE] {operation.upper()} {table}: {len(rows)} rows "
                f"in {(time.time() - start_time) * 1000:.1f}ms"
            )

            if single:
                return rows[0] if rows else None
            return rows

        except Exception as e:
            with self._stats_lock:
                self._failed_queries += 1
            logger.error(f"Database query failed ({operation} on {table}): {e}")
            raise

    async def execute_query_async(self, table: str, operation: str, timeout: Optional[float] = None, **kwargs) -> Any:
        """
        ASYNC wrapper for execute_query.
        The supabase client is synchronous, so the call runs in a worker thread
        and the event loop stays free for other requests.
        """
        timeout = timeout or settings.db_query_timeout
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.execute_query, table, operation, **kwargs),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"❌ [DATABASE] Query timeout after {timeout}s for {operation} on {table}")
            raise DatabaseError(
                f"Query timeout after {timeout}s",
                operation=operation,
                table=table,
                user_message="Database sedang lambat. Coba lagi."
            )


# Singleton populated during application startup
db: Optional[SupabaseClient] = None
_db_initialization_lock = threading.Lock()


def get_database() -> SupabaseClient:
    """
    Dependency returning the shared database client.
    Creates the wrapper lazily if startup initialization was skipped.
    """
    global db
    if db is None:
        with _db_initialization_lock:
            if db is None:
                db = SupabaseClient()
    return db


async def initialize_database_async() -> bool:
    """
    Initialize the database singleton and verify connectivity once at startup.

    Returns:
        bool: True if Supabase answered, False if running degraded
    """
    start_time = time.time()
    client = get_database()

    try:
        available = await asyncio.to_thread(client.is_available)
    except Exception as e:
        logger.error(f"❌ [DATABASE] Connectivity check failed: {e}")
        return False

    logger.info(f"📊 [DATABASE] Initialization completed in {(time.time() - start_time) * 1000:.2f}ms")
    return available


def health_check() -> bool:
    """Check database connection health."""
    try:
        return get_database().is_available()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
