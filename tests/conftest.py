"""
Pytest configuration and fixtures for FluxInkVerse API tests.

Supabase is replaced by an in-memory table store that speaks the
SupabaseClient.execute_query interface; Supabase Auth by a SupabaseAuth
subclass with canned users; Xendit by an httpx.MockTransport.
"""
import os
import copy
import json
import pytest
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from uuid import uuid4

import httpx
from fastapi import HTTPException
from fastapi.testclient import TestClient

# Set testing environment before importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-key-for-fluxinkverse-tests"
os.environ["XENDIT_SECRET_KEY"] = "xnd_development_test_secret"
os.environ["XENDIT_CALLBACK_TOKEN"] = "cb-token-123"

from main import app
from database import get_database
from middleware.rate_limiting import reset_rate_limits
from models.user import AuthUser
from services.supabase_auth import SupabaseAuth, get_supabase_auth
from services.xendit_service import XenditClient, get_xendit_client


USER_TOKEN = "token-user"
ADMIN_TOKEN = "token-admin"
USER_ID = "11111111-1111-1111-1111-111111111111"
ADMIN_ID = "22222222-2222-2222-2222-222222222222"


# =============================================================================
# IN-MEMORY SUPABASE
# =============================================================================

class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        self.storage.objects[(self.name, path)] = {"data": file, "options": file_options or {}}
        return {"path": path}

    def get_public_url(self, path):
        if self.storage.public_url_broken:
            return ""
        return f"https://test.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths):
        if self.storage.remove_fails:
            raise RuntimeError("remove denied by policy")
        for path in paths:
            self.storage.objects.pop((self.name, path), None)
            self.storage.removed.append((self.name, path))
        return []


class FakeStorage:
    def __init__(self):
        self.objects: Dict[Any, Dict[str, Any]] = {}
        self.removed: List[Any] = []
        self.public_url_broken = False
        self.remove_fails = False

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


def _unescape_like(pattern: str) -> str:
    return pattern.replace("\\%", "%").replace("\\_", "_").replace("\\\\", "\\")


# Integer columns; PostgREST refuses to cast anything else
NUMERIC_COLUMNS = {"komik": ("id",), "komik_ratings": ("komik_id",)}


class FakeDB:
    """Table store implementing SupabaseClient.execute_query and its async wrapper."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.storage = FakeStorage()
        self.failing = set()
        self.calls: List[Dict[str, Any]] = []

    def fail_on(self, table: str, operation: str):
        self.failing.add((table, operation))

    def is_available(self) -> bool:
        return True

    def get_performance_metrics(self) -> Dict[str, Any]:
        return {"total_queries": len(self.calls), "failed_queries": 0}

    @staticmethod
    def _matches(row, filters, ilike):
        for key, value in (filters or {}).items():
            if row.get(key) != value:
                return False
        for key, pattern in (ilike or {}).items():
            if str(row.get(key) or "").lower() != _unescape_like(pattern).lower():
                return False
        return True

    @staticmethod
    def _order(rows, order_by):
        if not order_by:
            return rows
        clauses = [order_by] if isinstance(order_by, str) else list(order_by)
        for clause in reversed(clauses):
            column, _, direction = clause.partition(":")
            rows = sorted(
                rows,
                key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
                reverse=direction == "desc"
            )
        return rows

    @staticmethod
    def _project(row, columns):
        if columns == "*":
            return dict(row)
        keys = [c.strip() for c in columns.split(",")]
        return {k: row.get(k) for k in keys}

    def execute_query(
        self,
        table,
        operation,
        data=None,
        filters=None,
        columns="*",
        use_service_key=False,
        single=False,
        order_by=None,
        limit=None,
        offset=None,
        on_conflict=None,
        ilike=None,
    ):
        self.calls.append({
            "table": table, "operation": operation, "data": copy.deepcopy(data),
            "filters": dict(filters or {}), "use_service_key": use_service_key,
        })
        if (table, operation) in self.failing:
            raise RuntimeError(f"{operation} on {table} failed")
        for column in NUMERIC_COLUMNS.get(table, ()):
            value = (filters or {}).get(column)
            if value is not None and not str(value).isdigit():
                raise RuntimeError(f'invalid input syntax for type bigint: "{value}"')

        rows = self.tables.setdefault(table, [])

        if operation == "select":
            result = [r for r in rows if self._matches(r, filters, ilike)]
            result = self._order(result, order_by)
            if offset:
                result = result[offset:]
            if limit:
                result = result[:limit]
            result = [self._project(r, columns) for r in result]

        elif operation == "insert":
            row = dict(data)
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            rows.append(row)
            result = [dict(row)]

        elif operation == "upsert":
            keys = [k.strip() for k in (on_conflict or "id").split(",")]
            existing = next((r for r in rows if all(r.get(k) == data.get(k) for k in keys)), None)
            if existing is not None:
                existing.update(data)
                result = [dict(existing)]
            else:
                rows.append(dict(data))
                result = [dict(data)]

        elif operation == "update":
            result = []
            for row in rows:
                if self._matches(row, filters, None):
                    row.update(data)
                    result.append(dict(row))

        elif operation == "delete":
            kept = [r for r in rows if not self._matches(r, filters, None)]
            result = [dict(r) for r in rows if self._matches(r, filters, None)]
            self.tables[table] = kept

        else:
            raise ValueError(f"Unsupported operation: {operation}")

        if single:
            return result[0] if result else None
        return result

    async def execute_query_async(self, table, operation, timeout=None, **kwargs):
        return self.execute_query(table, operation, **kwargs)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])


def seed_tables() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "komik": [
            {
                "id": "1", "slug": "solo-leveling", "judul_buku": "Solo Leveling",
                "deskripsi": "Arc baru dimulai.", "cover_url": "https://cdn.test/solo.png",
                "author": "Chugong", "chapter": 58, "genre": ["Action", "Fantasy"],
                "status": "Ongoing", "rating": 4.9, "rating_count": 120, "view": 981234,
                "created_at": "2026-01-01T00:00:00+00:00", "updated_at": "2026-01-23T13:15:00+00:00",
            },
            {
                "id": "2", "slug": "tonikaku-kawai", "judul_buku": "Tonikaku Kawai",
                "deskripsi": "  ", "cover_url": "https://cdn.test/toni.png",
                "author": "Kenjiro Hata", "chapter": 24, "genre": ["Romance", "Slice of Life"],
                "status": "Ongoing", "rating": 4.6, "rating_count": 40, "view": 412900,
                "created_at": "2026-01-02T00:00:00+00:00", "updated_at": "2026-01-22T11:40:00+00:00",
            },
            {
                "id": "3", "slug": "jujutsu-kaisen", "judul_buku": "Jujutsu Kaisen",
                "deskripsi": "Kutukan dan penyihir.", "cover_url": "https://cdn.test/jjk.png",
                "author": "Gege Akutami", "chapter": 3, "genre": ["Action", "Supernatural"],
                "status": "Ongoing", "rating": 4.8, "rating_count": 80, "view": 1200340,
                "created_at": "2026-01-03T00:00:00+00:00", "updated_at": "2026-01-20T05:05:00+00:00",
            },
        ],
        "komik_chapters": [
            {"id": "ch1", "komik_id": "3", "number": 1, "title": "Ryomen Sukuna", "volume": None,
             "released_at": "2026-01-05T03:00:00+00:00"},
            {"id": "ch2", "komik_id": "3", "number": 2, "title": "For Myself", "volume": None,
             "released_at": None},
            {"id": "ch3", "komik_id": "3", "number": 3, "title": "Girl of Steel", "volume": None,
             "released_at": None},
        ],
        "komik_pages": [
            {"chapter_id": "ch1", "page_no": 2, "image_path": "/jujutsu-kaisen/1/02.jpg"},
            {"chapter_id": "ch1", "page_no": 1, "image_path": "jujutsu-kaisen/1/01.jpg"},
            {"chapter_id": "ch2", "page_no": 1, "image_path": "https://images.test/jjk/2/01.jpg"},
        ],
        "komik_ratings": [],
        "genre": [
            {"id": 1, "genre": ["Action", "Romance"]},
            {"id": 2, "genre": ["Action", "Fantasy", "Horror"]},
        ],
        "profiles": [
            {"id": USER_ID, "role": "user", "is_premium": False, "premium_since": None},
            {"id": ADMIN_ID, "role": "admin", "is_premium": False, "premium_since": None},
        ],
        "payments": [],
        "pengumuman": [
            {"id": "p1", "title": "Maintenance", "content": "Server maintenance malam ini.",
             "created_at": "2026-01-10T10:00:00+00:00", "updated_at": None},
            {"id": "p2", "title": "Update Chapter", "content": "Solo Leveling chapter baru!",
             "created_at": "2026-01-20T10:00:00+00:00", "updated_at": "2026-01-21T10:00:00+00:00"},
        ],
    }


# =============================================================================
# FAKE SUPABASE AUTH
# =============================================================================

def sample_users() -> Dict[str, Dict[str, Any]]:
    return {
        USER_TOKEN: {
            "id": USER_ID,
            "email": "reader@example.com",
            "user_metadata": {"display_name": "Reader", "avatar_url": "https://lh3.test/reader.png"},
            "app_metadata": {"provider": "google"},
            "identities": [{"provider": "google", "identity_data": {"picture": "https://lh3.test/reader.png"}}],
        },
        ADMIN_TOKEN: {
            "id": ADMIN_ID,
            "email": "admin@example.com",
            "user_metadata": {},
            "app_metadata": {"provider": "email"},
            "identities": [],
        },
    }


class FakeAuth(SupabaseAuth):
    """SupabaseAuth with canned users instead of GoTrue calls."""

    def __init__(self, users: Dict[str, Dict[str, Any]]):
        super().__init__()
        self.users = users
        self.signed_out: List[str] = []
        self.password = "secret123"

    def _lookup(self, token: str) -> Dict[str, Any]:
        user = self.users.get(token)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid authentication token")
        return user

    async def authenticate(self, token: str) -> AuthUser:
        user = self._lookup(token)
        return AuthUser(
            id=user["id"],
            email=user.get("email"),
            access_token=token,
            user_metadata=copy.deepcopy(user.get("user_metadata") or {}),
            app_metadata=copy.deepcopy(user.get("app_metadata") or {}),
            identities=copy.deepcopy(user.get("identities") or []),
        )

    async def get_user(self, token: str) -> Dict[str, Any]:
        return copy.deepcopy(self._lookup(token))

    async def update_user_metadata(self, token: str, data: Dict[str, Any]) -> Dict[str, Any]:
        user = self._lookup(token)
        user.setdefault("user_metadata", {}).update(data)
        return copy.deepcopy(user)

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        for token, user in self.users.items():
            if user.get("email") == email and password == self.password:
                return {"access_token": token, "refresh_token": f"refresh-{token}", "expires_in": 3600,
                        "token_type": "bearer", "user": copy.deepcopy(user)}
        raise HTTPException(status_code=401, detail="Invalid login credentials")

    async def sign_up(self, email: str, password: str, user_metadata=None) -> Dict[str, Any]:
        return {"access_token": None, "refresh_token": None, "expires_in": None, "token_type": "bearer",
                "user": {"id": str(uuid4()), "email": email, "user_metadata": user_metadata or {}}}

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        token = refresh_token.replace("refresh-", "", 1)
        user = self._lookup(token)
        return {"access_token": token, "refresh_token": refresh_token, "expires_in": 3600,
                "token_type": "bearer", "user": copy.deepcopy(user)}

    async def sign_out(self, token: str) -> bool:
        self.signed_out.append(token)
        return True


# =============================================================================
# XENDIT MOCK
# =============================================================================

class XenditRecorder:
    """MockTransport handler that records requests and replays a canned answer."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.body: Any = {
            "id": "qr_0123456789",
            "reference_id": None,
            "type": "DYNAMIC",
            "currency": "IDR",
            "status": "ACTIVE",
            "qr_string": "00020101021226660014ID.LINKAJA.WWW",
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def fake_db():
    return FakeDB(seed_tables())


@pytest.fixture
def fake_auth():
    return FakeAuth(sample_users())


@pytest.fixture
def xendit():
    return XenditRecorder()


@pytest.fixture
def client(fake_db, fake_auth, xendit):
    """Test client wired to the in-memory fakes."""
    app.dependency_overrides[get_database] = lambda: fake_db
    app.dependency_overrides[get_supabase_auth] = lambda: fake_auth
    app.dependency_overrides[get_xendit_client] = lambda: XenditClient(transport=httpx.MockTransport(xendit))
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


# Custom markers for test categorization
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "auth: mark test as authentication related")
    config.addinivalue_line("markers", "payments: mark test as payment related")
    config.addinivalue_line("markers", "security: mark test as security related")
