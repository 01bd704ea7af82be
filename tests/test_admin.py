"""
Tests for announcements and the admin content endpoints.
"""
import pytest

from config import settings
from services.admin_service import cover_object_name, unique_genres

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.unit
class TestAdminHelpers:

    def test_unique_genres(self):
        assert unique_genres([" Action", "Action", "", "Drama ", None]) == ["Action", "Drama"]
        assert unique_genres(None) == []

    def test_cover_object_name(self):
        assert cover_object_name("op.png", 1700000000000) == "cover-1700000000000-op.png"
        assert cover_object_name("a/b.png", 1) == "cover-1-a_b.png"


@pytest.mark.integration
class TestAnnouncements:

    def test_newest_first_with_date_labels(self, client):
        response = client.get("/api/v1/announcements")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [a["id"] for a in data["items"]] == ["p2", "p1"]
        assert data["items"][0]["date_label"] == "21 Jan 2026"
        assert data["items"][1]["date_label"] == "10 Jan 2026"

    def test_search(self, client):
        data = client.get("/api/v1/announcements", params={"q": "SOLO"}).json()
        assert [a["id"] for a in data["items"]] == ["p2"]

    def test_publish_requires_admin(self, client, user_headers):
        response = client.post("/api/v1/admin/announcements", json={"title": "x", "content": "y"}, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    def test_publish_requires_login(self, client):
        assert client.post("/api/v1/admin/announcements", json={"title": "x", "content": "y"}).status_code == 401

    def test_publish_validation(self, client, admin_headers):
        response = client.post("/api/v1/admin/announcements", json={"title": "  ", "content": "isi"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Judul dan isi pengumuman wajib diisi."

    def test_publish(self, client, fake_db, admin_headers):
        response = client.post(
            "/api/v1/admin/announcements",
            json={"title": " Event ", "content": " Giveaway premium! "},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["title"] == "Event"
        assert fake_db.rows("pengumuman")[-1]["content"] == "Giveaway premium!"
        assert client.get("/api/v1/announcements").json()["items"][0]["title"] == "Event"

    def test_role_lookup_failure(self, client, fake_db, admin_headers):
        fake_db.fail_on("profiles", "select")
        response = client.post("/api/v1/admin/announcements", json={"title": "x", "content": "y"}, headers=admin_headers)
        assert response.status_code == 503


@pytest.mark.integration
class TestAdminComics:

    def test_list_newest_first_with_search(self, client, admin_headers):
        response = client.get("/api/v1/admin/comics", params={"q": "action"}, headers=admin_headers)
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == ["3", "1"]

    def test_list_forbidden_for_readers(self, client, user_headers):
        assert client.get("/api/v1/admin/comics", headers=user_headers).status_code == 403

    def test_create_comic(self, client, fake_db, admin_headers):
        response = client.post(
            "/api/v1/admin/comics",
            data={
                "title": " One Piece ",
                "description": "Bajak laut.",
                "author": "Oda",
                "chapter": "12",
                "genres": ["Action", "Adventure", "Action"],
            },
            files={"cover": ("op.png", PNG, "image/png")},
            headers=admin_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "One Piece"
        assert data["slug"] == "one-piece"
        assert data["last_chapter"] == 12
        assert data["tags"] == ["Action", "Adventure"]
        assert data["cover_url"].startswith("https://test.supabase.co/storage/v1/object/public/covers/cover-")
        assert data["cover_url"].endswith("-op.png")

        bucket, name = next(iter(fake_db.storage.objects))
        assert bucket == "covers"
        assert name.startswith("cover-")
        assert fake_db.rows("komik")[-1]["deskripsi"] == "Bajak laut."

    def test_duplicate_title_gets_suffixed_slug(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/comics",
            data={"title": "Solo Leveling"},
            files={"cover": ("s.png", PNG, "image/png")},
            headers=admin_headers
        )
        assert response.status_code == 201
        slug = response.json()["slug"]
        assert slug.startswith("solo-leveling-")
        assert slug != "solo-leveling"

    def test_title_and_cover_required(self, client, admin_headers):
        response = client.post("/api/v1/admin/comics", data={"title": "Tanpa Cover"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Judul dan gambar cover wajib diisi."

    def test_cover_must_be_image(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/comics",
            data={"title": "X"},
            files={"cover": ("x.pdf", b"%PDF", "application/pdf")},
            headers=admin_headers
        )
        assert response.status_code == 400

    def test_negative_chapter(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/comics",
            data={"title": "X", "chapter": "-1"},
            files={"cover": ("x.png", PNG, "image/png")},
            headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Jumlah chapter tidak boleh negatif."

    def test_create_forbidden_for_readers(self, client, fake_db, user_headers):
        response = client.post(
            "/api/v1/admin/comics",
            data={"title": "X"},
            files={"cover": ("x.png", PNG, "image/png")},
            headers=user_headers
        )
        assert response.status_code == 403
        assert fake_db.storage.objects == {}

    def test_oversized_cover_is_rejected_before_upload(self, client, fake_db, admin_headers, monkeypatch):
        monkeypatch.setattr(settings, "max_cover_size", 16)
        response = client.post(
            "/api/v1/admin/comics",
            data={"title": "Terlalu Besar"},
            files={"cover": ("big.png", PNG, "image/png")},
            headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Ukuran cover maksimal")
        assert fake_db.storage.objects == {}
        assert not any(row.get("judul_buku") == "Terlalu Besar" for row in fake_db.rows("komik"))

    @pytest.mark.parametrize("title", ["Popular", "Genres"])
    def test_route_names_are_never_used_as_slugs(self, client, admin_headers, title):
        response = client.post(
            "/api/v1/admin/comics",
            data={"title": title},
            files={"cover": ("c.png", PNG, "image/png")},
            headers=admin_headers
        )
        assert response.status_code == 201
        slug = response.json()["slug"]
        assert slug.startswith(f"{title.lower()}-")
        assert slug != title.lower()
