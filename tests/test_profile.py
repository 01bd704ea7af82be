"""
Tests for the profile page: metadata pickers, edits and avatar management.
"""
import asyncio
import io

import pytest
from fastapi import UploadFile

from config import settings
from conftest import USER_ID, USER_TOKEN, ADMIN_TOKEN
from services.profile_service import (
    avatar_extension, format_provider, pick_custom_avatar_url, pick_display_name, pick_provider, pick_social_avatar_url
)
from utils.exceptions import ValidationError
from utils.uploads import read_upload

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.unit
class TestProfilePickers:

    def test_display_name_precedence(self):
        assert pick_display_name({"user_metadata": {"full_name": "Full", "name": "Name"}}) == "Full"
        assert pick_display_name({"user_metadata": {"display_name": "  "}, "email": "rina@x.id"}) == "rina"
        assert pick_display_name({}) == "User"

    def test_provider_from_app_metadata_then_identity(self):
        assert pick_provider({"app_metadata": {"provider": "discord"}}) == "discord"
        assert pick_provider({"identities": [{"provider": "google"}]}) == "google"
        assert pick_provider({}) == "email"

    def test_provider_labels(self):
        assert format_provider("google") == "Google"
        assert format_provider("github") == "github"
        assert format_provider("") == "Unknown"

    def test_social_avatar_from_identity_data(self):
        user = {"user_metadata": {}, "identities": [{"identity_data": {"avatar_url": "https://cdn.discord.test/a.png"}}]}
        assert pick_social_avatar_url(user) == "https://cdn.discord.test/a.png"
        assert pick_social_avatar_url({"user_metadata": {"picture": " https://p.test/x.jpg "}}) == "https://p.test/x.jpg"
        assert pick_social_avatar_url({}) is None

    def test_custom_avatar(self):
        assert pick_custom_avatar_url({"user_metadata": {"custom_avatar_url": "https://c.test/me.png"}}) == "https://c.test/me.png"
        assert pick_custom_avatar_url({"user_metadata": {"custom_avatar_url": None}}) is None

    def test_avatar_extension(self):
        assert avatar_extension("Me.JPEG") == "jpeg"
        assert avatar_extension("noext") == "png"
        assert avatar_extension(None) == "png"


@pytest.mark.integration
class TestProfileEndpoints:

    def test_requires_login(self, client):
        assert client.get("/api/v1/profile").status_code == 401

    def test_social_profile(self, client, user_headers):
        response = client.get("/api/v1/profile", headers=user_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Reader"
        assert data["provider"] == "google"
        assert data["provider_label"] == "Google"
        assert data["avatar_url"] == "https://lh3.test/reader.png"
        assert data["custom_avatar_url"] is None
        assert data["premium_since_label"] == "—"

    def test_email_profile_without_avatar(self, client, admin_headers):
        data = client.get("/api/v1/profile", headers=admin_headers).json()
        assert data["provider_label"] == "Email"
        assert data["avatar_url"] is None
        assert data["display_name"] == "admin"

    def test_premium_since_label(self, client, fake_db, user_headers):
        fake_db.rows("profiles")[0].update({"is_premium": True, "premium_since": "2026-01-23T01:00:00+00:00"})
        data = client.get("/api/v1/profile", headers=user_headers).json()
        assert data["is_premium"] is True
        assert data["premium_since_label"] == "23 Jan 2026"

    def test_update_trims_and_clears(self, client, fake_auth, user_headers):
        response = client.patch("/api/v1/profile", json={"display_name": "  Budi  ", "bio": "   "}, headers=user_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Profil berhasil diupdate."
        assert data["profile"]["display_name"] == "Budi"
        assert data["profile"]["bio"] == ""
        assert fake_auth.users[USER_TOKEN]["user_metadata"]["bio"] is None

    def test_avatar_upload(self, client, fake_db, user_headers):
        response = client.post(
            "/api/v1/profile/avatar",
            files={"file": ("me.PNG", PNG, "image/png")},
            headers=user_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Avatar berhasil diupdate."
        custom = data["profile"]["custom_avatar_url"]
        assert custom.startswith(f"https://test.supabase.co/storage/v1/object/public/avatars/{USER_ID}/")
        assert custom.endswith(".png")
        assert data["profile"]["avatar_url"] == custom
        assert data["profile"]["social_avatar_url"] == "https://lh3.test/reader.png"

        (bucket, path), stored = next(iter(fake_db.storage.objects.items()))
        assert bucket == "avatars"
        assert stored["data"] == PNG
        assert stored["options"]["upsert"] == "true"
        assert stored["options"]["content-type"] == "image/png"

    def test_new_avatar_replaces_old_object(self, client, fake_db, fake_auth, user_headers):
        fake_auth.users[USER_TOKEN]["user_metadata"]["custom_avatar_path"] = f"{USER_ID}/old.png"
        client.post("/api/v1/profile/avatar", files={"file": ("a.png", PNG, "image/png")}, headers=user_headers)
        assert fake_db.storage.removed == [("avatars", f"{USER_ID}/old.png")]

    def test_avatar_must_be_image(self, client, user_headers):
        response = client.post(
            "/api/v1/profile/avatar",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "File harus gambar (jpg/png/webp)."

    def test_avatar_size_limit(self, client, user_headers):
        big = b"\x00" * (5 * 1024 * 1024 + 1)
        response = client.post(
            "/api/v1/profile/avatar",
            files={"file": ("big.png", big, "image/png")},
            headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Ukuran gambar maksimal 5MB."

    def test_avatar_public_url_failure(self, client, fake_db, user_headers):
        fake_db.storage.public_url_broken = True
        response = client.post("/api/v1/profile/avatar", files={"file": ("a.png", PNG, "image/png")}, headers=user_headers)
        assert response.status_code == 502
        assert response.json()["detail"] == "Gagal mengambil public URL avatar."

    def test_reset_falls_back_to_social_avatar(self, client, user_headers):
        client.post("/api/v1/profile/avatar", files={"file": ("a.png", PNG, "image/png")}, headers=user_headers)
        response = client.delete("/api/v1/profile/avatar", headers=user_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Avatar dikembalikan ke avatar sosmed."
        assert data["profile"]["custom_avatar_url"] is None
        assert data["profile"]["avatar_url"] == "https://lh3.test/reader.png"

    def test_reset_without_social_avatar(self, client, admin_headers):
        response = client.delete("/api/v1/profile/avatar", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == (
            "Avatar custom dihapus. (Kamu belum punya avatar sosmed, jadi akan tampil avatar kosong)"
        )

    def test_reset_survives_storage_refusal(self, client, fake_db, fake_auth, admin_headers):
        fake_auth.users[ADMIN_TOKEN]["user_metadata"].update({
            "custom_avatar_url": "https://test.supabase.co/storage/v1/object/public/avatars/x.png",
            "custom_avatar_path": "x.png",
        })
        fake_db.storage.remove_fails = True
        response = client.delete("/api/v1/profile/avatar", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["profile"]["custom_avatar_url"] is None


class CountingUpload(UploadFile):
    """UploadFile that remembers how many bytes each read asked for."""

    async def read(self, size: int = -1) -> bytes:
        self.requested.append(size)
        return await super().read(size)


@pytest.mark.unit
@pytest.mark.security
class TestBoundedUploads:

    def test_declared_size_rejected_without_reading(self):
        upload = UploadFile(io.BytesIO(b"x" * 64), size=50 * 1024 * 1024, filename="huge.png")
        with pytest.raises(ValidationError):
            asyncio.run(read_upload(upload, 1024))
        assert upload.file.tell() == 0

    def test_undeclared_size_reads_at_most_limit_plus_one(self):
        upload = CountingUpload(io.BytesIO(b"x" * 4096), filename="big.png")
        upload.requested = []
        with pytest.raises(ValidationError) as exc:
            asyncio.run(read_upload(upload, 100))
        assert upload.requested == [101]
        assert exc.value.field_errors == {"file": ["too_large"]}

    def test_within_limit(self):
        upload = UploadFile(io.BytesIO(PNG), filename="a.png")
        assert asyncio.run(read_upload(upload, len(PNG))) == PNG

    def test_oversized_avatar_never_reaches_storage(self, client, fake_db, user_headers, monkeypatch):
        monkeypatch.setattr(settings, "max_avatar_size", 32)
        response = client.post(
            "/api/v1/profile/avatar",
            files={"file": ("a.png", PNG, "image/png")},
            headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Ukuran gambar maksimal")
        assert fake_db.storage.objects == {}
