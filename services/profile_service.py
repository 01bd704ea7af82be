"""
Profile service.

Display name, bio and avatars are stored in Supabase Auth user_metadata;
role and premium flags come from the profiles table. A custom avatar always
wins over the avatar supplied by the OAuth provider.
"""
import logging
import time
from typing import Optional, Dict, Any

from fastapi import Depends

from config import settings
from database import SupabaseClient, get_database
from models.user import AuthUser, ProfileResponse, ProfileActionResponse, UserResponse
from repositories.profile_repository import ProfileRepository
from repositories.storage_repository import StorageRepository
from services.supabase_auth import SupabaseAuth, get_supabase_auth
from utils.exceptions import StorageError, ValidationError
from utils.formatting import format_date_id
from utils.uploads import size_limit_message

logger = logging.getLogger(__name__)

PROVIDER_LABELS = {
    "google": "Google",
    "discord": "Discord",
    "email": "Email",
}

SOCIAL_AVATAR_KEYS = ("avatar_url", "picture", "avatar", "image", "profile_image_url")
IDENTITY_AVATAR_KEYS = ("avatar_url", "picture", "avatar", "image")


def safe_str(value: Any) -> Optional[str]:
    """Trimmed non-empty string, else None."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first(mapping: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = safe_str(mapping.get(key))
        if value:
            return value
    return None


def pick_display_name(user: Dict[str, Any]) -> str:
    meta = user.get("user_metadata") or {}
    email = safe_str(user.get("email"))
    return (
        _first(meta, ("display_name", "full_name", "name", "user_name"))
        or (safe_str(email.split("@")[0]) if email else None)
        or "User"
    )


def pick_bio(user: Dict[str, Any]) -> str:
    return safe_str((user.get("user_metadata") or {}).get("bio")) or ""


def pick_provider(user: Dict[str, Any]) -> str:
    app = user.get("app_metadata") or {}
    identities = user.get("identities") or []
    first_identity = identities[0] if identities and isinstance(identities[0], dict) else {}
    return safe_str(app.get("provider")) or safe_str(first_identity.get("provider")) or "email"


def format_provider(provider: str) -> str:
    return PROVIDER_LABELS.get((provider or "").lower(), provider or "Unknown")


def pick_social_avatar_url(user: Dict[str, Any]) -> Optional[str]:
    direct = _first(user.get("user_metadata") or {}, SOCIAL_AVATAR_KEYS)
    if direct:
        return direct

    for identity in user.get("identities") or []:
        if not isinstance(identity, dict):
            continue
        found = _first(identity.get("identity_data") or {}, IDENTITY_AVATAR_KEYS)
        if found:
            return found
    return None


def pick_custom_avatar_url(user: Dict[str, Any]) -> Optional[str]:
    return safe_str((user.get("user_metadata") or {}).get("custom_avatar_url"))


def validate_avatar(content_type: Optional[str], size: int) -> None:
    if not (content_type or "").startswith("image/"):
        raise ValidationError("File harus gambar (jpg/png/webp).")
    if size > settings.max_avatar_size:
        raise ValidationError(size_limit_message("gambar", settings.max_avatar_size))


def avatar_extension(filename: Optional[str]) -> str:
    name = filename or ""
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return ext or "png"


class ProfileService:
    """Profile reads and edits for the signed-in user."""

    def __init__(self, auth: SupabaseAuth, profiles: ProfileRepository, storage: StorageRepository):
        self.auth = auth
        self.profiles = profiles
        self.storage = storage

    async def _premium(self, user_id: str) -> Dict[str, Any]:
        return await self.profiles.get_profile(user_id) or {}

    def _build(self, user: Dict[str, Any], profile: Dict[str, Any]) -> ProfileResponse:
        provider = pick_provider(user)
        custom = pick_custom_avatar_url(user)
        social = pick_social_avatar_url(user)
        since = profile.get("premium_since")
        return ProfileResponse(
            id=str(user.get("id")),
            email=user.get("email"),
            display_name=pick_display_name(user),
            bio=pick_bio(user),
            provider=provider,
            provider_label=format_provider(provider),
            avatar_url=custom or social,
            custom_avatar_url=custom,
            social_avatar_url=social,
            is_premium=bool(profile.get("is_premium")),
            premium_since=since,
            premium_since_label=format_date_id(since) if since else "—",
        )

    async def get_profile(self, current: AuthUser) -> ProfileResponse:
        user = await self.auth.get_user(current.access_token)
        return self._build(user, await self._premium(current.id))

    async def get_me(self, current: AuthUser) -> UserResponse:
        """Current user with role and premium flags for the navbar."""
        profile = await self._premium(current.id)
        role = profile.get("role") or "user"
        return UserResponse(
            id=current.id,
            email=current.email,
            display_name=pick_display_name(current.model_dump()),
            role=role,
            is_admin=role == "admin",
            is_premium=bool(profile.get("is_premium")),
            premium_since=profile.get("premium_since"),
        )

    async def update_profile(
        self,
        current: AuthUser,
        display_name: Optional[str],
        bio: Optional[str]
    ) -> ProfileActionResponse:
        """Blank values are stored as null."""
        user = await self.auth.update_user_metadata(current.access_token, {
            "display_name": safe_str(display_name),
            "bio": safe_str(bio),
        })
        logger.info(f"👤 [PROFILE] {current.id} updated profile")
        return ProfileActionResponse(
            message="Profil berhasil diupdate.",
            profile=self._build(user, await self._premium(current.id)),
        )

    async def _remove_custom_avatar(self, user: Dict[str, Any]) -> None:
        """Best effort; storage policies may refuse the delete."""
        old_path = safe_str((user.get("user_metadata") or {}).get("custom_avatar_path"))
        if not old_path:
            return
        try:
            await self.storage.delete_files(settings.avatars_bucket, [old_path])
        except Exception as e:
            logger.warning(f"⚠️ [PROFILE] Could not remove old avatar {old_path}: {e}")

    async def upload_avatar(
        self,
        current: AuthUser,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes
    ) -> ProfileActionResponse:
        validate_avatar(content_type, len(data))

        user = await self.auth.get_user(current.access_token)
        await self._remove_custom_avatar(user)

        path = f"{current.id}/{int(time.time() * 1000)}.{avatar_extension(filename)}"
        await self.storage.upload_file(settings.avatars_bucket, path, data, content_type=content_type, upsert=True)

        public_url = self.storage.get_public_url(settings.avatars_bucket, path)
        if not public_url:
            raise StorageError("Gagal mengambil public URL avatar.", bucket=settings.avatars_bucket)

        updated = await self.auth.update_user_metadata(current.access_token, {
            "custom_avatar_url": public_url,
            "custom_avatar_path": path,
        })
        logger.info(f"🖼️ [PROFILE] {current.id} uploaded avatar {path}")
        return ProfileActionResponse(
            message="Avatar berhasil diupdate.",
            profile=self._build(updated, await self._premium(current.id)),
        )

    async def reset_avatar(self, current: AuthUser) -> ProfileActionResponse:
        """Drop the custom avatar and fall back to the social one, if any."""
        user = await self.auth.get_user(current.access_token)
        await self._remove_custom_avatar(user)

        updated = await self.auth.update_user_metadata(current.access_token, {
            "custom_avatar_url": None,
            "custom_avatar_path": None,
        })

        if pick_social_avatar_url(updated):
            message = "Avatar dikembalikan ke avatar sosmed."
        else:
            message = "Avatar custom dihapus. (Kamu belum punya avatar sosmed, jadi akan tampil avatar kosong)"

        return ProfileActionResponse(
            message=message,
            profile=self._build(updated, await self._premium(current.id)),
        )


def get_profile_service(
    db: SupabaseClient = Depends(get_database),
    auth: SupabaseAuth = Depends(get_supabase_auth)
) -> ProfileService:
    return ProfileService(auth, ProfileRepository(db), StorageRepository(db))
