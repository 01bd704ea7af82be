"""
Admin content service: comic insertion with cover upload and the admin comic list.
"""
import logging
import time
from typing import Optional, List

from fastapi import Depends

from config import settings
from database import SupabaseClient, get_database
from models.comic import ComicSummary
from models.user import AuthUser
from repositories.comic_repository import ComicRepository
from repositories.storage_repository import StorageRepository
from utils.exceptions import DatabaseError, StorageError, ValidationError
from utils.formatting import slugify
from utils.uploads import size_limit_message

logger = logging.getLogger(__name__)

# Slugs that collide with fixed routes under /comics
RESERVED_SLUGS = {"popular", "genres"}


def unique_genres(genres: Optional[List[str]]) -> List[str]:
    """Trimmed, non-empty, first occurrence wins."""
    result: List[str] = []
    for genre in genres or []:
        value = (genre or "").strip()
        if value and value not in result:
            result.append(value)
    return result


def cover_object_name(filename: str, now_ms: Optional[int] = None) -> str:
    """Storage object name for an uploaded cover: cover-{ms}-{filename}."""
    safe_name = (filename or "cover").replace("/", "_").replace("\\", "_").strip() or "cover"
    return f"cover-{now_ms if now_ms is not None else int(time.time() * 1000)}-{safe_name}"


class AdminContentService:
    """Comic management for admins."""

    def __init__(self, comics: ComicRepository, storage: StorageRepository):
        self.comics = comics
        self.storage = storage

    async def list_comics(self, q: str = "") -> List[ComicSummary]:
        """Newest first; q matches title, author or any genre."""
        items = [ComicSummary.from_row(row) for row in await self.comics.list_all("created_at:desc")]
        qq = (q or "").strip().lower()
        if not qq:
            return items
        return [
            c for c in items
            if qq in c.title.lower()
            or qq in (c.author or "").lower()
            or any(qq in t.lower() for t in c.tags)
        ]

    async def _unique_slug(self, title: str) -> str:
        slug = slugify(title)
        if slug in RESERVED_SLUGS or await self.comics.get_by_slug(slug):
            slug = f"{slug}-{int(time.time() * 1000)}"
        return slug

    async def create_comic(
        self,
        admin: AuthUser,
        title: str,
        cover_filename: Optional[str],
        cover_data: Optional[bytes],
        cover_content_type: Optional[str] = None,
        description: str = "",
        author: str = "",
        chapter: int = 0,
        genres: Optional[List[str]] = None
    ) -> ComicSummary:
        """
        Upload the cover, then insert the komik row.

        Raises:
            ValidationError: missing title/cover, non-image or oversized cover
            StorageError: public URL could not be resolved
        """
        title = (title or "").strip()
        if not title or not cover_data:
            raise ValidationError("Judul dan gambar cover wajib diisi.")
        if cover_content_type and not cover_content_type.startswith("image/"):
            raise ValidationError("File cover harus gambar (jpg/png/webp).")
        if len(cover_data) > settings.max_cover_size:
            raise ValidationError(size_limit_message("cover", settings.max_cover_size))
        if chapter < 0:
            raise ValidationError("Jumlah chapter tidak boleh negatif.")

        object_name = cover_object_name(cover_filename or "cover")
        await self.storage.upload_file(
            settings.covers_bucket,
            object_name,
            cover_data,
            content_type=cover_content_type,
            upsert=True
        )

        cover_url = self.storage.get_public_url(settings.covers_bucket, object_name)
        if not cover_url:
            raise StorageError("Gagal mengambil public URL cover.", bucket=settings.covers_bucket)

        row = await self.comics.create({
            "judul_buku": title,
            "slug": await self._unique_slug(title),
            "deskripsi": (description or "").strip(),
            "cover_url": cover_url,
            "author": (author or "").strip(),
            "chapter": chapter,
            "genre": unique_genres(genres),
        })
        if not row:
            raise DatabaseError("Gagal menyimpan komik.", operation="insert", table="komik")

        logger.info(f"📚 [ADMIN] {admin.id} added comic '{title}' ({row.get('id')})")
        return ComicSummary.from_row(row)


def get_admin_content_service(db: SupabaseClient = Depends(get_database)) -> AdminContentService:
    return AdminContentService(ComicRepository(db), StorageRepository(db))
