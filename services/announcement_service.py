"""
Announcement (pengumuman) service.
"""
import logging

from fastapi import Depends

from database import SupabaseClient, get_database
from models.announcement import Announcement, AnnouncementListResponse
from models.user import AuthUser
from repositories.announcement_repository import AnnouncementRepository
from utils.exceptions import DatabaseError, ValidationError

logger = logging.getLogger(__name__)


class AnnouncementService:

    def __init__(self, announcements: AnnouncementRepository):
        self.announcements = announcements

    async def list_announcements(self, q: str = "") -> AnnouncementListResponse:
        """Newest first, optionally filtered by a title/content substring."""
        items = [Announcement.from_row(row) for row in await self.announcements.list_all()]
        qq = (q or "").strip().lower()
        if qq:
            items = [a for a in items if qq in a.title.lower() or qq in a.content.lower()]
        return AnnouncementListResponse(items=items, total=len(items))

    async def create_announcement(self, admin: AuthUser, title: str, content: str) -> Announcement:
        title = (title or "").strip()
        content = (content or "").strip()
        if not title or not content:
            raise ValidationError("Judul dan isi pengumuman wajib diisi.")

        row = await self.announcements.create(title, content)
        logger.info(f"📣 [ANNOUNCEMENTS] {admin.id} published '{title}'")
        if not row:
            raise DatabaseError("Gagal menyimpan pengumuman.", operation="insert", table="pengumuman")
        return Announcement.from_row(row)


def get_announcement_service(db: SupabaseClient = Depends(get_database)) -> AnnouncementService:
    return AnnouncementService(AnnouncementRepository(db))
