"""
Public announcements (pengumuman).
"""
from fastapi import APIRouter, Depends

from models.announcement import AnnouncementListResponse
from services.announcement_service import AnnouncementService, get_announcement_service

router = APIRouter(tags=["announcements"])


@router.get("", response_model=AnnouncementListResponse)
async def list_announcements(
    q: str = "",
    announcements: AnnouncementService = Depends(get_announcement_service)
):
    return await announcements.list_announcements(q)
