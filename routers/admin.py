"""
Admin router: comic insertion and announcement publishing.
Every route requires profiles.role == "admin".
"""
import logging
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import List, Optional

from config import settings
from middleware.auth import require_admin_user
from models.announcement import Announcement, AnnouncementCreate
from models.comic import ComicSummary
from models.user import AuthUser
from services.admin_service import AdminContentService, get_admin_content_service
from services.announcement_service import AnnouncementService, get_announcement_service
from utils.uploads import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.get("/comics", response_model=List[ComicSummary])
async def admin_list_comics(
    q: str = "",
    admin: AuthUser = Depends(require_admin_user),
    content: AdminContentService = Depends(get_admin_content_service)
):
    """Newest first; q matches title, author or genre."""
    return await content.list_comics(q)


@router.post("/comics", response_model=ComicSummary, status_code=status.HTTP_201_CREATED)
async def create_comic(
    title: str = Form(""),
    description: str = Form(""),
    author: str = Form(""),
    chapter: int = Form(0),
    genres: List[str] = Form([]),
    cover: Optional[UploadFile] = File(None),
    admin: AuthUser = Depends(require_admin_user),
    content: AdminContentService = Depends(get_admin_content_service)
):
    """Insert a comic. Title and cover image are required."""
    cover_data = await read_upload(cover, settings.max_cover_size, label="cover") if cover is not None else None
    logger.info(f"📚 [ADMIN-ROUTER] {admin.id} submitting comic '{title.strip()}'")
    return await content.create_comic(
        admin,
        title=title,
        cover_filename=cover.filename if cover is not None else None,
        cover_data=cover_data,
        cover_content_type=cover.content_type if cover is not None else None,
        description=description,
        author=author,
        chapter=chapter,
        genres=genres,
    )


@router.post("/announcements", response_model=Announcement, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    body: AnnouncementCreate,
    admin: AuthUser = Depends(require_admin_user),
    announcements: AnnouncementService = Depends(get_announcement_service)
):
    return await announcements.create_announcement(admin, body.title, body.content)
