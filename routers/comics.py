"""
Public catalog router: explore, home feed, comic detail, chapter list, reader and ratings.
"""
import logging
import time
from fastapi import APIRouter, Depends, Request, Query
from typing import List, Optional

from middleware.auth import get_current_user_optional
from middleware.request_tracking import add_timing_segment
from models.comic import (
    ChapterListResponse, ChapterOrder, ChapterReadResponse, ComicDetailResponse,
    ComicListResponse, ComicSummary, RatingRequest, RatingResponse, SortKey
)
from models.user import AuthUser
from services.catalog_service import CatalogService, get_catalog_service
from services.chapter_service import ChapterService, get_chapter_service
from services.rating_service import RatingService, get_rating_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["comics"])


@router.get("/comics", response_model=ComicListResponse)
async def list_comics(
    q: str = "",
    tag: str = "All",
    sort: SortKey = SortKey.POPULAR,
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Explore page: search, tag filter and sort over the whole catalog."""
    return await catalog.list_comics(q=q, tag=tag, sort=sort)


@router.get("/comics/popular", response_model=List[ComicSummary])
async def popular_comics(
    limit: int = Query(6, ge=1, le=50),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Home page feed ordered by views."""
    return await catalog.popular_comics(limit)


@router.get("/comics/genres", response_model=List[str])
async def list_genres(catalog: CatalogService = Depends(get_catalog_service)):
    return await catalog.list_genres()


@router.get("/books/{comic_id}", response_model=ComicSummary)
async def get_comic_by_id(comic_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    """Legacy lookup by primary key."""
    return await catalog.get_comic_by_id(comic_id)


@router.get("/comics/{slug}", response_model=ComicDetailResponse)
async def get_comic_detail(
    slug: str,
    request: Request,
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Comic detail; each load bumps the view counter."""
    started = time.perf_counter()
    detail = await catalog.get_comic_detail(slug)
    add_timing_segment(request, "db", (time.perf_counter() - started) * 1000)
    return detail


@router.get("/comics/{slug}/chapters", response_model=ChapterListResponse)
async def list_chapters(
    slug: str,
    q: str = "",
    order: ChapterOrder = ChapterOrder.NEWEST,
    chapters: ChapterService = Depends(get_chapter_service)
):
    """Chapter search grouped by volume. "vol N" selects a single volume."""
    return await chapters.list_chapters(slug, q=q, order=order)


@router.get("/comics/{slug}/chapters/{number}", response_model=ChapterReadResponse)
async def read_chapter(
    slug: str,
    number: str,
    request: Request,
    chapters: ChapterService = Depends(get_chapter_service)
):
    started = time.perf_counter()
    result = await chapters.read_chapter(slug, number)
    add_timing_segment(request, "db", (time.perf_counter() - started) * 1000)
    return result


@router.get("/comics/{comic_id}/rating", response_model=RatingResponse)
async def get_rating(
    comic_id: str,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    ratings: RatingService = Depends(get_rating_service)
):
    """Average, count and, for signed-in callers, their own rating."""
    return await ratings.get_my_rating(comic_id, current_user)


@router.post("/comics/{comic_id}/rating", response_model=RatingResponse)
async def rate_comic(
    comic_id: str,
    body: RatingRequest,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    ratings: RatingService = Depends(get_rating_service)
):
    return await ratings.rate_comic(comic_id, current_user, body.rating)
