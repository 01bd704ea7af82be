"""
Catalog service: explore list, home feed, genres and comic detail.
"""
import math
import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from fastapi import Depends

from config import settings
from database import SupabaseClient, get_database
from models.comic import ComicSummary, ComicListResponse, ComicDetailResponse, ComicStats, SortKey
from repositories.chapter_repository import ChapterRepository
from repositories.comic_repository import ComicRepository
from services.chapter_service import ChapterService
from utils.exceptions import NotFoundError
from utils.formatting import format_compact_id, format_date_id, format_rating, parse_timestamp

logger = logging.getLogger(__name__)

NO_SYNOPSIS = "Belum ada sinopsis."
ALL_TAGS = "All"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _updated_key(comic: ComicSummary) -> datetime:
    return parse_timestamp(comic.updated_at) or _EPOCH


def sort_comics(comics: List[ComicSummary], sort: SortKey) -> List[ComicSummary]:
    if sort == SortKey.NEWEST:
        return sorted(comics, key=_updated_key, reverse=True)
    if sort == SortKey.RATING:
        return sorted(comics, key=lambda c: c.rating or 0.0, reverse=True)
    if sort == SortKey.AZ:
        return sorted(comics, key=lambda c: c.title.lower())
    return sorted(comics, key=lambda c: c.views, reverse=True)


def filter_comics(comics: List[ComicSummary], q: str = "", tag: str = ALL_TAGS) -> List[ComicSummary]:
    """Substring search over title, author and tags, then an exact tag filter."""
    qq = (q or "").strip().lower()
    data = list(comics)

    if qq:
        data = [
            c for c in data
            if qq in c.title.lower()
            or qq in (c.author or "").lower()
            or any(qq in t.lower() for t in c.tags)
        ]

    if tag and tag != ALL_TAGS:
        data = [c for c in data if tag in c.tags]

    return data


def tag_facets(comics: List[ComicSummary]) -> List[str]:
    unique = {t for c in comics for t in c.tags}
    return [ALL_TAGS] + sorted(unique, key=lambda t: (t.lower(), t))


def flatten_genres(rows: List[Dict[str, Any]]) -> List[str]:
    """Flatten genre arrays, first occurrence wins."""
    seen = []
    for row in rows:
        values = row.get("genre")
        if not isinstance(values, list):
            continue
        for value in values:
            if value and value not in seen:
                seen.append(value)
    return seen


def require_comic_id(comic_id: Any) -> str:
    """komik.id is numeric; anything else cannot name a comic."""
    text = str(comic_id if comic_id is not None else "").strip()
    if not text.isascii() or not text.isdigit():
        raise NotFoundError("Komik tidak ditemukan.", resource_id=str(comic_id), resource_type="komik")
    return text


class CatalogService:
    """Read side of the comic catalog."""

    def __init__(self, comics: ComicRepository, chapter_service: ChapterService):
        self.comics = comics
        self.chapter_service = chapter_service

    async def list_comics(self, q: str = "", tag: str = ALL_TAGS, sort: SortKey = SortKey.POPULAR) -> ComicListResponse:
        comics = [ComicSummary.from_row(row) for row in await self.comics.list_all()]
        items = sort_comics(filter_comics(comics, q, tag), sort)
        return ComicListResponse(
            items=items,
            total=len(items),
            tags=tag_facets(comics),
            popular=sort_comics(comics, SortKey.POPULAR)[:settings.popular_limit],
        )

    async def popular_comics(self, limit: Optional[int] = None) -> List[ComicSummary]:
        rows = await self.comics.list_popular(limit or settings.popular_limit)
        return [ComicSummary.from_row(row) for row in rows]

    async def list_genres(self) -> List[str]:
        return flatten_genres(await self.comics.list_genre_rows())

    async def get_comic_by_id(self, comic_id: str) -> ComicSummary:
        comic_id = require_comic_id(comic_id)
        row = await self.comics.get_by_id(comic_id)
        if not row:
            raise NotFoundError("Komik tidak ditemukan.", resource_id=comic_id, resource_type="komik")
        return ComicSummary.from_row(row)

    async def increment_view(self, comic: Dict[str, Any]) -> None:
        """
        Read-then-write view bump. Concurrent readers can lose updates.
        Failures never break the page.
        """
        try:
            current = await self.comics.get_by_id(str(comic["id"]))
            views = int((current or comic).get("view") or 0)
            await self.comics.set_views(str(comic["id"]), views + 1)
        except Exception as e:
            logger.warning(f"⚠️ [CATALOG] View increment failed for {comic.get('id')}: {e}")

    async def get_comic_detail(self, slug: str, count_view: bool = True) -> ComicDetailResponse:
        key = (slug or "").strip().lower()
        row = await self.comics.get_by_slug(key) if key else None
        if not row:
            raise NotFoundError("Komik tidak ditemukan.", resource_id=slug, resource_type="komik")

        comic = ComicSummary.from_row(row)
        chapters = await self.chapter_service.load_chapters(row)
        total_chapters = len(chapters) or comic.last_chapter
        total_volumes = max(1, math.ceil(total_chapters / settings.volume_size))
        comic_slug = comic.slug or key

        if count_view:
            await self.increment_view(row)

        return ComicDetailResponse(
            comic=comic,
            synopsis=(comic.description or "").strip() or NO_SYNOPSIS,
            chapters=chapters,
            total_chapters=total_chapters,
            total_volumes=total_volumes,
            first_chapter_url=f"/komik/{comic_slug}/chapter/1",
            latest_chapter_url=f"/komik/{comic_slug}/chapter/{total_chapters or 1}",
            stats=ComicStats(
                views=format_compact_id(comic.views),
                rating=format_rating(comic.rating),
                updated=format_date_id(comic.updated_at),
            ),
        )


def get_catalog_service(db: SupabaseClient = Depends(get_database)) -> CatalogService:
    comics = ComicRepository(db)
    return CatalogService(comics, ChapterService(comics, ChapterRepository(db)))
