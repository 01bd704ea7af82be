"""
Chapter listing and reader service.

Chapters are numbered from 1 and bucketed into volumes of VOLUME_SIZE when
the row carries no explicit volume. Comics without chapter rows get a
generated list 1..komik.chapter so the detail page is never empty.
"""
import math
import re
import logging
import time
from typing import Optional, List, Dict, Any

from fastapi import Depends

from config import settings
from database import SupabaseClient, get_database
from models.comic import Chapter, ChapterOrder, ChapterListResponse, ChapterReadResponse, ReaderPage, VolumeGroup
from repositories.chapter_repository import ChapterRepository
from repositories.comic_repository import ComicRepository
from utils.exceptions import NotFoundError
from utils.formatting import format_date_id

logger = logging.getLogger(__name__)

VOLUME_QUERY = re.compile(r"^vol(?:ume)?\.?\s*(\d+)$")


def volume_of(chapter: Chapter, volume_size: Optional[int] = None) -> int:
    """Explicit volume, or ceil(number / volume_size)."""
    if chapter.volume is not None:
        return chapter.volume
    return math.ceil(chapter.number / (volume_size or settings.volume_size))


def chapter_from_row(row: Dict[str, Any]) -> Chapter:
    released_at = row.get("released_at")
    return Chapter(
        id=str(row["id"]) if row.get("id") is not None else None,
        number=int(row["number"]),
        title=row.get("title"),
        volume=int(row["volume"]) if row.get("volume") is not None else None,
        released_at=released_at,
        released_label=format_date_id(released_at) if released_at else "—",
    )


def fallback_chapters(last_chapter: int, volume_size: Optional[int] = None) -> List[Chapter]:
    """Chapters 1..last_chapter for comics without komik_chapters rows."""
    size = volume_size or settings.volume_size
    return [
        Chapter(number=n, title=f"Chapter {n}", volume=math.ceil(n / size))
        for n in range(1, max(0, last_chapter) + 1)
    ]


def _sort(chapters: List[Chapter], order: ChapterOrder) -> List[Chapter]:
    return sorted(chapters, key=lambda ch: ch.number, reverse=(order == ChapterOrder.NEWEST))


def filter_chapters(
    chapters: List[Chapter],
    q: str = "",
    order: ChapterOrder = ChapterOrder.NEWEST,
    volume_size: Optional[int] = None
) -> List[Chapter]:
    """
    Search and sort a chapter list.

    The query matches the chapter number, the title or the "vol N" label by
    substring. A query that is exactly "vol N" or "volume N" selects volume N
    only, so "vol 2" does not also return volumes 20-29.
    """
    qq = (q or "").strip().lower()
    data = list(chapters)

    if qq:
        exact = VOLUME_QUERY.match(qq)
        if exact:
            wanted = int(exact.group(1))
            data = [ch for ch in data if volume_of(ch, volume_size) == wanted]
        else:
            data = [
                ch for ch in data
                if qq in str(ch.number)
                or qq in (ch.title or "").lower()
                or qq in f"vol {volume_of(ch, volume_size)}"
            ]

    return _sort(data, order)


def group_by_volume(
    chapters: List[Chapter],
    order: ChapterOrder = ChapterOrder.NEWEST,
    volume_size: Optional[int] = None
) -> List[VolumeGroup]:
    """Volumes descending; chapters inside each volume follow the order."""
    buckets: Dict[int, List[Chapter]] = {}
    for ch in chapters:
        buckets.setdefault(volume_of(ch, volume_size), []).append(ch)

    return [
        VolumeGroup(volume=volume, chapters=_sort(items, order))
        for volume, items in sorted(buckets.items(), key=lambda item: item[0], reverse=True)
    ]


def public_page_url(image_path: str) -> str:
    """Absolute URLs pass through; storage paths resolve against the public pages bucket."""
    path = (image_path or "").strip()
    if path.lower().startswith(("http://", "https://")):
        return path
    return f"{settings.public_storage_base}/{settings.pages_bucket}/{path.lstrip('/')}"


def parse_chapter_number(raw: Any) -> Optional[int]:
    """Chapter numbers are positive integers; anything else is not a chapter."""
    text = str(raw).strip()
    if not text.isdigit():
        return None
    number = int(text)
    return number if number >= 1 else None


class ChapterService:
    """Chapter list and reader operations."""

    def __init__(self, comics: ComicRepository, chapters: ChapterRepository):
        self.comics = comics
        self.chapters = chapters

    async def _get_comic(self, slug: str) -> Dict[str, Any]:
        key = (slug or "").strip().lower()
        comic = await self.comics.get_by_slug(key) if key else None
        if not comic:
            raise NotFoundError("Komik tidak ditemukan.", resource_id=slug, resource_type="komik")
        return comic

    async def load_chapters(self, comic: Dict[str, Any]) -> List[Chapter]:
        """Chapter rows of a comic, or the generated fallback list."""
        rows = await self.chapters.list_for_comic(str(comic["id"]))
        if rows:
            return [chapter_from_row(row) for row in rows]
        return fallback_chapters(int(comic.get("chapter") or 0))

    async def list_chapters(
        self,
        slug: str,
        q: str = "",
        order: ChapterOrder = ChapterOrder.NEWEST
    ) -> ChapterListResponse:
        comic = await self._get_comic(slug)
        all_chapters = await self.load_chapters(comic)
        chapters = filter_chapters(all_chapters, q, order)
        return ChapterListResponse(
            slug=comic.get("slug") or slug,
            q=q or "",
            order=order,
            total=len(all_chapters),
            matched=len(chapters),
            volumes=group_by_volume(chapters, order),
        )

    async def read_chapter(self, slug: str, raw_number: Any) -> ChapterReadResponse:
        """
        Resolve one chapter with its page images.

        Raises:
            NotFoundError: bad number, unknown comic, number past the last
                chapter, missing chapter row, or a chapter without pages
        """
        number = parse_chapter_number(raw_number)
        if number is None:
            raise NotFoundError("Chapter tidak ditemukan.", resource_id=str(raw_number), resource_type="chapter")

        comic = await self._get_comic(slug)
        chapters = await self.load_chapters(comic)
        total = len(chapters) or int(comic.get("chapter") or 0)

        if total <= 0 or number > total:
            raise NotFoundError("Chapter tidak ditemukan.", resource_id=str(number), resource_type="chapter")

        started = time.perf_counter()
        row = await self.chapters.get_chapter(str(comic["id"]), number)
        if not row:
            raise NotFoundError("Chapter tidak ditemukan.", resource_id=str(number), resource_type="chapter")

        pages = await self.chapters.list_pages(str(row["id"]))
        if not pages:
            raise NotFoundError("Halaman chapter belum tersedia.", resource_id=str(row["id"]), resource_type="page")

        logger.debug(f"📖 [READER] {slug} ch.{number}: {len(pages)} pages in {(time.perf_counter() - started) * 1000:.1f}ms")

        return ChapterReadResponse(
            slug=comic.get("slug") or slug,
            comic_title=comic.get("judul_buku") or "",
            number=number,
            title=row.get("title"),
            total_chapters=total,
            prev=number - 1 if number > 1 else None,
            next=number + 1 if number < total else None,
            pages=[
                ReaderPage(page_no=int(page.get("page_no") or index + 1), url=public_page_url(page.get("image_path") or ""))
                for index, page in enumerate(pages)
            ],
        )


def get_chapter_service(db: SupabaseClient = Depends(get_database)) -> ChapterService:
    return ChapterService(ComicRepository(db), ChapterRepository(db))
