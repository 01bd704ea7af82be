"""
Comic, chapter and reader schemas.
Rows come from the komik, komik_chapters and komik_pages tables.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from enum import Enum


class SortKey(str, Enum):
    """Catalog sort orders."""
    POPULAR = "popular"
    NEWEST = "newest"
    RATING = "rating"
    AZ = "az"


class ChapterOrder(str, Enum):
    """Chapter list order."""
    NEWEST = "newest"
    OLDEST = "oldest"


class ComicSummary(BaseModel):
    """Card-level comic data used by the home, explore and admin lists."""
    id: str
    slug: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    cover_url: Optional[str] = None
    author: Optional[str] = None
    last_chapter: int = 0
    tags: List[str] = []
    status: Optional[str] = None
    rating: Optional[float] = None
    rating_count: int = 0
    views: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ComicSummary":
        """Map a komik row onto the API shape."""
        return cls(
            id=str(row.get("id")),
            slug=row.get("slug"),
            title=row.get("judul_buku") or "",
            description=row.get("deskripsi"),
            cover_url=row.get("cover_url"),
            author=row.get("author"),
            last_chapter=int(row.get("chapter") or 0),
            tags=[g for g in (row.get("genre") or []) if g],
            status=row.get("status"),
            rating=float(row["rating"]) if row.get("rating") is not None else None,
            rating_count=int(row.get("rating_count") or 0),
            views=int(row.get("view") or 0),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at") or row.get("created_at"),
        )


class ComicListResponse(BaseModel):
    """Explore page payload."""
    items: List[ComicSummary]
    total: int
    tags: List[str]
    popular: List[ComicSummary]


class Chapter(BaseModel):
    """A chapter as listed on the comic detail page."""
    id: Optional[str] = None
    number: int
    title: Optional[str] = None
    volume: Optional[int] = None
    released_at: Optional[str] = None
    released_label: str = "—"


class VolumeGroup(BaseModel):
    """Chapters bucketed into one volume."""
    volume: int
    chapters: List[Chapter]


class ChapterListResponse(BaseModel):
    """Filtered, grouped chapter list."""
    slug: str
    q: str = ""
    order: ChapterOrder = ChapterOrder.NEWEST
    total: int  # every chapter of the comic
    matched: int  # chapters left after the query
    volumes: List[VolumeGroup]


class ComicStats(BaseModel):
    """Formatted stat tiles."""
    views: str
    rating: str
    updated: str


class ComicDetailResponse(BaseModel):
    """Comic detail page payload."""
    comic: ComicSummary
    synopsis: str
    chapters: List[Chapter]
    total_chapters: int
    total_volumes: int
    first_chapter_url: str
    latest_chapter_url: str
    stats: ComicStats


class ReaderPage(BaseModel):
    """One page image of a chapter."""
    page_no: int
    url: str


class ChapterReadResponse(BaseModel):
    """Chapter reader payload."""
    slug: str
    comic_title: str
    number: int
    title: Optional[str] = None
    total_chapters: int
    prev: Optional[int] = None
    next: Optional[int] = None
    pages: List[ReaderPage]


class RatingRequest(BaseModel):
    """Star rating submission."""
    rating: int = Field(..., ge=1, le=5, description="Stars, 1 to 5")


class RatingResponse(BaseModel):
    """Rating state after a read or a submission."""
    komik_id: str
    my_rating: Optional[int] = None
    rating: float = 0.0
    rating_count: int = 0
