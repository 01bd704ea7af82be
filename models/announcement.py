"""
Announcement (pengumuman) schemas.
"""
from pydantic import BaseModel
from typing import Optional, Dict, Any, List

from utils.formatting import format_date_id


class Announcement(BaseModel):
    id: str
    title: str
    content: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    date_label: str = "—"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Announcement":
        return cls(
            id=str(row.get("id")),
            title=row.get("title") or "",
            content=row.get("content") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            date_label=format_date_id(row.get("updated_at") or row.get("created_at")),
        )


class AnnouncementCreate(BaseModel):
    """Both fields are checked after trimming by the service."""
    title: str = ""
    content: str = ""


class AnnouncementListResponse(BaseModel):
    items: List[Announcement]
    total: int
