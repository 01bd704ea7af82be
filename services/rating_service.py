"""
Star ratings. The rating average and count on komik are maintained by the
database; this service only writes the caller's row and reads them back.
"""
import logging
from typing import Optional

from fastapi import Depends

from database import SupabaseClient, get_database
from models.comic import RatingResponse
from models.user import AuthUser
from repositories.comic_repository import ComicRepository
from repositories.rating_repository import RatingRepository
from services.catalog_service import require_comic_id
from utils.exceptions import AuthenticationError, ExternalServiceError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class RatingService:

    def __init__(self, comics: ComicRepository, ratings: RatingRepository):
        self.comics = comics
        self.ratings = ratings

    async def _stats(self, comic_id: str):
        stats = await self.comics.get_rating_stats(comic_id)
        if stats is None:
            raise NotFoundError("Komik tidak ditemukan.", resource_id=comic_id, resource_type="komik")
        return float(stats.get("rating") or 0), int(stats.get("rating_count") or 0)

    async def get_my_rating(self, comic_id: str, user: Optional[AuthUser]) -> RatingResponse:
        comic_id = require_comic_id(comic_id)
        average, count = await self._stats(comic_id)
        mine = await self.ratings.get_user_rating(comic_id, user.id) if user else None
        return RatingResponse(komik_id=comic_id, my_rating=mine, rating=average, rating_count=count)

    async def rate_comic(self, comic_id: str, user: Optional[AuthUser], value: int) -> RatingResponse:
        if user is None:
            raise AuthenticationError("Login dulu untuk memberikan rating.")
        if not 1 <= value <= 5:
            raise ValidationError("Rating harus 1 sampai 5.")
        comic_id = require_comic_id(comic_id)

        await self._stats(comic_id)

        try:
            await self.ratings.upsert_rating(comic_id, user.id, value)
        except Exception as e:
            logger.error(f"❌ [RATING] Upsert failed for {user.id} on {comic_id}: {e}")
            raise ExternalServiceError("Gagal mengirim rating. Coba lagi.", service_name="supabase")

        logger.info(f"⭐ [RATING] {user.id} rated {comic_id} with {value}")
        average, count = await self._stats(comic_id)
        return RatingResponse(komik_id=comic_id, my_rating=value, rating=average, rating_count=count)


def get_rating_service(db: SupabaseClient = Depends(get_database)) -> RatingService:
    return RatingService(ComicRepository(db), RatingRepository(db))
