"""
Ratings Service

Blends the upstream catalog's crowd rating with the ratings collected by
this library into one displayed figure.

    combined = (upstream_avg * upstream_count + local_avg * local_count)
               / (upstream_count + local_count)

If only one source has ratings it is used as is; with none the result is
{average_rating: None, rating_count: 0}.

The combined rating is the only rating ever shown to a user. Book
summaries carry the raw upstream fields, but lists always pass through
combine() (cached under ratings:combined:<id>) before being returned.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from library_api.config import Settings
from library_api.services import cache_keys
from library_api.services.cache import CacheService
from library_api.services.store import LibraryStore

logger = logging.getLogger(__name__)


def blend_ratings(
    upstream_rating: float | None,
    upstream_count: int,
    local_rating: float | None,
    local_count: int,
) -> dict[str, Any]:
    """
    Count-weighted average of the two rating sources.

    Upstream data only counts with a rating and a positive count; local
    data only counts with an average and a positive count.
    """
    has_upstream = upstream_rating is not None and upstream_count > 0
    has_local = local_rating is not None and local_count > 0

    upstream_source = {"rating": upstream_rating, "count": upstream_count} if has_upstream else None
    local_source = {"rating": local_rating, "count": local_count} if has_local else None
    sources = {"upstream": upstream_source, "local": local_source}

    if has_upstream and has_local:
        total = upstream_count + local_count
        average = (upstream_rating * upstream_count + local_rating * local_count) / total
        return {"average_rating": round(average, 2), "rating_count": total, "sources": sources}

    if has_upstream:
        return {"average_rating": round(upstream_rating, 2), "rating_count": upstream_count, "sources": sources}

    if has_local:
        return {"average_rating": round(local_rating, 2), "rating_count": local_count, "sources": sources}

    return {"average_rating": None, "rating_count": 0, "sources": sources}


class RatingAggregator:
    """Combined-rating lookups through the cache."""

    def __init__(self, store: LibraryStore, cache: CacheService, settings: Settings) -> None:
        self._store = store
        self._cache = cache
        self._settings = settings

    async def combine(
        self,
        book_id: str,
        upstream_rating: float | None,
        upstream_rating_count: int = 0,
    ) -> dict[str, Any]:
        """
        Combined rating for a book.

        Args:
            book_id: Open Library work id
            upstream_rating: Open Library average (None if unrated)
            upstream_rating_count: Number of Open Library ratings

        Returns:
            {"average_rating", "rating_count", "sources"}
        """
        cache_key = cache_keys.combined_rating(book_id)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            local_rating, local_count = await self._store.get_local_rating(book_id)
        except SQLAlchemyError as e:
            # Upstream-only, left uncached
            logger.error(f"Local rating lookup failed for {book_id}: {e}")
            return blend_ratings(upstream_rating, upstream_rating_count or 0, None, 0)

        combined = blend_ratings(upstream_rating, upstream_rating_count or 0, local_rating, local_count)
        await self._cache.set(cache_key, combined, ttl=self._settings.combined_rating_ttl)
        return combined

    async def combine_many(self, books: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Attach average_rating / rating_count to copies of a list of books.

        Lookups run concurrently; the input order is kept.
        """
        combined = await asyncio.gather(*(
            self.combine(
                book["id"],
                book.get("upstream_rating"),
                book.get("upstream_rating_count") or 0,
            )
            for book in books
        ))
        return [
            {
                **book,
                "average_rating": rating["average_rating"],
                "rating_count": rating["rating_count"],
            }
            for book, rating in zip(books, combined)
        ]
