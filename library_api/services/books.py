"""
Book Service

Read side of the catalog as the API exposes it: every list and detail that
leaves this module carries the combined rating (upstream crowd rating
blended with local reviews), never the raw upstream figure alone.

Operations:
- search(): fielded search
- get_book(): full work detail with rating sources
- get_trending(): trending works
- get_by_category(): subject listing for a category slug
- get_summaries(): summaries for stored work ids (saved books, playlists)
"""

import logging
from typing import Any

from library_api.config import Settings
from library_api.services.catalog import CatalogGateway, book_summary
from library_api.services.ratings import RatingAggregator
from library_api.utils.categories import get_open_library_subject

logger = logging.getLogger(__name__)


class BookService:
    """Catalog reads with combined ratings attached."""

    def __init__(
        self,
        catalog: CatalogGateway,
        ratings: RatingAggregator,
        settings: Settings,
    ) -> None:
        self.catalog = catalog
        self.ratings = ratings
        self._settings = settings

    async def search(self, query: str | None = None, **params: Any) -> dict[str, Any]:
        """
        Search the catalog.

        Args:
            query: Free-text query
            **params: page, limit and field filters (see CatalogGateway.search)

        Returns:
            {"total": int, "books": [BookSummary + combined rating]}
        """
        result = await self.catalog.search(query, **params)
        books = await self.ratings.combine_many(result["books"])
        return {"total": result["total"], "books": books}

    async def get_book(self, book_id: str) -> dict[str, Any]:
        """
        Work detail with the combined rating and its sources.

        Raises:
            BookNotFoundError: unknown work id
        """
        detail = await self.catalog.get_by_id(book_id)
        rating = await self.ratings.combine(
            book_id,
            detail.get("upstream_rating"),
            detail.get("upstream_rating_count") or 0,
        )
        return {
            **detail,
            "average_rating": rating["average_rating"],
            "rating_count": rating["rating_count"],
            "rating_sources": rating["sources"],
        }

    async def get_trending(self, period: str = "daily", limit: int = 10) -> list[dict[str, Any]]:
        books = await self.catalog.get_trending(period, limit)
        return await self.ratings.combine_many(books)

    async def get_by_category(self, category: str, limit: int = 10, offset: int = 0) -> dict[str, Any]:
        """Subject listing; friendly category slugs map onto Open Library subjects."""
        subject = get_open_library_subject(category) or category
        listing = await self.catalog.get_by_subject(subject, limit=limit, offset=offset)
        books = await self.ratings.combine_many(listing["books"])
        return {"name": listing["name"], "total": listing["total"], "books": books}

    async def get_summaries(
        self,
        book_ids: list[str],
        detail_limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Summaries for stored work ids, in the given order, with combined
        ratings.

        One batch lookup resolves titles, authors, covers, subjects and
        crowd ratings; the first `detail_limit` books are then enriched
        with full detail (description, download links). Ids the catalog no
        longer knows keep a bare summary so stored entries never disappear.
        """
        if not book_ids:
            return []

        found = await self.catalog.get_batch(book_ids)
        books = [found.get(book_id) or book_summary(book_id, None) for book_id in book_ids]

        if detail_limit:
            books = await self.catalog.enrich_with_details(books, limit=detail_limit)

        return await self.ratings.combine_many(books)
