"""
Personal Library Service

Books a user keeps in their library ("saved books").

The paginated list is cached per page under saved_books:<user>:<page>:<limit>
and embeds combined-rating snapshots, so it is dropped whenever the user
saves/unsaves or the rating of a contained book changes.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.config import Settings
from library_api.exceptions import ConflictError, NotFoundError
from library_api.models import Playlist, Review, SavedBook
from library_api.services import cache_keys
from library_api.services.books import BookService
from library_api.services.cache import CacheService
from library_api.services.invalidation import CacheInvalidator
from library_api.utils.pagination import paginate, pagination_response

logger = logging.getLogger(__name__)


class LibraryService:
    """Save / unsave / list a user's books."""

    def __init__(
        self,
        books: BookService,
        invalidator: CacheInvalidator,
        cache: CacheService,
        settings: Settings,
    ) -> None:
        self._books = books
        self._invalidator = invalidator
        self._cache = cache
        self._settings = settings

    async def get_saved_books(
        self,
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        """
        One page of the user's library, most recently saved first.

        The first books of the page carry full detail (description,
        download links); all of them carry combined ratings.
        """
        offset, limit = paginate(page, limit)

        cache_key = cache_keys.saved_books(user_id, page, limit)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        total = (await db.execute(
            select(func.count(SavedBook.id)).where(SavedBook.user_id == user_id)
        )).scalar() or 0

        rows = (await db.execute(
            select(SavedBook)
            .where(SavedBook.user_id == user_id)
            .order_by(SavedBook.saved_at.desc(), SavedBook.id.desc())
            .offset(offset)
            .limit(limit)
        )).scalars().all()

        books = await self._books.get_summaries(
            [row.book_id for row in rows],
            detail_limit=self._settings.detail_prefix_size,
        )
        items = [
            {"book": book, "saved_at": row.saved_at.isoformat()}
            for row, book in zip(rows, books)
        ]

        result = pagination_response(items, total, page, limit)
        await self._cache.set(cache_key, result, ttl=self._settings.saved_books_cache_ttl)
        return result

    async def is_book_saved(self, db: AsyncSession, user_id: int, book_id: str) -> bool:
        stmt = select(SavedBook.id).where(SavedBook.user_id == user_id, SavedBook.book_id == book_id)
        return (await db.execute(stmt)).scalar_one_or_none() is not None

    async def save_book(self, db: AsyncSession, user_id: int, book_id: str) -> dict[str, Any]:
        """
        Add a work to the user's library.

        Raises:
            ConflictError: already saved
            BookNotFoundError: unknown work id
        """
        if await self.is_book_saved(db, user_id, book_id):
            raise ConflictError("Book already saved to your library")

        await self._books.catalog.get_by_id(book_id)

        saved = SavedBook(user_id=user_id, book_id=book_id)
        db.add(saved)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Book already saved to your library") from e
        await db.refresh(saved)

        await self._invalidator.invalidate_book_cache(book_id, user_id, rating_changed=False)

        logger.info(f"User {user_id} saved book {book_id}")
        return {"id": saved.id, "book_id": saved.book_id, "saved_at": saved.saved_at}

    async def remove_book(self, db: AsyncSession, user_id: int, book_id: str) -> None:
        """
        Remove a work from the user's library.

        Raises:
            NotFoundError: the book is not in the library
        """
        stmt = select(SavedBook).where(SavedBook.user_id == user_id, SavedBook.book_id == book_id)
        saved = (await db.execute(stmt)).scalar_one_or_none()
        if saved is None:
            raise NotFoundError("Book not found in your library")

        await db.delete(saved)
        await db.commit()

        await self._invalidator.invalidate_book_cache(book_id, user_id, rating_changed=False)
        logger.info(f"User {user_id} removed book {book_id}")

    async def get_user_stats(self, db: AsyncSession, user_id: int) -> dict[str, Any]:
        """Counts of saved books, reviews and playlists plus the user's average rating."""
        saved_count = (await db.execute(
            select(func.count(SavedBook.id)).where(SavedBook.user_id == user_id)
        )).scalar() or 0
        review_count, avg_rating = (await db.execute(
            select(func.count(Review.id), func.avg(Review.rating)).where(Review.user_id == user_id)
        )).one()
        playlist_count = (await db.execute(
            select(func.count(Playlist.id)).where(Playlist.user_id == user_id)
        )).scalar() or 0

        return {
            "saved_books": saved_count,
            "reviews": review_count or 0,
            "playlists": playlist_count,
            "average_rating_given": round(float(avg_rating), 2) if avg_rating is not None else None,
        }
