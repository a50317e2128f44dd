"""
Library Store

The narrow read contract the recommendation core has on the relational
store: filtered lists and aggregates over saved books, reviews and
playlists. No transactions; every call opens a short session from the
shared session factory.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_api.models import PlaylistBook, Review, SavedBook


class LibraryStore:
    """Read-only queries used by preferences, ratings and invalidation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_recent_saved_book_ids(self, user_id: int, limit: int) -> list[str]:
        """Most recently saved book ids first."""
        stmt = (
            select(SavedBook.book_id)
            .where(SavedBook.user_id == user_id)
            .order_by(SavedBook.saved_at.desc(), SavedBook.id.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_high_rated_reviews(self, user_id: int, min_rating: int) -> list[tuple[str, int]]:
        """(book_id, rating) for the user's reviews rated at least min_rating."""
        stmt = (
            select(Review.book_id, Review.rating)
            .where(Review.user_id == user_id)
            .where(Review.rating >= min_rating)
            .order_by(Review.updated_at.desc(), Review.id.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [(row.book_id, row.rating) for row in rows]

    async def get_saved_book_ids(self, user_id: int) -> list[str]:
        stmt = select(SavedBook.book_id).where(SavedBook.user_id == user_id)
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_reviewed_book_ids(self, user_id: int) -> list[str]:
        stmt = select(Review.book_id).where(Review.user_id == user_id)
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_local_rating(self, book_id: str) -> tuple[float | None, int]:
        """
        Local rating aggregate for a book.

        Returns:
            (average rating or None, number of ratings)
        """
        stmt = select(
            func.avg(Review.rating),
            func.count(Review.id),
        ).where(Review.book_id == book_id)
        async with self._session_factory() as session:
            avg_rating, count = (await session.execute(stmt)).one()
        return (float(avg_rating) if avg_rating is not None else None, count or 0)

    async def get_user_ids_who_saved(self, book_id: str) -> list[int]:
        stmt = select(SavedBook.user_id).where(SavedBook.book_id == book_id).distinct()
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_playlist_ids_containing(self, book_id: str) -> list[int]:
        stmt = select(PlaylistBook.playlist_id).where(PlaylistBook.book_id == book_id).distinct()
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())
