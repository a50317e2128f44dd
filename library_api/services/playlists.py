"""
Playlists Service

User-curated, ordered book lists.

Access Rules:
- Owners can read and modify their playlists
- Public playlists are readable by anyone; private ones only by the owner

The playlist view (playlist + books with combined ratings) is cached under
playlist:<id>:books and dropped on every change to the playlist and on
rating changes of a contained book.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.config import Settings
from library_api.exceptions import ConflictError, ForbiddenError, NotFoundError
from library_api.models import Playlist, PlaylistBook
from library_api.services import cache_keys
from library_api.services.books import BookService
from library_api.services.cache import CacheService
from library_api.services.invalidation import CacheInvalidator

logger = logging.getLogger(__name__)


def playlist_to_dict(playlist: Playlist) -> dict[str, Any]:
    return {
        "id": playlist.id,
        "user_id": playlist.user_id,
        "name": playlist.name,
        "description": playlist.description,
        "is_public": playlist.is_public,
        "created_at": playlist.created_at,
        "updated_at": playlist.updated_at,
    }


class PlaylistService:
    """Playlist CRUD with a cached read view."""

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

    async def _get_or_404(self, db: AsyncSession, playlist_id: int) -> Playlist:
        playlist = await db.get(Playlist, playlist_id)
        if playlist is None:
            raise NotFoundError(f"Playlist {playlist_id} not found")
        return playlist

    async def _get_owned(self, db: AsyncSession, playlist_id: int, user_id: int) -> Playlist:
        playlist = await self._get_or_404(db, playlist_id)
        if playlist.user_id != user_id:
            raise ForbiddenError("You can only modify your own playlists")
        return playlist

    async def create_playlist(
        self,
        db: AsyncSession,
        user_id: int,
        name: str,
        description: str | None = None,
        is_public: bool = False,
    ) -> dict[str, Any]:
        playlist = Playlist(user_id=user_id, name=name, description=description, is_public=is_public)
        db.add(playlist)
        await db.commit()
        await db.refresh(playlist)

        logger.info(f"User {user_id} created playlist {playlist.id}")
        return {**playlist_to_dict(playlist), "books": []}

    async def get_playlist(self, db: AsyncSession, playlist_id: int, user_id: int | None) -> dict[str, Any]:
        """
        Playlist with its books in position order.

        Raises:
            NotFoundError: unknown playlist
            ForbiddenError: private playlist of another user
        """
        cache_key = cache_keys.playlist_books(playlist_id)
        view = await self._cache.get(cache_key)

        if view is None:
            playlist = await self._get_or_404(db, playlist_id)
            book_ids = (await db.execute(
                select(PlaylistBook.book_id)
                .where(PlaylistBook.playlist_id == playlist_id)
                .order_by(PlaylistBook.position, PlaylistBook.id)
            )).scalars().all()

            view = {
                **playlist_to_dict(playlist),
                "books": await self._books.get_summaries(list(book_ids)),
            }
            await self._cache.set(cache_key, view, ttl=self._settings.playlist_cache_ttl)

        if not view["is_public"] and view["user_id"] != user_id:
            raise ForbiddenError("This playlist is private")
        return view

    async def add_book(self, db: AsyncSession, playlist_id: int, user_id: int, book_id: str) -> None:
        """
        Append a work to the end of a playlist.

        Raises:
            ConflictError: the book is already in the playlist
            BookNotFoundError: unknown work id
        """
        await self._get_owned(db, playlist_id, user_id)

        existing = (await db.execute(
            select(PlaylistBook.id).where(
                PlaylistBook.playlist_id == playlist_id,
                PlaylistBook.book_id == book_id,
            )
        )).scalar_one_or_none()
        if existing is not None:
            raise ConflictError("Book already in playlist")

        await self._books.catalog.get_by_id(book_id)

        last_position = (await db.execute(
            select(func.max(PlaylistBook.position)).where(PlaylistBook.playlist_id == playlist_id)
        )).scalar()
        position = 0 if last_position is None else last_position + 1

        db.add(PlaylistBook(playlist_id=playlist_id, book_id=book_id, position=position))
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Book already in playlist") from e

        await self._invalidator.invalidate_playlist_cache(playlist_id)
        logger.info(f"Book {book_id} added to playlist {playlist_id}")

    async def remove_book(self, db: AsyncSession, playlist_id: int, user_id: int, book_id: str) -> None:
        await self._get_owned(db, playlist_id, user_id)

        entry = (await db.execute(
            select(PlaylistBook).where(
                PlaylistBook.playlist_id == playlist_id,
                PlaylistBook.book_id == book_id,
            )
        )).scalar_one_or_none()
        if entry is None:
            raise NotFoundError("Book not found in playlist")

        await db.delete(entry)
        await db.commit()

        await self._invalidator.invalidate_playlist_cache(playlist_id)
        logger.info(f"Book {book_id} removed from playlist {playlist_id}")

    async def delete_playlist(self, db: AsyncSession, playlist_id: int, user_id: int) -> None:
        playlist = await self._get_owned(db, playlist_id, user_id)

        await db.delete(playlist)
        await db.commit()

        await self._invalidator.invalidate_playlist_cache(playlist_id)
        logger.info(f"Playlist {playlist_id} deleted by user {user_id}")
