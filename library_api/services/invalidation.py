"""
Cache Invalidation

Removes every cached view that depends on a piece of changed data. Called
after a write (review, save, playlist change) has been committed.

Dependency map for a book change:
    ratings:combined:<book>, book:<book>, book_detail:<book>, ol_ratings:<book>
    search:*, trending:*                          (lists embed ratings)
    acting user:
        recommendations:<user>:*, user_preferences:<user>,
        excluded_books:<user>, saved_books:<user>:*
    rating changes only:
        saved_books:<u>:*   for every user who saved the book
        playlist:<p>:*      for every playlist containing the book

Every step is attempted on its own. A failing step is logged and the rest
still run; nothing is raised to the caller, whose write already happened.
"""

import logging
from typing import Awaitable, Callable, Optional

from library_api.services import cache_keys
from library_api.services.cache import CacheService
from library_api.services.store import LibraryStore

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Fan-out deletion of derived cache entries."""

    def __init__(self, cache: CacheService, store: LibraryStore) -> None:
        self._cache = cache
        self._store = store

    async def _step(self, description: str, action: Callable[[], Awaitable[object]]) -> None:
        try:
            await action()
        except Exception as e:
            logger.error(f"Cache invalidation step '{description}' failed: {e}")

    # =========================================================================
    # Book
    # =========================================================================

    async def invalidate_book_cache(
        self,
        book_id: str,
        user_id: Optional[int] = None,
        rating_changed: bool = True,
    ) -> None:
        """
        Invalidate everything derived from a book.

        Args:
            book_id: Book whose data changed
            user_id: User who made the change, if any
            rating_changed: The book's local rating aggregate changed
        """
        for key in (
            cache_keys.combined_rating(book_id),
            cache_keys.book(book_id),
            cache_keys.book_detail(book_id),
            cache_keys.upstream_rating(book_id),
        ):
            await self._step(f"delete {key}", lambda key=key: self._cache.delete(key))

        await self._step("search lists", lambda: self._cache.delete_pattern(cache_keys.search_pattern()))
        await self._step("trending lists", lambda: self._cache.delete_pattern(cache_keys.trending_pattern()))

        if user_id is not None:
            await self.invalidate_user_cache(user_id)

        if rating_changed:
            await self._step("savers' saved books", lambda: self._invalidate_savers(book_id))
            await self._step("containing playlists", lambda: self._invalidate_playlists_containing(book_id))

        logger.info(f"Invalidated cache for book {book_id}")

    async def _invalidate_savers(self, book_id: str) -> None:
        for saver_id in await self._store.get_user_ids_who_saved(book_id):
            await self._cache.delete_pattern(cache_keys.saved_books_pattern(saver_id))

    async def _invalidate_playlists_containing(self, book_id: str) -> None:
        for playlist_id in await self._store.get_playlist_ids_containing(book_id):
            await self._cache.delete_pattern(cache_keys.playlist_pattern(playlist_id))

    # =========================================================================
    # User / Playlist
    # =========================================================================

    async def invalidate_user_cache(self, user_id: int) -> None:
        """Drop a user's recommendations, profile, exclusions and saved pages."""
        await self._step(
            "recommendations",
            lambda: self._cache.delete_pattern(cache_keys.recommendations_pattern(user_id)),
        )
        await self._step("preferences", lambda: self._cache.delete(cache_keys.user_preferences(user_id)))
        await self._step("excluded books", lambda: self._cache.delete(cache_keys.excluded_books(user_id)))
        await self._step(
            "saved books",
            lambda: self._cache.delete_pattern(cache_keys.saved_books_pattern(user_id)),
        )

    async def invalidate_playlist_cache(self, playlist_id: int) -> None:
        await self._step(
            f"playlist {playlist_id}",
            lambda: self._cache.delete_pattern(cache_keys.playlist_pattern(playlist_id)),
        )
