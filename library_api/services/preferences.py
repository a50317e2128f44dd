"""
Preference Extraction

Derives a weighted subject-interest profile for a user from their reading
history.

Algorithm:
1. Take the most recently saved books and every review rated 4+
   (de-duplicated, saved books first)
2. Resolve each book's subjects: book:<id> cache first, then one batch
   request to the catalog for the misses (written back to the cache)
3. Weight each book: rating / 5 for high-rated reviews, 3 / 5 otherwise
4. Sum the weights per normalized (lower-cased, trimmed) subject

An empty profile means "no signal yet"; the recommendation engine answers
it with trending books.
"""

import logging
from typing import Iterable

from library_api.config import Settings
from library_api.services import cache_keys
from library_api.services.cache import CacheService
from library_api.services.catalog import CatalogGateway
from library_api.services.store import LibraryStore

logger = logging.getLogger(__name__)


def normalize_subject(subject: object) -> str:
    if not isinstance(subject, str):
        return ""
    return subject.lower().strip()


def build_profile(weighted_books: Iterable[tuple[list[str], float]]) -> dict[str, float]:
    """
    Sum per-subject weights across books.

    Args:
        weighted_books: (subjects, weight) per contributing book

    Returns:
        Mapping of normalized subject -> accumulated weight
    """
    profile: dict[str, float] = {}
    for subjects, weight in weighted_books:
        for subject in subjects:
            normalized = normalize_subject(subject)
            if normalized:
                profile[normalized] = profile.get(normalized, 0.0) + weight
    return profile


class PreferenceExtractor:
    """Builds and caches user_preferences:<id> profiles."""

    def __init__(
        self,
        store: LibraryStore,
        catalog: CatalogGateway,
        cache: CacheService,
        settings: Settings,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._cache = cache
        self._settings = settings

    async def get_preferences(self, user_id: int) -> dict[str, float]:
        """Cached profile, rebuilt from the reading history on a miss."""
        cache_key = cache_keys.user_preferences(user_id)
        cached = await self._cache.get(cache_key)
        if isinstance(cached, dict):
            return cached

        preferences = await self.build_preferences(user_id)
        await self._cache.set(cache_key, preferences, ttl=self._settings.preferences_cache_ttl)
        return preferences

    async def build_preferences(self, user_id: int) -> dict[str, float]:
        saved_ids = await self._store.get_recent_saved_book_ids(
            user_id, self._settings.preference_saved_books_limit
        )
        high_rated = await self._store.get_high_rated_reviews(
            user_id, self._settings.preference_min_rating
        )

        book_ids = list(dict.fromkeys([*saved_ids, *(book_id for book_id, _ in high_rated)]))
        if not book_ids:
            return {}

        rating_map = dict(high_rated)
        subjects_by_id = await self.resolve_subjects(book_ids)

        default_rating = self._settings.preference_default_rating
        weighted = [
            (subjects_by_id[book_id], rating_map.get(book_id, default_rating) / 5)
            for book_id in book_ids
            if subjects_by_id.get(book_id)
        ]
        profile = build_profile(weighted)
        logger.debug(f"Built preferences for user {user_id}: {len(profile)} subjects from {len(weighted)} books")
        return profile

    async def resolve_subjects(self, book_ids: list[str]) -> dict[str, list[str]]:
        """
        Subjects per book id, cache-first.

        Misses are fetched with a single batch request and the partial
        summaries are written back under book:<id>. Ids the catalog does not
        know are left out.
        """
        keys = {book_id: cache_keys.book(book_id) for book_id in book_ids}
        cached = await self._cache.mget(list(keys.values()))

        subjects_by_id: dict[str, list[str]] = {}
        missing: list[str] = []
        for book_id, key in keys.items():
            entry = cached.get(key)
            if isinstance(entry, dict) and isinstance(entry.get("subjects"), list):
                subjects_by_id[book_id] = entry["subjects"]
            else:
                missing.append(book_id)

        if not missing:
            return subjects_by_id

        fetched = await self._catalog.get_batch(missing)
        if fetched:
            await self._cache.mset(
                {cache_keys.book(book_id): partial for book_id, partial in fetched.items()},
                ttl=self._settings.book_summary_ttl,
            )
        for book_id, partial in fetched.items():
            subjects_by_id[book_id] = partial.get("subjects") or []

        return subjects_by_id
