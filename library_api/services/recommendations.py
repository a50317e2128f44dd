"""
Recommendations Service

Content-based book recommendations driven by a user's subject preferences.

Pipeline (recommend):
1. recommendations:<user>:<limit> cache hit -> return it
2. Preference profile (cached, see preferences.py)
3. Empty profile -> trending books (cold start)
4. Top subjects by weight -> one candidate search per subject, run
   concurrently, each bounded by a deadline (a slow subject is skipped)
5. Drop books the user already saved or reviewed (excluded_books:<user>)
6. Score each candidate against the profile, drop zero scores
7. Rank by score, keep `limit`
8. Top up with trending books when short
9. Attach combined ratings
10. Cache the final list unless it is empty

Failure Policy:
===============
The engine never fails a request because of the personalization pipeline:
timeouts and upstream errors skip the affected subject, and any other
error falls back to trending books.

Tie-break:
==========
Subjects with equal weight are ordered alphabetically; candidates with
equal scores keep the order in which they were found (subject rank, then
upstream relevance).
"""

import asyncio
import logging
from typing import Any

from library_api.config import Settings
from library_api.services import cache_keys
from library_api.services.cache import CacheService
from library_api.services.catalog import CatalogGateway
from library_api.services.preferences import PreferenceExtractor, normalize_subject
from library_api.services.ratings import RatingAggregator
from library_api.services.store import LibraryStore

logger = logging.getLogger(__name__)


# =============================================================================
# Scoring
# =============================================================================

def top_subjects(preferences: dict[str, float], count: int) -> list[str]:
    """Strongest subjects first; equal weights ordered by subject name."""
    ranked = sorted(preferences.items(), key=lambda item: (-item[1], item[0]))
    return [subject for subject, _ in ranked[:count]]


def similarity_score(
    book: dict[str, Any],
    preferences: dict[str, float],
    rating_boost_weight: float = 0.3,
) -> float:
    """
    Score a candidate book against a preference profile.

    score = matched subject weight / weight of the preferences that matched
            + (upstream_rating / 5) * rating_boost_weight

    Books sharing no subject with the profile score 0. The result is
    clamped to [0, 1].
    """
    subjects = book.get("subjects") or []
    if not subjects:
        return 0.0

    matched_weight = 0.0
    total_weight = 0.0
    for subject in subjects:
        weight = preferences.get(normalize_subject(subject))
        if weight:
            matched_weight += weight
            total_weight += weight

    if total_weight == 0:
        return 0.0

    score = matched_weight / total_weight

    upstream_rating = book.get("upstream_rating")
    if upstream_rating:
        score += (upstream_rating / 5) * rating_boost_weight

    return min(1.0, max(0.0, score))


# =============================================================================
# Engine
# =============================================================================

class RecommendationEngine:
    """Personalized recommendations with cache-first lookup."""

    def __init__(
        self,
        preferences: PreferenceExtractor,
        catalog: CatalogGateway,
        ratings: RatingAggregator,
        store: LibraryStore,
        cache: CacheService,
        settings: Settings,
    ) -> None:
        self._preferences = preferences
        self._catalog = catalog
        self._ratings = ratings
        self._store = store
        self._cache = cache
        self._settings = settings

    async def recommend(self, user_id: int, limit: int = 10) -> list[dict[str, Any]]:
        """
        Recommended books for a user, each with its combined rating.

        Args:
            user_id: User to recommend for
            limit: Maximum number of books

        Returns:
            List of BookSummary dicts with average_rating / rating_count
        """
        cache_key = cache_keys.recommendations(user_id, limit)
        cached = await self._cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        try:
            books = await self._build_recommendations(user_id, limit)
        except Exception:
            logger.exception(f"Recommendation pipeline failed for user {user_id}, using trending")
            return await self._trending_with_ratings(limit)

        if not books:
            return books
        await self._cache.set(cache_key, books, ttl=self._settings.recommendation_cache_ttl)
        return books

    async def _build_recommendations(self, user_id: int, limit: int) -> list[dict[str, Any]]:
        preferences = await self._preferences.get_preferences(user_id)

        if not preferences:
            logger.debug(f"User {user_id} has no preferences yet, falling back to trending")
            books = await self._cold_start(user_id, limit)
            return await self._ratings.combine_many(books)

        excluded = await self.get_excluded_book_ids(user_id)
        subjects = top_subjects(preferences, self._settings.recommendation_top_subjects)

        results = await asyncio.gather(
            *(self._search_subject(subject) for subject in subjects),
            return_exceptions=True,
        )

        candidates: dict[str, tuple[dict[str, Any], float]] = {}
        for subject, result in zip(subjects, results):
            if isinstance(result, Exception):
                logger.warning(f"Error searching for subject {subject}: {result}")
                continue
            for book in result:
                book_id = book.get("id")
                if not book_id or book_id in excluded or book_id in candidates:
                    continue
                score = similarity_score(
                    book, preferences, self._settings.recommendation_rating_boost
                )
                if score > 0:
                    candidates[book_id] = (book, score)

        ranked = sorted(candidates.values(), key=lambda candidate: candidate[1], reverse=True)
        books = [book for book, _ in ranked[:limit]]

        if len(books) < limit:
            present = excluded | {book["id"] for book in books}
            books.extend(await self._fallback(limit - len(books), exclude=present, window=limit))

        return await self._ratings.combine_many(books)

    async def _search_subject(self, subject: str) -> list[dict[str, Any]]:
        """Candidate books for one subject; [] when the deadline passes."""
        try:
            result = await asyncio.wait_for(
                self._catalog.search(
                    subject=subject,
                    page=1,
                    limit=self._settings.recommendation_candidates_per_subject,
                ),
                timeout=self._settings.recommendation_subject_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Subject search for '{subject}' timed out, skipping")
            return []
        return result.get("books", [])

    # -------------------------------------------------------------------------
    # Exclusions
    # -------------------------------------------------------------------------

    async def get_excluded_book_ids(self, user_id: int) -> set[str]:
        """Books the user saved or reviewed (excluded_books:<user>, cached)."""
        cache_key = cache_keys.excluded_books(user_id)
        cached = await self._cache.get(cache_key)
        if isinstance(cached, list):
            return set(cached)

        saved = await self._store.get_saved_book_ids(user_id)
        reviewed = await self._store.get_reviewed_book_ids(user_id)
        excluded = list(dict.fromkeys([*saved, *reviewed]))

        await self._cache.set(cache_key, excluded, ttl=self._settings.excluded_books_cache_ttl)
        return set(excluded)

    # -------------------------------------------------------------------------
    # Fallbacks
    # -------------------------------------------------------------------------

    async def _trending(self, limit: int) -> list[dict[str, Any]]:
        return await self._catalog.get_trending(self._settings.fallback_trending_period, limit)

    async def _cold_start(self, user_id: int, limit: int) -> list[dict[str, Any]]:
        """
        Top trending books for a user without a profile.

        A user can have history but no resolvable subjects; their own books
        are still filtered out, refilling from a wider trending window.
        """
        trending = await self._trending(limit)
        excluded = await self.get_excluded_book_ids(user_id)
        if not any(book["id"] in excluded for book in trending):
            return trending[:limit]

        wider = await self._trending(limit + len(excluded))
        return [book for book in wider if book["id"] not in excluded][:limit]

    async def _fallback(self, count: int, exclude: set[str], window: int) -> list[dict[str, Any]]:
        """Up to `count` trending books not in `exclude`."""
        trending = await self._trending(max(window, count))
        return [book for book in trending if book["id"] not in exclude][:count]

    async def _trending_with_ratings(self, limit: int) -> list[dict[str, Any]]:
        try:
            return await self._ratings.combine_many(await self._trending(limit))
        except Exception:
            logger.exception("Trending fallback failed")
            return []
