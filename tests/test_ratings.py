"""
Rating Aggregation Tests

Tests for blending Open Library crowd ratings with local reviews.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from library_api.services import cache_keys
from library_api.services.ratings import RatingAggregator, blend_ratings


class TestBlendRatings:
    """Tests for the pure blend calculation."""

    def test_count_weighted_average(self):
        result = blend_ratings(4.0, 10, 2.0, 10)
        assert result["average_rating"] == 3.0
        assert result["rating_count"] == 20
        assert result["sources"] == {
            "upstream": {"rating": 4.0, "count": 10},
            "local": {"rating": 2.0, "count": 10},
        }

    def test_weights_follow_counts(self):
        result = blend_ratings(5.0, 3, 1.0, 1)
        assert result["average_rating"] == 4.0
        assert result["rating_count"] == 4

    def test_local_only(self):
        result = blend_ratings(None, 0, 5.0, 1)
        assert (result["average_rating"], result["rating_count"]) == (5.0, 1)
        assert result["sources"]["upstream"] is None

    def test_upstream_only(self):
        result = blend_ratings(3.4567, 7, None, 0)
        assert (result["average_rating"], result["rating_count"]) == (3.46, 7)

    def test_no_data(self):
        result = blend_ratings(None, 0, None, 0)
        assert (result["average_rating"], result["rating_count"]) == (None, 0)

    def test_upstream_rating_without_count_is_ignored(self):
        result = blend_ratings(4.0, 0, 2.0, 2)
        assert (result["average_rating"], result["rating_count"]) == (2.0, 2)


class TestRatingAggregator:
    """Tests for combine() against the database and the cache."""

    @pytest.mark.asyncio
    async def test_combine_with_local_reviews(self, ratings, data):
        for i in range(10):
            reader = await data.user(f"reader{i}@example.com")
            await data.review(reader.id, "OL1W", 2)

        result = await ratings.combine("OL1W", 4.0, 10)

        assert result["average_rating"] == 3.0
        assert result["rating_count"] == 20

    @pytest.mark.asyncio
    async def test_combine_local_only(self, ratings, data, user):
        await data.review(user.id, "OL1W", 5)

        result = await ratings.combine("OL1W", None, 0)

        assert (result["average_rating"], result["rating_count"]) == (5.0, 1)

    @pytest.mark.asyncio
    async def test_combine_without_any_data(self, ratings):
        result = await ratings.combine("OL1W", None, 0)
        assert (result["average_rating"], result["rating_count"]) == (None, 0)

    @pytest.mark.asyncio
    async def test_combined_rating_is_cached(self, ratings, cache, data, user):
        await data.review(user.id, "OL1W", 4)

        first = await ratings.combine("OL1W", None, 0)
        await data.review((await data.user("late@example.com")).id, "OL1W", 2)
        second = await ratings.combine("OL1W", None, 0)

        assert second == first
        assert await cache.get(cache_keys.combined_rating("OL1W")) == first

    @pytest.mark.asyncio
    async def test_database_error_falls_back_to_upstream(self, cache, settings):
        store = AsyncMock()
        store.get_local_rating.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        aggregator = RatingAggregator(store, cache, settings)

        result = await aggregator.combine("OL1W", 4.2, 8)

        assert (result["average_rating"], result["rating_count"]) == (4.2, 8)
        assert await cache.get(cache_keys.combined_rating("OL1W")) is None

    @pytest.mark.asyncio
    async def test_combine_many_keeps_order_and_copies(self, ratings, data, user):
        await data.review(user.id, "B", 1)
        books = [
            {"id": "A", "upstream_rating": 4.0, "upstream_rating_count": 2},
            {"id": "B", "upstream_rating": None, "upstream_rating_count": 0},
        ]

        result = await ratings.combine_many(books)

        assert [b["id"] for b in result] == ["A", "B"]
        assert result[0]["average_rating"] == 4.0
        assert result[1]["average_rating"] == 1.0
        assert "average_rating" not in books[0]

    @pytest.mark.asyncio
    async def test_combine_works_with_cache_down(self, ratings, fake_redis, data, user):
        fake_redis.fail = True
        await data.review(user.id, "OL1W", 3)

        result = await ratings.combine("OL1W", None, 0)

        assert (result["average_rating"], result["rating_count"]) == (3.0, 1)
