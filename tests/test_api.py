"""
API Endpoint Tests

End-to-end tests through the FastAPI application:
- Routing, status codes and response shapes
- X-User-Id identification
- Domain errors mapped onto HTTP statuses
"""

import pytest

from tests.conftest import trending_work

API = "/api/v1"


def as_user(user):
    return {"X-User-Id": str(user.id)}


class TestMeta:
    """Tests for / and /health."""

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["api"] == "/api/v1"

    @pytest.mark.asyncio
    async def test_health_reports_cache(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["cache"]["status"] == "connected"

    @pytest.mark.asyncio
    async def test_health_with_cache_down(self, client, fake_redis):
        fake_redis.fail = True

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["cache"] == {"status": "disconnected"}


class TestBooksApi:
    """Tests for /books endpoints."""

    @pytest.mark.asyncio
    async def test_search(self, client, open_library):
        open_library.add_book("OL1W", "Dune", ["fiction"], rating=4.0, count=10)

        response = await client.get(f"{API}/books/search", params={"q": "dune", "limit": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["limit"] == 5
        assert body["books"][0]["id"] == "OL1W"
        assert body["books"][0]["average_rating"] == 4.0
        assert body["books"][0]["rating_count"] == 10

    @pytest.mark.asyncio
    async def test_search_with_cache_down(self, client, open_library, fake_redis):
        fake_redis.fail = True
        open_library.add_book("OL1W", "Dune")

        response = await client.get(f"{API}/books/search", params={"q": "dune"})

        assert response.status_code == 200
        assert response.json()["books"][0]["title"] == "Dune"

    @pytest.mark.asyncio
    async def test_trending(self, client, open_library):
        open_library.trending = [trending_work("T1"), trending_work("T2")]

        response = await client.get(f"{API}/books/trending", params={"period": "weekly", "limit": 2})

        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == ["T1", "T2"]

    @pytest.mark.asyncio
    async def test_trending_rejects_unknown_period(self, client):
        response = await client.get(f"{API}/books/trending", params={"period": "hourly"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_subject_by_category_slug(self, client, open_library):
        open_library.subject_listings["science_fiction"] = {
            "name": "Science fiction",
            "work_count": 1,
            "works": [{"key": "/works/OL1W", "title": "Dune", "authors": [{"name": "Frank Herbert"}]}],
        }

        response = await client.get(f"{API}/books/subjects/science-fiction")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Science fiction"
        assert body["books"][0]["authors"] == ["Frank Herbert"]

    @pytest.mark.asyncio
    async def test_book_detail_with_rating_sources(self, client, open_library, data, user):
        open_library.add_book("OL1W", "Dune", ["fiction"], rating=4.0, count=3)
        await data.review(user.id, "OL1W", 2)

        response = await client.get(f"{API}/books/OL1W")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Dune"
        assert body["description"] == "About OL1W"
        assert body["average_rating"] == 3.5
        assert body["rating_count"] == 4
        assert body["rating_sources"]["upstream"] == {"rating": 4.0, "count": 3}
        assert body["rating_sources"]["local"] == {"rating": 2.0, "count": 1}

    @pytest.mark.asyncio
    async def test_unknown_book_is_404(self, client):
        response = await client.get(f"{API}/books/OL404W")

        assert response.status_code == 404
        assert "OL404W" in response.json()["detail"]


class TestIdentification:
    """Tests for the X-User-Id header."""

    @pytest.mark.asyncio
    async def test_missing_header_is_401(self, client):
        response = await client.get(f"{API}/recommendations")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user_is_401(self, client):
        response = await client.get(f"{API}/library", headers={"X-User-Id": "9999"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_user_is_401(self, client, data):
        inactive = await data.user("gone@example.com", is_active=False)

        response = await client.get(f"{API}/library", headers=as_user(inactive))

        assert response.status_code == 401


class TestRecommendationsApi:
    """Tests for GET /recommendations."""

    @pytest.mark.asyncio
    async def test_new_user_gets_trending(self, client, open_library, user):
        open_library.trending = [trending_work(f"T{i}") for i in range(1, 8)]

        response = await client.get(f"{API}/recommendations", params={"limit": 5}, headers=as_user(user))

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 5
        assert [b["id"] for b in body["books"]] == ["T1", "T2", "T3", "T4", "T5"]

    @pytest.mark.asyncio
    async def test_limit_is_bounded(self, client, user):
        response = await client.get(f"{API}/recommendations", params={"limit": 51}, headers=as_user(user))
        assert response.status_code == 422


class TestReviewsApi:
    """Tests for /books/{book_id}/reviews."""

    @pytest.mark.asyncio
    async def test_put_creates_then_updates(self, client, open_library, user):
        open_library.add_book("OL1W")
        url = f"{API}/books/OL1W/reviews"

        created = await client.put(url, json={"rating": 5, "title": "  Great  "}, headers=as_user(user))
        updated = await client.put(url, json={"rating": 3}, headers=as_user(user))

        assert created.status_code == 201
        assert created.json()["title"] == "Great"
        assert updated.status_code == 200
        assert updated.json()["id"] == created.json()["id"]
        assert updated.json()["rating"] == 3

    @pytest.mark.asyncio
    async def test_rating_out_of_range_is_422(self, client, open_library, user):
        open_library.add_book("OL1W")

        response = await client.put(f"{API}/books/OL1W/reviews", json={"rating": 6}, headers=as_user(user))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_review_unknown_book_is_404(self, client, user):
        response = await client.put(f"{API}/books/OL404W/reviews", json={"rating": 4}, headers=as_user(user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_reviews(self, client, data, user):
        await data.review(user.id, "OL1W", 4, comment="Solid")

        response = await client.get(f"{API}/books/OL1W/reviews")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["comment"] == "Solid"
        assert body["stats"]["rating_distribution"]["4"] == 1
        assert body["combined_rating"]["average_rating"] == 4.0

    @pytest.mark.asyncio
    async def test_delete_review(self, client, data, user):
        await data.review(user.id, "OL1W", 4)
        url = f"{API}/books/OL1W/reviews"

        first = await client.delete(url, headers=as_user(user))
        second = await client.delete(url, headers=as_user(user))

        assert first.status_code == 204
        assert second.status_code == 404

    @pytest.mark.asyncio
    async def test_review_refreshes_recommendations(self, client, open_library, user):
        open_library.add_book("T1")
        open_library.trending = [trending_work("T1")]
        headers = as_user(user)

        before = await client.get(f"{API}/recommendations", params={"limit": 1}, headers=headers)
        await client.put(f"{API}/books/T1/reviews", json={"rating": 1}, headers=headers)
        after = await client.get(f"{API}/recommendations", params={"limit": 1}, headers=headers)

        assert [b["id"] for b in before.json()["books"]] == ["T1"]
        assert "T1" not in [b["id"] for b in after.json()["books"]]


class TestLibraryApi:
    """Tests for /library."""

    @pytest.mark.asyncio
    async def test_save_list_and_remove(self, client, open_library, user):
        open_library.add_book("OL1W", "Dune")
        headers = as_user(user)

        saved = await client.post(f"{API}/library/OL1W", headers=headers)
        duplicate = await client.post(f"{API}/library/OL1W", headers=headers)
        listing = await client.get(f"{API}/library", headers=headers)
        status = await client.get(f"{API}/library/OL1W", headers=headers)
        removed = await client.delete(f"{API}/library/OL1W", headers=headers)
        after = await client.get(f"{API}/library", headers=headers)

        assert saved.status_code == 201
        assert saved.json()["book_id"] == "OL1W"
        assert duplicate.status_code == 409
        assert listing.json()["total"] == 1
        assert listing.json()["items"][0]["book"]["title"] == "Dune"
        assert status.json() == {"book_id": "OL1W", "saved": True}
        assert removed.status_code == 204
        assert after.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_save_unknown_book_is_404(self, client, user):
        response = await client.post(f"{API}/library/OL404W", headers=as_user(user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_remove_unsaved_book_is_404(self, client, user):
        response = await client.delete(f"{API}/library/OL1W", headers=as_user(user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_stats(self, client, data, user):
        await data.save(user.id, "OL1W")
        await data.review(user.id, "OL1W", 4)

        response = await client.get(f"{API}/library/stats", headers=as_user(user))

        assert response.status_code == 200
        assert response.json() == {
            "saved_books": 1,
            "reviews": 1,
            "playlists": 0,
            "average_rating_given": 4.0,
        }


class TestPlaylistsApi:
    """Tests for /playlists."""

    @pytest.mark.asyncio
    async def test_create_add_and_view(self, client, open_library, user):
        open_library.add_book("OL1W", "Dune")
        headers = as_user(user)

        created = await client.post(f"{API}/playlists", json={"name": "Queue", "is_public": True}, headers=headers)
        playlist_id = created.json()["id"]
        added = await client.post(f"{API}/playlists/{playlist_id}/books/OL1W", headers=headers)
        again = await client.post(f"{API}/playlists/{playlist_id}/books/OL1W", headers=headers)
        view = await client.get(f"{API}/playlists/{playlist_id}")

        assert created.status_code == 201
        assert added.status_code == 204
        assert again.status_code == 409
        assert view.status_code == 200
        assert [b["title"] for b in view.json()["books"]] == ["Dune"]

    @pytest.mark.asyncio
    async def test_blank_name_is_422(self, client, user):
        response = await client.post(f"{API}/playlists", json={"name": "   "}, headers=as_user(user))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_private_playlist_is_403_for_others(self, client, data, user):
        other = await data.user("other@example.com")
        playlist = await data.playlist(other.id)

        anonymous = await client.get(f"{API}/playlists/{playlist.id}")
        stranger = await client.get(f"{API}/playlists/{playlist.id}", headers=as_user(user))
        owner = await client.get(f"{API}/playlists/{playlist.id}", headers=as_user(other))

        assert anonymous.status_code == 403
        assert stranger.status_code == 403
        assert owner.status_code == 200

    @pytest.mark.asyncio
    async def test_only_owner_can_delete(self, client, data, user):
        other = await data.user("other@example.com")
        playlist = await data.playlist(other.id, is_public=True)

        forbidden = await client.delete(f"{API}/playlists/{playlist.id}", headers=as_user(user))
        deleted = await client.delete(f"{API}/playlists/{playlist.id}", headers=as_user(other))
        missing = await client.get(f"{API}/playlists/{playlist.id}")

        assert forbidden.status_code == 403
        assert deleted.status_code == 204
        assert missing.status_code == 404
