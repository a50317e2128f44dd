"""
pytest Fixtures for Library API Tests

Shared fixtures used across all test files.

Test Doubles:
=============
- FakeRedis: in-process stand-in for redis.asyncio.Redis covering the
  commands the cache store uses, with a manual clock for TTLs and a
  `fail` switch that simulates the server being down
- FakeOpenLibrary: canned Open Library responses served through
  httpx.MockTransport; records every request
- SQLite in-memory database (aiosqlite + StaticPool), fresh per test

Services are wired exactly as in the application lifespan
(main.attach_services), only with these doubles underneath.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# Set environment variables BEFORE importing the app
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import asyncio
import fnmatch
import re
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from library_api.config import Settings
from library_api.database import create_tables
from library_api.main import attach_services, create_app
from library_api.models import Playlist, PlaylistBook, Review, SavedBook, User
from library_api.services.books import BookService
from library_api.services.cache import CacheService
from library_api.services.catalog import CatalogGateway
from library_api.services.invalidation import CacheInvalidator
from library_api.services.library import LibraryService
from library_api.services.playlists import PlaylistService
from library_api.services.preferences import PreferenceExtractor
from library_api.services.ratings import RatingAggregator
from library_api.services.recommendations import RecommendationEngine
from library_api.services.reviews import ReviewService
from library_api.services.store import LibraryStore


# =============================================================================
# REDIS DOUBLE
# =============================================================================

class FakePipeline:
    """Buffered SETEX commands, applied on execute()."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._commands: list[tuple[str, int, str]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._commands.clear()

    def setex(self, key: str, ttl: int, value: str) -> "FakePipeline":
        self._commands.append((key, ttl, value))
        return self

    async def execute(self) -> list[bool]:
        self._redis._command("EXEC")
        for key, ttl, value in self._commands:
            self._redis._write(key, ttl, value)
        results = [True] * len(self._commands)
        self._commands.clear()
        return results


class FakeRedis:
    """Minimal async Redis with expiring string keys."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.expires_at: dict[str, float] = {}
        self.now = 0.0
        self.fail = False
        self.closed = False
        self.commands: list[str] = []

    def advance(self, seconds: float) -> None:
        """Move the TTL clock forward."""
        self.now += seconds

    def _command(self, name: str) -> None:
        self.commands.append(name)
        if self.fail:
            raise RedisConnectionError("Connection refused")

    def _expire(self) -> None:
        for key in [k for k, at in self.expires_at.items() if at <= self.now]:
            self.data.pop(key, None)
            self.ttls.pop(key, None)
            self.expires_at.pop(key, None)

    def _write(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl
        self.expires_at[key] = self.now + ttl

    async def ping(self) -> bool:
        self._command("PING")
        return True

    async def get(self, key: str) -> str | None:
        self._command("GET")
        self._expire()
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._command("SETEX")
        self._write(key, ttl, value)
        return True

    async def delete(self, *keys: str) -> int:
        self._command("DEL")
        deleted = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                deleted += 1
            self.ttls.pop(key, None)
            self.expires_at.pop(key, None)
        return deleted

    async def exists(self, key: str) -> int:
        self._command("EXISTS")
        self._expire()
        return int(key in self.data)

    async def mget(self, keys: list[str]) -> list[str | None]:
        self._command("MGET")
        self._expire()
        return [self.data.get(key) for key in keys]

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        self._command("SCAN")
        self._expire()
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def info(self, section: str | None = None) -> dict:
        self._command("INFO")
        return {"keyspace_hits": 0, "keyspace_misses": 0}

    async def dbsize(self) -> int:
        self._expire()
        return len(self.data)

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# OPEN LIBRARY DOUBLE
# =============================================================================

def search_doc(
    book_id: str,
    title: str | None = None,
    subjects: list[str] | None = None,
    rating: float | None = None,
    count: int = 0,
    **extra,
) -> dict:
    """Open Library search.json document."""
    doc = {
        "key": f"/works/{book_id}",
        "title": title or f"Book {book_id}",
        "author_name": ["Some Author"],
        "first_publish_year": 1950,
        "cover_i": 1000,
        "subject": subjects or [],
    }
    if rating is not None:
        doc["ratings_average"] = rating
        doc["ratings_count"] = count
    doc.update(extra)
    return doc


def trending_work(book_id: str, title: str | None = None, subjects: list[str] | None = None) -> dict:
    """Open Library trending/<period>.json work."""
    return {
        "key": f"/works/{book_id}",
        "title": title or f"Trending {book_id}",
        "author_name": ["Popular Author"],
        "first_publish_year": 2020,
        "cover_i": 2000,
        "subject": subjects or [],
    }


class FakeOpenLibrary:
    """
    Canned Open Library API.

    - docs: search documents by work id (rating lookups, batch lookups,
      free-text search)
    - subject_docs: search results per subject for subject:<name> queries
    - trending: trending works, in rank order
    - works: work records for /works/<id>.json
    - subject_delays: seconds to stall a subject:<name> query
    - broken_docs: work ids whose single-work rating lookup answers 500
    """

    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}
        self.subject_docs: dict[str, list[dict]] = {}
        self.trending: list[dict] = []
        self.works: dict[str, dict] = {}
        self.editions: dict[str, list[dict]] = {}
        self.subject_listings: dict[str, dict] = {}
        self.subject_delays: dict[str, float] = {}
        self.broken_docs: set[str] = set()
        self.fail = False
        self.requests: list[httpx.Request] = []

    def add_book(self, book_id: str, title: str | None = None, subjects: list[str] | None = None,
                 rating: float | None = None, count: int = 0) -> None:
        """Register a work both as a search document and as a work record."""
        self.docs[book_id] = search_doc(book_id, title, subjects, rating, count)
        self.works[book_id] = {
            "key": f"/works/{book_id}",
            "title": title or f"Book {book_id}",
            "subjects": subjects or [],
            "description": {"type": "/type/text", "value": f"About {book_id}"},
            "first_publish_date": "1950",
            "covers": [1000],
            "authors": [],
        }

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def queries(self) -> list[str]:
        return [request.url.params.get("q", "") for request in self.requests if request.url.path == "/search.json"]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(503, json={"error": "unavailable"})

        path = request.url.path
        params = request.url.params

        if path == "/search.json":
            return await self._search(params)
        if path.startswith("/trending/"):
            limit = int(params.get("limit", 10))
            return httpx.Response(200, json={"works": self.trending[:limit]})
        if path.startswith("/subjects/"):
            slug = path[len("/subjects/"):-len(".json")]
            listing = self.subject_listings.get(slug)
            if listing is None:
                return httpx.Response(404, json={"error": "notfound"})
            return httpx.Response(200, json=listing)
        if path.endswith("/editions.json"):
            book_id = path.split("/")[2]
            return httpx.Response(200, json={"entries": self.editions.get(book_id, [])})
        if path.startswith("/works/"):
            work = self.works.get(path[len("/works/"):-len(".json")])
            if work is None:
                return httpx.Response(404, json={"error": "notfound"})
            return httpx.Response(200, json=work)
        if path.startswith("/authors/"):
            return httpx.Response(200, json={"name": "Author Name", "bio": "Writes books."})

        return httpx.Response(404, json={"error": "notfound"})

    async def _search(self, params: httpx.QueryParams) -> httpx.Response:
        query = params.get("q", "")
        limit = int(params.get("limit", 100))

        if query.startswith("(key:"):
            ids = re.findall(r"key:/works/(\w+)", query)
            docs = [self.docs[book_id] for book_id in ids if book_id in self.docs]
        elif query.startswith("key:/works/"):
            book_id = query[len("key:/works/"):]
            if book_id in self.broken_docs:
                return httpx.Response(500, json={"error": "internal"})
            docs = [self.docs[book_id]] if book_id in self.docs else []
        elif query.startswith("subject:"):
            subject = query[len("subject:"):].split(" AND ")[0]
            delay = self.subject_delays.get(subject)
            if delay:
                await asyncio.sleep(delay)
            docs = self.subject_docs.get(subject, [])
        else:
            docs = list(self.docs.values())

        return httpx.Response(200, json={"numFound": len(docs), "docs": docs[:limit]})


# =============================================================================
# CONFIGURATION / INFRASTRUCTURE FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        rate_limit_enabled=False,
        recommendation_subject_timeout=2.0,
        catalog_detail_timeout=2.0,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis, settings: Settings) -> CacheService:
    return CacheService(fake_redis, settings)


@pytest.fixture
async def db_engine():
    """
    SQLite in-memory engine, fresh for every test.

    StaticPool keeps the single connection alive; without it the in-memory
    database would disappear between connections.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def open_library() -> FakeOpenLibrary:
    return FakeOpenLibrary()


@pytest.fixture
async def http_client(open_library: FakeOpenLibrary, settings: Settings) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(open_library.handler),
        base_url=settings.open_library_url,
    ) as client:
        yield client


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def store(session_factory) -> LibraryStore:
    return LibraryStore(session_factory)


@pytest.fixture
def catalog(http_client, cache, settings) -> CatalogGateway:
    return CatalogGateway(http_client, cache, settings)


@pytest.fixture
def ratings(store, cache, settings) -> RatingAggregator:
    return RatingAggregator(store, cache, settings)


@pytest.fixture
def preferences(store, catalog, cache, settings) -> PreferenceExtractor:
    return PreferenceExtractor(store, catalog, cache, settings)


@pytest.fixture
def recommender(preferences, catalog, ratings, store, cache, settings) -> RecommendationEngine:
    return RecommendationEngine(preferences, catalog, ratings, store, cache, settings)


@pytest.fixture
def invalidator(cache, store) -> CacheInvalidator:
    return CacheInvalidator(cache, store)


@pytest.fixture
def book_service(catalog, ratings, settings) -> BookService:
    return BookService(catalog, ratings, settings)


@pytest.fixture
def review_service(catalog, ratings, invalidator) -> ReviewService:
    return ReviewService(catalog, ratings, invalidator)


@pytest.fixture
def library_service(book_service, invalidator, cache, settings) -> LibraryService:
    return LibraryService(book_service, invalidator, cache, settings)


@pytest.fixture
def playlist_service(book_service, invalidator, cache, settings) -> PlaylistService:
    return PlaylistService(book_service, invalidator, cache, settings)


# =============================================================================
# HTTP CLIENT FIXTURE
# =============================================================================

@pytest.fixture
async def client(settings, cache, session_factory, http_client) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    API client with services wired onto app.state.

    ASGITransport does not run the lifespan, so the services are attached
    directly, on top of the test doubles.
    """
    app = create_app()
    attach_services(app, settings, cache, session_factory, http_client)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# SAMPLE DATA
# =============================================================================

class LibraryData:
    """Inserts users and reading history directly into the test database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._clock = datetime(2024, 1, 1, tzinfo=UTC)

    def _tick(self) -> datetime:
        """Strictly increasing timestamps so 'most recent' is deterministic."""
        self._clock += timedelta(minutes=1)
        return self._clock

    async def _add(self, obj):
        async with self._session_factory() as session:
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
        return obj

    async def user(self, email: str = "reader@example.com", **fields) -> User:
        return await self._add(User(email=email, **fields))

    async def save(self, user_id: int, book_id: str) -> SavedBook:
        return await self._add(SavedBook(user_id=user_id, book_id=book_id, saved_at=self._tick()))

    async def review(self, user_id: int, book_id: str, rating: int, **fields) -> Review:
        when = self._tick()
        return await self._add(Review(
            user_id=user_id,
            book_id=book_id,
            rating=rating,
            created_at=when,
            updated_at=when,
            **fields,
        ))

    async def playlist(self, user_id: int, book_ids: list[str] = (), is_public: bool = False,
                       name: str = "My list") -> Playlist:
        playlist = await self._add(Playlist(user_id=user_id, name=name, is_public=is_public))
        for position, book_id in enumerate(book_ids):
            await self._add(PlaylistBook(playlist_id=playlist.id, book_id=book_id, position=position))
        return playlist


@pytest.fixture
def data(session_factory) -> LibraryData:
    return LibraryData(session_factory)


@pytest.fixture
async def user(data: LibraryData) -> User:
    return await data.user()
