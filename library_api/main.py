"""
Library API Application

Builds the FastAPI application and owns the lifetime of its shared
resources.

Startup Order:
==============
1. Redis cache (fail-open: a dead Redis only disables caching)
2. Async database engine and session factory
3. Pooled HTTP client for Open Library
4. Service graph (attach_services), stored on app.state

Shutdown closes the HTTP client, the cache and the engine in that order.

Request Pipeline:
=================
- slowapi rate limiting, then CORS
- Routers under /api/<version>
- Domain errors (LibraryError) become {"detail": message} with their own
  status code; database and unexpected errors become a generic 500
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_api import __version__
from library_api.config import Settings, get_settings
from library_api.database import create_engine_and_factory
from library_api.exceptions import LibraryError
from library_api.routers import (
    books_router,
    library_router,
    playlists_router,
    recommendations_router,
    reviews_router,
)
from library_api.services.books import BookService
from library_api.services.cache import CacheService
from library_api.services.catalog import CatalogGateway
from library_api.services.invalidation import CacheInvalidator
from library_api.services.library import LibraryService
from library_api.services.playlists import PlaylistService
from library_api.services.preferences import PreferenceExtractor
from library_api.services.rate_limiter import limiter, rate_limit_exceeded_handler
from library_api.services.ratings import RatingAggregator
from library_api.services.recommendations import RecommendationEngine
from library_api.services.reviews import ReviewService
from library_api.services.store import LibraryStore

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Service Wiring
# =============================================================================
def attach_services(
    app: FastAPI,
    settings: Settings,
    cache: CacheService,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
) -> None:
    """
    Build every service once and store it on app.state.

    Dependency order: cache/store/catalog -> ratings -> preferences ->
    recommendations; invalidation -> write-path services.
    """
    store = LibraryStore(session_factory)
    catalog = CatalogGateway(http_client, cache, settings)
    ratings = RatingAggregator(store, cache, settings)
    preferences = PreferenceExtractor(store, catalog, cache, settings)
    invalidator = CacheInvalidator(cache, store)
    books = BookService(catalog, ratings, settings)

    app.state.settings = settings
    app.state.cache = cache
    app.state.session_factory = session_factory
    app.state.store = store
    app.state.catalog = catalog
    app.state.ratings = ratings
    app.state.invalidator = invalidator
    app.state.book_service = books
    app.state.recommendation_engine = RecommendationEngine(
        preferences, catalog, ratings, store, cache, settings
    )
    app.state.review_service = ReviewService(catalog, ratings, invalidator)
    app.state.library_service = LibraryService(books, invalidator, cache, settings)
    app.state.playlist_service = PlaylistService(books, invalidator, cache, settings)


# =============================================================================
# Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open shared resources before serving, release them afterwards."""
    logger.info(f"Starting {settings.app_name} {__version__} ({settings.environment})")

    cache = await CacheService.connect(settings)
    engine, session_factory = create_engine_and_factory(settings)
    http_client = CatalogGateway.create_client(settings)

    attach_services(app, settings, cache, session_factory, http_client)
    logger.info(f"Services ready, upstream catalog at {settings.open_library_url}")

    yield

    logger.info(f"Stopping {settings.app_name}")
    await http_client.aclose()
    await cache.close()
    await engine.dispose()


# =============================================================================
# Health Probes
# =============================================================================
async def database_status(session_factory: async_sessionmaker[AsyncSession]) -> str:
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Database health probe failed: {e}")
        return "disconnected"
    return "connected"


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """Configured application; services are attached by the lifespan."""
    app = FastAPI(
        title=settings.app_name,
        description="""
## Library API

Online library backend on top of the Open Library catalog.

- **Books**: search, trending lists, subjects and work detail
- **Ratings**: Open Library crowd ratings blended with local reviews
- **Recommendations**: driven by the subjects of the books you save and rate
- **Library & Playlists**: saved books and curated lists

Calls that act on a user's data take the user id from the `X-User-Id` header.
        """,
        version=__version__,
        lifespan=lifespan,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Error Mapping
    # -------------------------------------------------------------------------
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """The driver message stays in the log; clients get a generic 500."""
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "The library database is unavailable, please retry later."},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        detail = str(exc) if settings.debug else "Internal server error."
        return JSONResponse(status_code=500, content={"detail": detail})

    # -------------------------------------------------------------------------
    # Routers
    # -------------------------------------------------------------------------
    api_prefix = f"/api/{settings.api_version}"
    for router in (
        books_router,
        reviews_router,
        recommendations_router,
        library_router,
        playlists_router,
    ):
        app.include_router(router, prefix=api_prefix)

    @app.get("/health", tags=["Health"], summary="Service health")
    async def health_check(request: Request) -> dict:
        """
        Liveness plus the state of each backing store.

        A disconnected cache only degrades performance, so the service still
        reports "healthy"; a disconnected database reports "degraded".
        """
        state = request.app.state
        database = await database_status(state.session_factory)
        return {
            "status": "healthy" if database == "connected" else "degraded",
            "version": __version__,
            "environment": settings.environment,
            "database": database,
            "cache": await state.cache.stats(),
            "rate_limiting": settings.rate_limit_enabled,
        }

    @app.get("/", tags=["Root"], summary="API index")
    async def root() -> dict:
        return {
            "name": settings.app_name,
            "version": __version__,
            "api": api_prefix,
            "docs": app.docs_url,
            "health": "/health",
        }

    return app


# uvicorn library_api.main:app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "library_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
