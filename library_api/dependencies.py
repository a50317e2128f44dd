"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

Service instances are built once in the application lifespan (main.py)
and stored on app.state; the getters below hand them to route handlers.
Tests swap them through app.state or app.dependency_overrides.

Common Dependency Patterns:
- Database sessions (per-request)
- Acting user (X-User-Id header)
- Pagination parameters
- Service instances
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.database import get_db
from library_api.models import User
from library_api.services.books import BookService
from library_api.services.library import LibraryService
from library_api.services.playlists import PlaylistService
from library_api.services.recommendations import RecommendationEngine
from library_api.services.reviews import ReviewService

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   async def list_saved(db: AsyncSession = Depends(get_db)):
#
# You can write:
#   async def list_saved(db: DbSession):

DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# Services
# =============================================================================
def get_book_service(request: Request) -> BookService:
    return request.app.state.book_service


def get_recommendation_engine(request: Request) -> RecommendationEngine:
    return request.app.state.recommendation_engine


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.review_service


def get_library_service(request: Request) -> LibraryService:
    return request.app.state.library_service


def get_playlist_service(request: Request) -> PlaylistService:
    return request.app.state.playlist_service


Books = Annotated[BookService, Depends(get_book_service)]
Recommender = Annotated[RecommendationEngine, Depends(get_recommendation_engine)]
Reviews = Annotated[ReviewService, Depends(get_review_service)]
Library = Annotated[LibraryService, Depends(get_library_service)]
Playlists = Annotated[PlaylistService, Depends(get_playlist_service)]


# =============================================================================
# Pagination Parameters
# =============================================================================
class PaginationParams:
    """
    Common pagination parameters for list endpoints.

    - page: Which page to return (1-indexed)
    - per_page: How many items per page
    """

    def __init__(
        self,
        page: int = Query(
            default=1,
            ge=1,
            description="Page number (1-indexed)",
            examples=[1, 2, 3],
        ),
        per_page: int = Query(
            default=10,
            ge=1,
            le=100,
            description="Number of items per page (max 100)",
            examples=[10, 25, 50],
        ),
    ) -> None:
        self.page = page
        self.per_page = per_page


Pagination = Annotated[PaginationParams, Depends()]


# =============================================================================
# Acting User
# =============================================================================
# Sign-in happens upstream of this service (gateway / session layer), which
# forwards the authenticated user's id in the X-User-Id header.

async def get_current_user(
    db: DbSession,
    x_user_id: int | None = Header(None, alias="X-User-Id"),
) -> User:
    """
    Load the acting user.

    Raises:
        HTTPException: 401 if the header is missing or the user is unknown
            or inactive
    """
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Provide X-User-Id header.",
        )

    user = await db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user",
        )
    return user


def get_optional_user_id(
    x_user_id: int | None = Header(None, alias="X-User-Id"),
) -> int | None:
    """Acting user id when present; anonymous requests get None."""
    return x_user_id


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUserId = Annotated[int | None, Depends(get_optional_user_id)]
