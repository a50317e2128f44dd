"""
Recommendations Router

Endpoints:
- GET /recommendations - Personalized recommendations for the acting user

Users without reading history get trending books.
"""

from fastapi import APIRouter, Query, Request

from library_api.config import get_settings
from library_api.dependencies import CurrentUser, Recommender
from library_api.schemas.book import RecommendationsResponse
from library_api.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(tags=["Recommendations"])


@router.get(
    "/recommendations",
    response_model=RecommendationsResponse,
    summary="Personalized recommendations",
    description=(
        "Books matching the subjects of the user's saved and highly rated books, "
        "excluding books they already saved or reviewed."
    ),
)
@limiter.limit(settings.rate_limit_default)
async def get_recommendations(
    request: Request,
    current_user: CurrentUser,
    recommender: Recommender,
    limit: int = Query(default=10, ge=1, le=50, description="Number of recommendations"),
) -> RecommendationsResponse:
    books = await recommender.recommend(current_user.id, limit)
    return RecommendationsResponse(books=books, count=len(books))
