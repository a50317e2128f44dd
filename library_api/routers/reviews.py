"""
Reviews Router

Endpoints:
- GET /books/{book_id}/reviews - Reviews of a book with rating statistics
- PUT /books/{book_id}/reviews - Create or replace your review
- DELETE /books/{book_id}/reviews - Delete your review

Business Rules:
- One review per user per book (PUT is an upsert)
- Rating must be 1-5
"""

import logging

from fastapi import APIRouter, Request, Response, status

from library_api.config import get_settings
from library_api.dependencies import CurrentUser, DbSession, Pagination, Reviews
from library_api.schemas.review import ReviewListResponse, ReviewResponse, ReviewWrite
from library_api.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/books/{book_id}/reviews",
    tags=["Reviews"],
    responses={
        404: {"description": "Book or review not found"},
    },
)


@router.get(
    "",
    response_model=ReviewListResponse,
    summary="List reviews for a book",
)
@limiter.limit(settings.rate_limit_default)
async def list_book_reviews(
    request: Request,
    book_id: str,
    db: DbSession,
    reviews: Reviews,
    pagination: Pagination,
) -> dict:
    return await reviews.get_book_reviews(db, book_id, pagination.page, pagination.per_page)


@router.put(
    "",
    response_model=ReviewResponse,
    summary="Create or update your review",
    description="Creates your review of the book (201) or replaces the existing one (200).",
)
@limiter.limit(settings.rate_limit_write)
async def put_review(
    request: Request,
    response: Response,
    book_id: str,
    review_data: ReviewWrite,
    db: DbSession,
    reviews: Reviews,
    current_user: CurrentUser,
) -> dict:
    review, created = await reviews.create_or_update_review(
        db,
        current_user.id,
        book_id,
        rating=review_data.rating,
        title=review_data.title,
        comment=review_data.comment,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return review


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete your review",
)
@limiter.limit(settings.rate_limit_write)
async def delete_review(
    request: Request,
    book_id: str,
    db: DbSession,
    reviews: Reviews,
    current_user: CurrentUser,
) -> None:
    await reviews.delete_review(db, current_user.id, book_id)
