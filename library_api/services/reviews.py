"""
Reviews Service

Local ratings and reviews of Open Library works.

Business Rules:
- One review per user per book: writing again updates the existing review
- Rating must be 1-5
- Only existing works can be reviewed (checked against the catalog)
- Every committed write invalidates the cached views derived from the
  book's rating and from the reviewer's history
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from library_api.exceptions import BadRequestError, ConflictError, NotFoundError
from library_api.models import Review
from library_api.services.catalog import CatalogGateway
from library_api.services.invalidation import CacheInvalidator
from library_api.services.ratings import RatingAggregator
from library_api.utils.pagination import paginate, pagination_response

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def review_to_dict(review: Review) -> dict[str, Any]:
    data = {
        "id": review.id,
        "user_id": review.user_id,
        "book_id": review.book_id,
        "rating": review.rating,
        "title": review.title,
        "comment": review.comment,
        "created_at": review.created_at,
        "updated_at": review.updated_at,
    }
    if "user" in review.__dict__ and review.user is not None:
        data["user"] = {
            "id": review.user.id,
            "first_name": review.user.first_name,
            "last_name": review.user.last_name,
            "avatar": review.user.avatar,
        }
    return data


class ReviewService:
    """Review reads and writes for one book at a time."""

    def __init__(
        self,
        catalog: CatalogGateway,
        ratings: RatingAggregator,
        invalidator: CacheInvalidator,
    ) -> None:
        self._catalog = catalog
        self._ratings = ratings
        self._invalidator = invalidator

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_rating_stats(self, db: AsyncSession, book_id: str) -> dict[str, Any]:
        """Local average, review count and the 1-5 distribution."""
        avg_rating, total = (await db.execute(
            select(func.avg(Review.rating), func.count(Review.id)).where(Review.book_id == book_id)
        )).one()

        distribution = {rating: 0 for rating in range(MIN_RATING, MAX_RATING + 1)}
        if total:
            rows = await db.execute(
                select(Review.rating, func.count(Review.id))
                .where(Review.book_id == book_id)
                .group_by(Review.rating)
            )
            for rating, count in rows.all():
                distribution[rating] = count

        return {
            "average_rating": round(float(avg_rating), 2) if avg_rating is not None else None,
            "total_reviews": total or 0,
            "rating_distribution": distribution,
        }

    async def get_book_reviews(
        self,
        db: AsyncSession,
        book_id: str,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        """
        Paginated reviews for a book, newest first, with local statistics
        and the combined rating.

        Returns:
            Pagination envelope plus "stats" and "combined_rating"
        """
        offset, limit = paginate(page, limit)

        stats = await self.get_rating_stats(db, book_id)
        stmt = (
            select(Review)
            .options(selectinload(Review.user))
            .where(Review.book_id == book_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .offset(offset)
            .limit(limit)
        )
        reviews = (await db.execute(stmt)).scalars().all()

        response = pagination_response(
            [review_to_dict(r) for r in reviews],
            stats["total_reviews"],
            page,
            limit,
        )
        response["stats"] = stats

        upstream = await self._catalog.get_upstream_rating(book_id)
        response["combined_rating"] = await self._ratings.combine(
            book_id, upstream.get("rating"), upstream.get("count") or 0
        )
        return response

    async def get_user_review(self, db: AsyncSession, user_id: int, book_id: str) -> Review | None:
        stmt = select(Review).where(Review.user_id == user_id, Review.book_id == book_id)
        return (await db.execute(stmt)).scalar_one_or_none()

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_or_update_review(
        self,
        db: AsyncSession,
        user_id: int,
        book_id: str,
        rating: int,
        title: str | None = None,
        comment: str | None = None,
    ) -> tuple[dict[str, Any], bool]:
        """
        Create the user's review of a book, or update it if one exists.

        Returns:
            (review dict, created)

        Raises:
            BadRequestError: rating outside 1-5
            BookNotFoundError: unknown work id
            ConflictError: concurrent duplicate insert
        """
        if not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise BadRequestError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        review = await self.get_user_review(db, user_id, book_id)
        created = review is None

        if created:
            await self._catalog.get_by_id(book_id)
            review = Review(user_id=user_id, book_id=book_id, rating=rating, title=title, comment=comment)
            db.add(review)
            rating_changed = True
        else:
            rating_changed = review.rating != rating
            review.rating = rating
            review.title = title
            review.comment = comment

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Duplicate review for book {book_id} by user {user_id}: {e}")
            raise ConflictError("You have already reviewed this book") from e
        await db.refresh(review)

        await self._invalidator.invalidate_book_cache(book_id, user_id, rating_changed=rating_changed)

        logger.info(f"Review {'created' if created else 'updated'} for book {book_id} by user {user_id}")
        return review_to_dict(review), created

    async def delete_review(self, db: AsyncSession, user_id: int, book_id: str) -> None:
        """
        Delete the user's review of a book.

        Raises:
            NotFoundError: the user has not reviewed this book
        """
        review = await self.get_user_review(db, user_id, book_id)
        if review is None:
            raise NotFoundError("Review not found")

        await db.delete(review)
        await db.commit()

        await self._invalidator.invalidate_book_cache(book_id, user_id, rating_changed=True)
        logger.info(f"Review deleted for book {book_id} by user {user_id}")
