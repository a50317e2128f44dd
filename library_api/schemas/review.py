"""
Review Pydantic Schemas

Business Rules:
- Rating must be 1-5 (validated at schema level)
- One review per user per book (PUT creates or replaces it)
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from library_api.schemas.book import RatingSources


class ReviewWrite(BaseModel):
    """Body of PUT /books/{book_id}/reviews."""

    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars",
        examples=[4, 5],
    )
    title: str | None = Field(
        default=None,
        max_length=200,
        description="Optional review headline",
        examples=["A masterpiece!"],
    )
    comment: str | None = Field(
        default=None,
        max_length=5000,
        description="Review text",
    )

    @field_validator("title", "comment")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Blank strings are stored as NULL."""
        if v is None:
            return None
        v = v.strip()
        return v or None


class ReviewAuthor(BaseModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    book_id: str
    rating: int
    title: str | None = None
    comment: str | None = None
    created_at: datetime
    updated_at: datetime
    user: ReviewAuthor | None = None

    model_config = ConfigDict(from_attributes=True)


class RatingStats(BaseModel):
    average_rating: float | None = None
    total_reviews: int = 0
    rating_distribution: dict[int, int]


class CombinedRating(BaseModel):
    average_rating: float | None = None
    rating_count: int = 0
    sources: RatingSources | None = None


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total: int
    page: int
    per_page: int
    pages: int
    has_next: bool
    has_prev: bool
    stats: RatingStats
    combined_rating: CombinedRating
