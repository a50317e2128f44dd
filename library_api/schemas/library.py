"""
Personal Library Schemas
"""

from datetime import datetime

from pydantic import BaseModel

from library_api.schemas.book import BookSummaryResponse


class SavedBookItem(BaseModel):
    book: BookSummaryResponse
    saved_at: datetime


class SavedBookListResponse(BaseModel):
    items: list[SavedBookItem]
    total: int
    page: int
    per_page: int
    pages: int
    has_next: bool
    has_prev: bool


class SavedBookResponse(BaseModel):
    id: int
    book_id: str
    saved_at: datetime


class SavedStatusResponse(BaseModel):
    book_id: str
    saved: bool


class UserStatsResponse(BaseModel):
    saved_books: int
    reviews: int
    playlists: int
    average_rating_given: float | None = None
