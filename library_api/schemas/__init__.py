"""
Pydantic Schemas Package

Request/response models for the HTTP boundary. Services exchange plain
dicts; these schemas validate request bodies and shape responses.

Schema Naming Convention:
- XxxCreate / XxxWrite: request bodies
- XxxResponse: fields returned in API responses
"""

from library_api.schemas.book import (
    BookDetailResponse,
    BookSearchResponse,
    BookSummaryResponse,
    RecommendationsResponse,
    SubjectBooksResponse,
)
from library_api.schemas.library import (
    SavedBookListResponse,
    SavedBookResponse,
    SavedStatusResponse,
    UserStatsResponse,
)
from library_api.schemas.playlist import PlaylistCreate, PlaylistResponse
from library_api.schemas.review import ReviewListResponse, ReviewResponse, ReviewWrite

__all__ = [
    "BookDetailResponse",
    "BookSearchResponse",
    "BookSummaryResponse",
    "RecommendationsResponse",
    "SubjectBooksResponse",
    "SavedBookListResponse",
    "SavedBookResponse",
    "SavedStatusResponse",
    "UserStatsResponse",
    "PlaylistCreate",
    "PlaylistResponse",
    "ReviewListResponse",
    "ReviewResponse",
    "ReviewWrite",
]
