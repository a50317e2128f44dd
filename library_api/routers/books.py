"""
Books Router

Read-only catalog endpoints. Book data comes from Open Library; every
book returned carries the combined rating.

Endpoints:
- GET /books/search - Fielded search
- GET /books/trending - Trending works
- GET /books/subjects/{subject} - Works in a subject or category
- GET /books/{book_id} - Work detail

Static paths are declared before /books/{book_id} so they are matched first.
"""

import logging

from fastapi import APIRouter, Query, Request

from library_api.config import get_settings
from library_api.dependencies import Books
from library_api.schemas.book import (
    BookDetailResponse,
    BookSearchResponse,
    BookSummaryResponse,
    SubjectBooksResponse,
)
from library_api.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        404: {"description": "Book not found"},
    },
)


@router.get(
    "/search",
    response_model=BookSearchResponse,
    summary="Search books",
    description="Search Open Library by free text and/or fields.",
)
@limiter.limit(settings.rate_limit_default)
async def search_books(
    request: Request,
    books: Books,
    q: str | None = Query(default=None, max_length=200, description="Free-text query"),
    title: str | None = Query(default=None, max_length=200),
    author: str | None = Query(default=None, max_length=200),
    publisher: str | None = Query(default=None, max_length=200),
    subject: str | None = Query(default=None, max_length=200),
    language: str | None = Query(default=None, max_length=20, examples=["en", "eng"]),
    year_from: int | None = Query(default=None, ge=0, le=9999),
    year_to: int | None = Query(default=None, ge=0, le=9999),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> BookSearchResponse:
    result = await books.search(
        q,
        page=page,
        limit=limit,
        title=title,
        author=author,
        publisher=publisher,
        subject=subject,
        language=language,
        year_from=year_from,
        year_to=year_to,
    )
    return BookSearchResponse(total=result["total"], page=page, limit=limit, books=result["books"])


@router.get(
    "/trending",
    response_model=list[BookSummaryResponse],
    summary="Trending books",
)
@limiter.limit(settings.rate_limit_default)
async def trending_books(
    request: Request,
    books: Books,
    period: str = Query(default="daily", pattern="^(now|daily|weekly|monthly|yearly|forever)$"),
    limit: int = Query(default=10, ge=1, le=50),
) -> list[dict]:
    return await books.get_trending(period, limit)


@router.get(
    "/subjects/{subject}",
    response_model=SubjectBooksResponse,
    summary="Books by subject",
    description="Open Library subject name or a category slug such as 'science-fiction'.",
)
@limiter.limit(settings.rate_limit_default)
async def books_by_subject(
    request: Request,
    subject: str,
    books: Books,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> dict:
    return await books.get_by_category(subject, limit=limit, offset=offset)


@router.get(
    "/{book_id}",
    response_model=BookDetailResponse,
    summary="Get a book",
    description="Full work detail: authors, editions, download links and rating sources.",
)
@limiter.limit(settings.rate_limit_default)
async def get_book(
    request: Request,
    book_id: str,
    books: Books,
) -> dict:
    return await books.get_book(book_id)
