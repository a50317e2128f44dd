"""
Personal Library Router

Endpoints:
- GET /library - Your saved books (paginated, newest first)
- GET /library/stats - Your library and review counts
- GET /library/{book_id} - Whether a book is saved
- POST /library/{book_id} - Save a book
- DELETE /library/{book_id} - Remove a saved book
"""

from fastapi import APIRouter, Request, status

from library_api.config import get_settings
from library_api.dependencies import CurrentUser, DbSession, Library, Pagination
from library_api.schemas.library import (
    SavedBookListResponse,
    SavedBookResponse,
    SavedStatusResponse,
    UserStatsResponse,
)
from library_api.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(prefix="/library", tags=["Library"])


@router.get("", response_model=SavedBookListResponse, summary="List saved books")
@limiter.limit(settings.rate_limit_default)
async def list_saved_books(
    request: Request,
    db: DbSession,
    library: Library,
    current_user: CurrentUser,
    pagination: Pagination,
) -> dict:
    return await library.get_saved_books(db, current_user.id, pagination.page, pagination.per_page)


@router.get("/stats", response_model=UserStatsResponse, summary="Library statistics")
@limiter.limit(settings.rate_limit_default)
async def library_stats(
    request: Request,
    db: DbSession,
    library: Library,
    current_user: CurrentUser,
) -> dict:
    return await library.get_user_stats(db, current_user.id)


@router.get("/{book_id}", response_model=SavedStatusResponse, summary="Is a book saved")
@limiter.limit(settings.rate_limit_default)
async def saved_status(
    request: Request,
    book_id: str,
    db: DbSession,
    library: Library,
    current_user: CurrentUser,
) -> SavedStatusResponse:
    saved = await library.is_book_saved(db, current_user.id, book_id)
    return SavedStatusResponse(book_id=book_id, saved=saved)


@router.post(
    "/{book_id}",
    response_model=SavedBookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a book",
    responses={409: {"description": "Book already saved"}},
)
@limiter.limit(settings.rate_limit_write)
async def save_book(
    request: Request,
    book_id: str,
    db: DbSession,
    library: Library,
    current_user: CurrentUser,
) -> dict:
    return await library.save_book(db, current_user.id, book_id)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a saved book")
@limiter.limit(settings.rate_limit_write)
async def remove_book(
    request: Request,
    book_id: str,
    db: DbSession,
    library: Library,
    current_user: CurrentUser,
) -> None:
    await library.remove_book(db, current_user.id, book_id)
