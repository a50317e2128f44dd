"""
Playlists Router

Endpoints:
- POST /playlists - Create a playlist
- GET /playlists/{playlist_id} - Playlist with its books
- DELETE /playlists/{playlist_id} - Delete a playlist (owner only)
- POST /playlists/{playlist_id}/books/{book_id} - Append a book (owner only)
- DELETE /playlists/{playlist_id}/books/{book_id} - Remove a book (owner only)

Private playlists are visible to their owner only.
"""

from fastapi import APIRouter, Request, status

from library_api.config import get_settings
from library_api.dependencies import CurrentUser, DbSession, OptionalUserId, Playlists
from library_api.schemas.playlist import PlaylistCreate, PlaylistResponse
from library_api.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/playlists",
    tags=["Playlists"],
    responses={
        403: {"description": "Not your playlist"},
        404: {"description": "Playlist not found"},
    },
)


@router.post(
    "",
    response_model=PlaylistResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a playlist",
)
@limiter.limit(settings.rate_limit_write)
async def create_playlist(
    request: Request,
    playlist_data: PlaylistCreate,
    db: DbSession,
    playlists: Playlists,
    current_user: CurrentUser,
) -> dict:
    return await playlists.create_playlist(
        db,
        current_user.id,
        name=playlist_data.name,
        description=playlist_data.description,
        is_public=playlist_data.is_public,
    )


@router.get("/{playlist_id}", response_model=PlaylistResponse, summary="Get a playlist")
@limiter.limit(settings.rate_limit_default)
async def get_playlist(
    request: Request,
    playlist_id: int,
    db: DbSession,
    playlists: Playlists,
    user_id: OptionalUserId,
) -> dict:
    return await playlists.get_playlist(db, playlist_id, user_id)


@router.delete("/{playlist_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a playlist")
@limiter.limit(settings.rate_limit_write)
async def delete_playlist(
    request: Request,
    playlist_id: int,
    db: DbSession,
    playlists: Playlists,
    current_user: CurrentUser,
) -> None:
    await playlists.delete_playlist(db, playlist_id, current_user.id)


@router.post(
    "/{playlist_id}/books/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Add a book to a playlist",
)
@limiter.limit(settings.rate_limit_write)
async def add_playlist_book(
    request: Request,
    playlist_id: int,
    book_id: str,
    db: DbSession,
    playlists: Playlists,
    current_user: CurrentUser,
) -> None:
    await playlists.add_book(db, playlist_id, current_user.id, book_id)


@router.delete(
    "/{playlist_id}/books/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a book from a playlist",
)
@limiter.limit(settings.rate_limit_write)
async def remove_playlist_book(
    request: Request,
    playlist_id: int,
    book_id: str,
    db: DbSession,
    playlists: Playlists,
    current_user: CurrentUser,
) -> None:
    await playlists.remove_book(db, playlist_id, current_user.id, book_id)
