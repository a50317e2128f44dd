"""
Playlist Schemas
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from library_api.schemas.book import BookSummaryResponse


class PlaylistCreate(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        examples=["Summer reading"],
    )
    description: str | None = Field(default=None, max_length=2000)
    is_public: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Playlist name cannot be blank")
        return v


class PlaylistResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: str | None = None
    is_public: bool
    created_at: datetime
    updated_at: datetime
    books: list[BookSummaryResponse] = Field(default_factory=list)
