"""
Book Pydantic Schemas

Books are not stored locally: these schemas describe the normalized
Open Library data the services return (plain dicts), with the combined
rating attached.
"""

from pydantic import BaseModel, Field


class DownloadLink(BaseModel):
    format: str = Field(..., examples=["PDF", "EPUB", "Read Online"])
    url: str


class AuthorInfo(BaseModel):
    """Author record embedded in a book detail."""

    name: str | None = None
    biography: str | None = None
    birth_date: str | None = None
    death_date: str | None = None
    photo_url: str | None = None


class EditionInfo(BaseModel):
    title: str | None = None
    isbn: str | None = None
    publishers: list[str] = Field(default_factory=list)
    publish_date: str | None = None
    page_count: int | None = None
    languages: list[str] = Field(default_factory=list)


class RatingSource(BaseModel):
    rating: float
    count: int


class RatingSources(BaseModel):
    upstream: RatingSource | None = None
    local: RatingSource | None = None


class BookSummaryResponse(BaseModel):
    """
    Book as it appears in lists (search, trending, recommendations, ...).

    average_rating / rating_count are the combined rating; the upstream_*
    fields are the raw Open Library figures.
    """

    id: str = Field(..., description="Open Library work id", examples=["OL45883W"])
    title: str | None = Field(default=None, examples=["Nineteen Eighty-Four"])
    authors: list[str] = Field(default_factory=list)
    cover_id: int | None = None
    cover_url: str | None = None
    publish_year: int | None = None
    subjects: list[str] = Field(default_factory=list)
    upstream_rating: float | None = None
    upstream_rating_count: int = 0
    average_rating: float | None = Field(default=None, ge=0, le=5)
    rating_count: int = 0

    isbn: str | None = None
    languages: list[str] = Field(default_factory=list)
    page_count: int | None = None
    publishers: list[str] = Field(default_factory=list)
    has_fulltext: bool | None = None

    description: str | None = None
    download_links: list[DownloadLink] = Field(default_factory=list)


class BookDetailResponse(BookSummaryResponse):
    """Full work detail."""

    authors: list[AuthorInfo] = Field(default_factory=list)
    first_publish_date: str | None = None
    publisher: str | None = None
    editions: list[EditionInfo] = Field(default_factory=list)
    rating_sources: RatingSources | None = None


class BookSearchResponse(BaseModel):
    total: int
    page: int
    limit: int
    books: list[BookSummaryResponse]


class SubjectBooksResponse(BaseModel):
    name: str
    total: int
    books: list[BookSummaryResponse]


class RecommendationsResponse(BaseModel):
    books: list[BookSummaryResponse]
    count: int
