"""
Open Library Catalog Gateway

Async client for the upstream catalog (https://openlibrary.org).

Responsibilities:
- Fetch book metadata: fielded search, work detail, batch-by-id,
  subject listings, trending lists
- Normalize the different upstream document shapes (search doc, subject
  work, trending work, work + authors + editions) into one BookSummary /
  BookDetail dict shape; raw upstream JSON never leaves this module
- Resolve cover image URLs and download links
- Absorb upstream failures into empty or partial results

Resilience Policy:
==================
Every public method degrades to an empty/partial result on upstream errors
(logged, never raised), except get_by_id(), which raises BookNotFoundError
because callers use it as an existence check.

Caching:
========
- search:*, trending:*, subject:*   raw listings (short TTLs)
- book_detail:<id>                  work detail without ratings
- ol_ratings:<id>                   upstream crowd rating lookup
Ratings are deliberately kept out of the detail cache so that the rating
lookup can be refreshed and invalidated on its own.
"""

import asyncio
import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from library_api.config import Settings
from library_api.exceptions import BookNotFoundError
from library_api.services import cache_keys
from library_api.services.cache import CacheService

logger = logging.getLogger(__name__)

SEARCH_FIELDS = (
    "key,title,author_name,first_publish_year,isbn,cover_i,cover_id,subject,"
    "language,language_key,number_of_pages_median,publisher,has_fulltext,ia,"
    "ratings_count,ratings_average"
)
BATCH_FIELDS = (
    "key,title,author_name,first_publish_year,isbn,cover_i,subject,"
    "ratings_average,ratings_count"
)
RATING_FIELDS = "key,ratings_average,ratings_count,cover_i,isbn"

LANGUAGE_CODES = {
    "en": "eng",
    "uk": "ukr",
    "de": "deu",
    "fr": "fra",
    "es": "spa",
    "it": "ita",
    "ru": "rus",
    "pl": "pol",
    "ja": "jpn",
    "zh": "chi",
    "ar": "ara",
}

ARCHIVE_URL = "https://archive.org"
MAX_DOWNLOAD_SOURCES = 3
UPSTREAM_ERRORS = (httpx.HTTPError, ValueError, TypeError, KeyError)


# =============================================================================
# Parsing Helpers
# =============================================================================

def work_id_from_key(key: Any) -> str | None:
    """'/works/OL45883W' -> 'OL45883W'."""
    if not isinstance(key, str) or not key:
        return None
    return key.replace("/works/", "")


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _first(value: Any) -> Any:
    items = _as_list(value)
    return items[0] if items else None


def _parse_rating(value: Any) -> float | None:
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    return rating if rating > 0 else None


def _parse_count(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _text_value(value: Any) -> str | None:
    """Open Library stores some texts as {"type": ..., "value": ...}."""
    if isinstance(value, dict):
        return value.get("value")
    return value if isinstance(value, str) else None


def normalize_language_code(language: str) -> str:
    """
    Normalize a language to Open Library's three-letter code.

    "en" -> "eng", "/languages/fre" -> "fre", "deu" -> "deu"
    """
    normalized = language.lower().strip()
    normalized = re.sub(r"^/languages/", "", normalized)
    if len(normalized) == 3:
        return normalized
    return LANGUAGE_CODES.get(normalized, normalized)


def normalize_languages(languages: Any) -> list[str]:
    result = []
    for language in _as_list(languages):
        if isinstance(language, dict):
            language = language.get("key", "")
        result.append(re.sub(r"^/languages/", "", str(language)).lower())
    return result


def book_summary(book_id: str | None, title: str | None, **fields: Any) -> dict[str, Any]:
    """
    Build the canonical BookSummary dict.

    Every parser goes through here so all book lists share one shape.
    """
    summary = {
        "id": book_id,
        "title": title,
        "authors": [],
        "cover_id": None,
        "cover_url": None,
        "publish_year": None,
        "subjects": [],
        "upstream_rating": None,
        "upstream_rating_count": 0,
    }
    summary.update(fields)
    return summary


class CoverResolver:
    """Builds covers.openlibrary.org URLs."""

    def __init__(self, covers_url: str) -> None:
        self.covers_url = covers_url.rstrip("/")

    def url(self, kind: str, value: Any, size: str = "M") -> str | None:
        if not value:
            return None
        return f"{self.covers_url}/b/{kind}/{value}-{size}.jpg"

    def author_photo(self, photo_id: Any) -> str | None:
        if not photo_id or photo_id == -1:
            return None
        return f"{self.covers_url}/a/id/{photo_id}-M.jpg"


def parse_search_doc(doc: dict, covers: CoverResolver) -> dict[str, Any]:
    """Search document (search.json) -> BookSummary."""
    cover_id = doc.get("cover_i") or doc.get("cover_id")
    isbn = _first(doc.get("isbn"))
    cover_url = covers.url("id", cover_id) if cover_id else covers.url("isbn", isbn)

    return book_summary(
        work_id_from_key(doc.get("key")),
        doc.get("title"),
        authors=_as_list(doc.get("author_name")),
        cover_id=cover_id,
        cover_url=cover_url,
        publish_year=doc.get("first_publish_year"),
        subjects=_as_list(doc.get("subject"))[:5],
        upstream_rating=_parse_rating(doc.get("ratings_average")),
        upstream_rating_count=_parse_count(doc.get("ratings_count")),
        isbn=isbn,
        languages=normalize_languages(doc.get("language") or doc.get("language_key")),
        page_count=doc.get("number_of_pages_median"),
        publishers=_as_list(doc.get("publisher"))[:3],
        has_fulltext=bool(doc.get("has_fulltext")),
        ia=_as_list(doc.get("ia")),
    )


def parse_subject_work(work: dict, covers: CoverResolver) -> dict[str, Any]:
    """Subject listing work (subjects/<name>.json) -> BookSummary."""
    cover_id = work.get("cover_id")
    return book_summary(
        work_id_from_key(work.get("key")),
        work.get("title"),
        authors=[a.get("name") for a in _as_list(work.get("authors")) if isinstance(a, dict)],
        cover_id=cover_id,
        cover_url=covers.url("id", cover_id),
        publish_year=work.get("first_publish_year"),
        subjects=_as_list(work.get("subject"))[:5],
    )


def parse_trending_work(work: dict, covers: CoverResolver) -> dict[str, Any]:
    """Trending work (trending/<period>.json) -> BookSummary without ratings."""
    cover_id = work.get("cover_i")
    return book_summary(
        work_id_from_key(work.get("key")),
        work.get("title"),
        authors=_as_list(work.get("author_name")),
        cover_id=cover_id,
        cover_url=covers.url("id", cover_id),
        publish_year=work.get("first_publish_year"),
        subjects=_as_list(work.get("subject"))[:5],
    )


def parse_batch_doc(doc: dict, covers: CoverResolver) -> dict[str, Any]:
    """Batch search document -> BookSummary with up to ten subjects."""
    cover_id = doc.get("cover_i")
    isbn = _first(doc.get("isbn"))
    return book_summary(
        work_id_from_key(doc.get("key")),
        doc.get("title"),
        authors=_as_list(doc.get("author_name")),
        cover_id=cover_id,
        cover_url=covers.url("id", cover_id) if cover_id else covers.url("isbn", isbn),
        publish_year=doc.get("first_publish_year"),
        subjects=_as_list(doc.get("subject"))[:10],
        upstream_rating=_parse_rating(doc.get("ratings_average")),
        upstream_rating_count=_parse_count(doc.get("ratings_count")),
    )


def parse_author(author: dict, covers: CoverResolver) -> dict[str, Any]:
    return {
        "name": author.get("name"),
        "biography": _text_value(author.get("bio")),
        "birth_date": author.get("birth_date"),
        "death_date": author.get("death_date"),
        "photo_url": covers.author_photo(_first(author.get("photos"))),
    }


def _edition_isbn(edition: dict) -> str | None:
    return _first(edition.get("isbn_13")) or _first(edition.get("isbn_10"))


def build_download_links(editions: list[dict]) -> list[dict[str, str]]:
    """
    Internet Archive links for the first editions that have a scan.

    Each distinct ocaid yields Read Online / PDF / EPUB links; at most
    MAX_DOWNLOAD_SOURCES scans are used.
    """
    links: list[dict[str, str]] = []
    seen: set[str] = set()

    for edition in editions:
        ocaid = edition.get("ocaid")
        if not ocaid or ocaid in seen:
            continue
        seen.add(ocaid)
        links.append({"format": "Read Online", "url": f"{ARCHIVE_URL}/details/{ocaid}"})
        links.append({"format": "PDF", "url": f"{ARCHIVE_URL}/download/{ocaid}/{ocaid}.pdf"})
        links.append({"format": "EPUB", "url": f"{ARCHIVE_URL}/download/{ocaid}/{ocaid}.epub"})
        if len(seen) >= MAX_DOWNLOAD_SOURCES:
            break

    return links


def parse_publish_year(date_text: Any) -> int | None:
    """'June 8, 1949' -> 1949."""
    if not isinstance(date_text, str):
        return None
    match = re.search(r"\d{4}", date_text)
    return int(match.group(0)) if match else None


def parse_work_detail(
    work: dict,
    authors: list[dict],
    editions: list[dict],
    covers: CoverResolver,
    fallback_cover_id: Any = None,
) -> dict[str, Any]:
    """
    Work + author records + editions -> BookDetail (ratings left empty).

    Cover resolution order: work covers, the search index cover, the first
    edition's covers, then the first edition's ISBN.
    """
    cover_id = next((c for c in _as_list(work.get("covers")) if c and c != -1), None)
    cover_id = cover_id or fallback_cover_id

    first_edition = editions[0] if editions else {}
    if not cover_id and first_edition:
        cover_id = _first(first_edition.get("covers")) or first_edition.get("cover_id")

    if cover_id:
        cover_url = covers.url("id", cover_id, size="L")
    else:
        cover_url = covers.url("isbn", _edition_isbn(first_edition), size="L")

    first_publish_date = work.get("first_publish_date")

    return book_summary(
        work_id_from_key(work.get("key")),
        work.get("title"),
        authors=[parse_author(a, covers) for a in authors],
        cover_id=cover_id,
        cover_url=cover_url,
        publish_year=parse_publish_year(first_publish_date),
        subjects=_as_list(work.get("subjects"))[:10],
        description=_text_value(work.get("description")),
        languages=normalize_languages(work.get("languages")),
        first_publish_date=first_publish_date,
        download_links=build_download_links(editions),
        isbn=_edition_isbn(first_edition),
        publisher=_first(first_edition.get("publishers")),
        publishers=_as_list(first_edition.get("publishers")),
        page_count=first_edition.get("number_of_pages"),
        editions=[
            {
                "title": edition.get("title"),
                "isbn": _edition_isbn(edition),
                "publishers": _as_list(edition.get("publishers")),
                "publish_date": edition.get("publish_date"),
                "page_count": edition.get("number_of_pages"),
                "languages": normalize_languages(edition.get("languages")),
            }
            for edition in editions
        ],
    )


# =============================================================================
# Gateway
# =============================================================================

class CatalogGateway:
    """
    Open Library gateway.

    One instance per process, built in the application lifespan around a
    shared httpx.AsyncClient.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: CacheService,
        settings: Settings,
    ) -> None:
        self._client = client
        self._cache = cache
        self._settings = settings
        self.covers = CoverResolver(settings.open_library_covers_url)

    @staticmethod
    def create_client(settings: Settings) -> httpx.AsyncClient:
        """HTTP client for the upstream API (connection pooling, base URL, timeout)."""
        return httpx.AsyncClient(
            base_url=settings.open_library_url,
            timeout=settings.catalog_timeout,
            headers={"User-Agent": settings.catalog_user_agent},
            follow_redirects=True,
        )

    async def _get_json(self, path: str, params: dict | None = None, **kwargs: Any) -> dict:
        """
        GET a JSON object from the upstream API.

        Raises:
            httpx.HTTPError: network failure, timeout or non-2xx status
            ValueError: body is not a JSON object
        """
        response = await self._client.get(path, params=params, **kwargs)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response shape from {path}")
        return data

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    @staticmethod
    def build_search_query(
        query: str | None = None,
        *,
        title: str | None = None,
        author: str | None = None,
        publisher: str | None = None,
        subject: str | None = None,
        language: str | None = None,
        year_from: int | None = None,
        year_to: int | None = None,
    ) -> str:
        """
        Build Open Library's fielded query syntax.

        Example:
            build_search_query("dune", author="herbert", year_from=1960)
            -> 'dune AND author:herbert AND first_publish_year:[1960 TO *]'
        """
        parts: list[str] = []

        if query and query.strip():
            parts.append(query.strip())
        for field, value in (
            ("title", title),
            ("author", author),
            ("publisher", publisher),
            ("subject", subject),
        ):
            if value and value.strip():
                parts.append(f"{field}:{value.strip()}")
        if language and language.strip():
            parts.append(f"language:{normalize_language_code(language)}")
        if year_from or year_to:
            parts.append(f"first_publish_year:[{year_from or '*'} TO {year_to or '*'}]")

        return " AND ".join(parts) if parts else "*"

    async def search(
        self,
        query: str | None = None,
        *,
        page: int = 1,
        limit: int = 10,
        title: str | None = None,
        author: str | None = None,
        publisher: str | None = None,
        subject: str | None = None,
        language: str | None = None,
        year_from: int | None = None,
        year_to: int | None = None,
    ) -> dict[str, Any]:
        """
        Fielded search.

        The upstream language field lists the languages of every edition,
        so when a language filter is given the results are filtered again
        here on the normalized language list.

        Returns:
            {"total": int, "books": [BookSummary]}; {"total": 0, "books": []}
            on any upstream failure
        """
        filters = {
            "title": title,
            "author": author,
            "publisher": publisher,
            "subject": subject,
            "language": language,
            "year_from": year_from,
            "year_to": year_to,
        }
        cache_key = cache_keys.search_results(query, page=page, limit=limit, **filters)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        search_query = self.build_search_query(query, **filters)
        params = {"q": search_query, "page": page, "limit": limit, "fields": SEARCH_FIELDS}

        try:
            data = await self._get_json("/search.json", params=params)
            books = [
                parse_search_doc(doc, self.covers)
                for doc in _as_list(data.get("docs"))
                if isinstance(doc, dict) and doc.get("key")
            ]
        except UPSTREAM_ERRORS as e:
            logger.error(f"Open Library search error for '{search_query}': {e}")
            return {"total": 0, "books": []}

        total = _parse_count(data.get("numFound", data.get("num_found", len(books))))

        if language and language.strip():
            language_code = normalize_language_code(language)
            original_count = len(books)
            books = [b for b in books if language_code in b.get("languages", [])]
            total = len(books)
            if original_count != total:
                logger.debug(
                    f"Language filter: {original_count} -> {total} books (filtered for {language_code})"
                )

        result = {"total": total, "books": books}
        await self._cache.set(cache_key, result, ttl=self._settings.search_cache_ttl)
        return result

    # -------------------------------------------------------------------------
    # Single work
    # -------------------------------------------------------------------------

    async def get_upstream_rating(self, book_id: str) -> dict[str, Any]:
        """
        Crowd rating for one work from the search index.

        The work endpoint does not carry live ratings, so this lightweight
        lookup fills them in. Failures are not cached.

        Returns:
            {"rating": float|None, "count": int, "cover_id": int|None}
        """
        cache_key = cache_keys.upstream_rating(book_id)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        empty = {"rating": None, "count": 0, "cover_id": None}
        params = {"q": f"key:/works/{book_id}", "fields": RATING_FIELDS, "limit": 1}
        try:
            data = await self._get_json("/search.json", params=params)
        except UPSTREAM_ERRORS as e:
            logger.warning(f"Could not fetch ratings for {book_id}: {e}")
            return empty

        doc = _first(data.get("docs"))
        result = dict(empty)
        if isinstance(doc, dict):
            result = {
                "rating": _parse_rating(doc.get("ratings_average")),
                "count": _parse_count(doc.get("ratings_count")),
                "cover_id": doc.get("cover_i"),
            }

        await self._cache.set(cache_key, result, ttl=self._settings.upstream_rating_ttl)
        return result

    async def _fetch_author(self, author_ref: dict) -> dict | None:
        author_key = (author_ref.get("author") or {}).get("key") or author_ref.get("key")
        if not author_key:
            return None
        try:
            return await self._get_json(f"{author_key}.json")
        except UPSTREAM_ERRORS as e:
            logger.debug(f"Author lookup failed for {author_key}: {e}")
            return None

    async def _fetch_editions(self, book_id: str) -> list[dict]:
        try:
            data = await self._get_json(
                f"/works/{book_id}/editions.json",
                params={"limit": self._settings.catalog_editions_limit},
            )
        except UPSTREAM_ERRORS as e:
            logger.warning(f"Editions lookup failed for {book_id}: {e}")
            return []
        return [e for e in _as_list(data.get("entries")) if isinstance(e, dict)]

    async def get_by_id(self, book_id: str) -> dict[str, Any]:
        """
        Full detail for one work.

        Work, rating lookup, authors (in parallel) and the first editions are
        fetched concurrently. Missing authors or editions only make the
        detail poorer.

        Raises:
            BookNotFoundError: the work itself cannot be fetched
        """
        rating_task = asyncio.ensure_future(self.get_upstream_rating(book_id))

        cache_key = cache_keys.book_detail(book_id)
        detail = await self._cache.get(cache_key)

        if detail is None:
            try:
                work = await self._get_json(f"/works/{book_id}.json")
            except UPSTREAM_ERRORS as e:
                rating_task.cancel()
                logger.error(f"Open Library get book error for {book_id}: {e}")
                raise BookNotFoundError(book_id) from e

            author_refs = [a for a in _as_list(work.get("authors")) if isinstance(a, dict)]
            authors, editions, rating = await asyncio.gather(
                asyncio.gather(*(self._fetch_author(ref) for ref in author_refs)),
                self._fetch_editions(book_id),
                rating_task,
            )
            detail = parse_work_detail(
                work,
                [a for a in authors if a],
                editions,
                self.covers,
                fallback_cover_id=rating.get("cover_id"),
            )
            detail["id"] = detail["id"] or book_id
            await self._cache.set(cache_key, detail, ttl=self._settings.book_detail_ttl)
        else:
            rating = await rating_task

        detail["upstream_rating"] = rating.get("rating")
        detail["upstream_rating_count"] = rating.get("count", 0)
        return detail

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    async def _fetch_batch_chunk(self, ids: list[str]) -> dict[str, dict[str, Any]]:
        keys = " OR ".join(f"key:/works/{book_id}" for book_id in ids)
        params = {"q": f"({keys})", "fields": BATCH_FIELDS, "limit": len(ids)}
        try:
            data = await self._get_json("/search.json", params=params)
        except UPSTREAM_ERRORS as e:
            logger.error(f"Batch fetch error for {len(ids)} books: {e}")
            return {}

        wanted = set(ids)
        found: dict[str, dict[str, Any]] = {}
        for doc in _as_list(data.get("docs")):
            if not isinstance(doc, dict):
                continue
            partial = parse_batch_doc(doc, self.covers)
            if partial["id"] in wanted:
                found[partial["id"]] = partial
        return found

    async def get_batch(self, book_ids: list[str]) -> dict[str, dict[str, Any]]:
        """
        Summaries for many works with one OR-combined search per
        `catalog_batch_size` ids, instead of one request per id.

        Ids missing from the upstream response are simply absent.
        """
        unique_ids = list(dict.fromkeys(i for i in book_ids if i))
        if not unique_ids:
            return {}

        size = max(1, self._settings.catalog_batch_size)
        chunks = [unique_ids[i:i + size] for i in range(0, len(unique_ids), size)]
        results = await asyncio.gather(*(self._fetch_batch_chunk(chunk) for chunk in chunks))

        merged: dict[str, dict[str, Any]] = {}
        for result in results:
            merged.update(result)
        return merged

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    async def get_by_subject(
        self,
        subject: str,
        limit: int = 10,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Works listed under a subject.

        Returns:
            {"name", "total", "books"}; empty listing on failure
        """
        slug = re.sub(r"\s+", "_", subject.lower().strip())
        empty = {"name": subject, "total": 0, "books": []}
        if not slug:
            return empty

        cache_key = cache_keys.subject_listing(slug, limit, offset)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = await self._get_json(
                f"/subjects/{quote(slug)}.json",
                params={"limit": limit, "offset": offset},
            )
            books = [
                parse_subject_work(work, self.covers)
                for work in _as_list(data.get("works"))
                if isinstance(work, dict) and work.get("key")
            ]
        except UPSTREAM_ERRORS as e:
            logger.error(f"Open Library subject error for '{subject}': {e}")
            return empty

        result = {
            "name": data.get("name") or subject,
            "total": _parse_count(data.get("work_count")),
            "books": books,
        }
        await self._cache.set(cache_key, result, ttl=self._settings.subject_cache_ttl)
        return result

    async def _with_upstream_rating(self, book: dict[str, Any]) -> dict[str, Any]:
        rating = await self.get_upstream_rating(book["id"])
        return {
            **book,
            "upstream_rating": rating.get("rating"),
            "upstream_rating_count": rating.get("count", 0),
        }

    async def get_trending(self, period: str = "daily", limit: int = 10) -> list[dict[str, Any]]:
        """
        Trending works with best-effort crowd ratings.

        Rating lookups for the (at most `limit`) works run concurrently; a
        failed lookup leaves that book unrated.
        """
        cache_key = cache_keys.trending(period, limit)
        books = await self._cache.get(cache_key)

        if books is None:
            try:
                data = await self._get_json(
                    f"/trending/{quote(period)}.json",
                    params={"limit": limit},
                    timeout=self._settings.catalog_detail_timeout,
                )
                books = [
                    parse_trending_work(work, self.covers)
                    for work in _as_list(data.get("works"))
                    if isinstance(work, dict) and work.get("key")
                ][:limit]
            except UPSTREAM_ERRORS as e:
                logger.error(f"Open Library trending error: {e}")
                return []
            await self._cache.set(cache_key, books, ttl=self._settings.trending_cache_ttl)

        if not books:
            return []

        results = await asyncio.gather(
            *(self._with_upstream_rating(book) for book in books),
            return_exceptions=True,
        )
        enriched = []
        for book, result in zip(books, results):
            if isinstance(result, Exception):
                logger.warning(f"Rating enrichment failed for {book['id']}: {result}")
                enriched.append(book)
            else:
                enriched.append(result)
        return enriched

    # -------------------------------------------------------------------------
    # Detail enrichment for lists
    # -------------------------------------------------------------------------

    async def _detail_or_none(self, book_id: str) -> dict[str, Any] | None:
        try:
            return await asyncio.wait_for(
                self.get_by_id(book_id),
                timeout=self._settings.catalog_detail_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Detail fetch for {book_id} timed out")
        except BookNotFoundError:
            logger.debug(f"Detail fetch for {book_id} found nothing")
        return None

    async def enrich_with_details(
        self,
        books: list[dict[str, Any]],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Merge full detail (description, download links, ...) into the first
        `limit` books of a list.

        Detail fetches run concurrently, each with its own deadline; a slow
        or missing work keeps its summary fields.
        """
        if limit is None:
            limit = self._settings.detail_prefix_size

        head = books[:limit]
        details = await asyncio.gather(*(self._detail_or_none(b["id"]) for b in head))

        merged = []
        for book, detail in zip(head, details):
            if detail is None:
                merged.append(book)
                continue
            author_names = [a["name"] for a in detail.get("authors", []) if a.get("name")]
            merged.append({
                **book,
                "description": detail.get("description"),
                "download_links": detail.get("download_links", []),
                "authors": book.get("authors") or author_names,
                "subjects": book.get("subjects") or detail.get("subjects", []),
                "cover_url": book.get("cover_url") or detail.get("cover_url"),
                "publish_year": book.get("publish_year") or detail.get("publish_year"),
            })
        return merged + books[limit:]
