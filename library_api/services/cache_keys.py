"""
Cache Key Builders

Every cache key in the application is built here, one function per key
family, so that the code populating a key and the code invalidating it can
never disagree about its layout.

Key families:
    book:<id>                               partial book summary (subjects, rating)
    book_detail:<id>                        full work detail, without ratings
    ol_ratings:<id>                         upstream crowd rating lookup
    ratings:combined:<id>                   blended upstream + local rating
    search:<params>                         raw search results
    trending:<period>:<limit>               raw trending list
    subject:<subject>:<limit>:<offset>      raw subject listing
    recommendations:<user>:<limit>          final recommendation list
    user_preferences:<user>                 subject -> weight profile
    excluded_books:<user>                   saved + reviewed ids
    saved_books:<user>:<page>:<limit>       saved books page
    playlist:<id>:books                     playlist books view

The *_pattern() functions return glob patterns for delete_pattern().
"""

from typing import Any


def make_cache_key(prefix: str, *args: Any, **kwargs: Any) -> str:
    """
    Generate a consistent cache key from prefix and arguments.

    Examples:
        make_cache_key("book", "OL1W") -> "book:OL1W"
        make_cache_key("search", q="orwell", page=1) -> "search:page=1:q=orwell"

    None values are skipped; kwargs are sorted so argument order never
    changes the key.
    """
    parts = [prefix]

    for arg in args:
        if arg is not None:
            parts.append(str(arg))

    for key in sorted(kwargs.keys()):
        value = kwargs[key]
        if value is not None and value != "":
            parts.append(f"{key}={value}")

    return ":".join(parts)


# =============================================================================
# Book-scoped keys
# =============================================================================

def book(book_id: str) -> str:
    return make_cache_key("book", book_id)


def book_detail(book_id: str) -> str:
    return make_cache_key("book_detail", book_id)


def upstream_rating(book_id: str) -> str:
    return make_cache_key("ol_ratings", book_id)


def combined_rating(book_id: str) -> str:
    return make_cache_key("ratings:combined", book_id)


# =============================================================================
# Catalog listing keys
# =============================================================================

def search_results(query: str | None, **filters: Any) -> str:
    return make_cache_key("search", q=query, **filters)


def search_pattern() -> str:
    return "search:*"


def trending(period: str, limit: int) -> str:
    return make_cache_key("trending", period, limit)


def trending_pattern() -> str:
    return "trending:*"


def subject_listing(subject: str, limit: int, offset: int) -> str:
    return make_cache_key("subject", subject, limit, offset)


# =============================================================================
# User-scoped keys
# =============================================================================

def recommendations(user_id: int, limit: int) -> str:
    return make_cache_key("recommendations", user_id, limit)


def recommendations_pattern(user_id: int) -> str:
    return f"recommendations:{user_id}:*"


def user_preferences(user_id: int) -> str:
    return make_cache_key("user_preferences", user_id)


def excluded_books(user_id: int) -> str:
    return make_cache_key("excluded_books", user_id)


def saved_books(user_id: int, page: int, limit: int) -> str:
    return make_cache_key("saved_books", user_id, page, limit)


def saved_books_pattern(user_id: int) -> str:
    return f"saved_books:{user_id}:*"


# =============================================================================
# Playlist keys
# =============================================================================

def playlist_books(playlist_id: int) -> str:
    return make_cache_key("playlist", playlist_id, "books")


def playlist_pattern(playlist_id: int) -> str:
    return f"playlist:{playlist_id}:*"
