"""
Category Mapping

The frontend browses by friendly category slugs; Open Library indexes
subjects with its own names. Unknown slugs are passed through unchanged.
"""

CATEGORY_TO_SUBJECT = {
    "fiction": "fiction",
    "science-fiction": "science_fiction",
    "mystery": "mystery",
    "romance": "romance",
    "history": "history",
    "science": "science",
    "philosophy": "philosophy",
    "psychology": "psychology",
    "programming": "computers",
    "children": "juvenile_fiction",
    "poetry": "poetry",
    "classic": "classic_literature",
}


def get_open_library_subject(category_slug: str | None) -> str | None:
    """
    Map a category slug to an Open Library subject.

    Examples:
        get_open_library_subject("classic") -> "classic_literature"
        get_open_library_subject("Gardening ") -> "gardening"
    """
    if not category_slug:
        return None

    normalized = category_slug.lower().strip()
    if not normalized:
        return None
    return CATEGORY_TO_SUBJECT.get(normalized, normalized)
