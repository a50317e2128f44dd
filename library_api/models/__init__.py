"""
SQLAlchemy Models Package

Relational state owned by the Library API. Book metadata is not stored:
every book reference is an Open Library work id string.

Model Relationships:
- User -> SavedBook: One-to-Many (personal library)
- User -> Review: One-to-Many (one review per user per book)
- User -> Playlist -> PlaylistBook: ordered book lists

Import all models here so Base.metadata sees every table.
"""

from library_api.models.user import User
from library_api.models.saved_book import SavedBook
from library_api.models.review import Review
from library_api.models.playlist import Playlist, PlaylistBook

__all__ = [
    "User",
    "SavedBook",
    "Review",
    "Playlist",
    "PlaylistBook",
]
