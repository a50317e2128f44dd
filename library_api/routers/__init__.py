"""
API Routers Package

Router Structure:
- books.py: /api/v1/books/* catalog endpoints
- recommendations.py: /api/v1/recommendations
- reviews.py: /api/v1/books/{book_id}/reviews
- library.py: /api/v1/library/* saved books
- playlists.py: /api/v1/playlists/*

Each router is imported and registered in main.py.
"""

from library_api.routers.books import router as books_router
from library_api.routers.library import router as library_router
from library_api.routers.playlists import router as playlists_router
from library_api.routers.recommendations import router as recommendations_router
from library_api.routers.reviews import router as reviews_router

__all__ = [
    "books_router",
    "library_router",
    "playlists_router",
    "recommendations_router",
    "reviews_router",
]
