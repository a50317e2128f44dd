"""
Library API Application Package

Backend of an online library: book data proxied from Open Library, local
reviews, saved books and playlists, and content-based recommendations
served through a multi-tier Redis cache.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy async engine and session management
- exceptions.py: Domain errors mapped onto HTTP status codes
- main.py: FastAPI application factory and lifespan
- dependencies.py: Dependency injection functions
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Recommendation/caching core and business logic
- utils/: Helper functions
"""

__version__ = "0.1.0"
