"""
Services Package

Business logic, kept separate from HTTP handling (routers). Services are
plain classes built once in the application lifespan and wired together
by constructor injection.

Recommendation and caching core:
- cache.py / cache_keys.py: fail-open Redis cache and its key layout
- catalog.py: Open Library gateway
- ratings.py: combined (upstream + local) ratings
- preferences.py: subject-interest profiles
- recommendations.py: content-based recommendation engine
- invalidation.py: cache invalidation fan-out after writes
- store.py: relational queries used by the core

API services:
- books.py: catalog reads with combined ratings
- reviews.py, library.py, playlists.py: write paths
- rate_limiter.py: slowapi rate limiting
"""
