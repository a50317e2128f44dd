"""
Test Suite for the Library API

Test Organization:
- conftest.py: Shared fixtures (in-memory Redis double, SQLite database,
  fake Open Library upstream, wired services, HTTP client)
- test_cache.py: Cache store and key builders
- test_catalog.py: Open Library gateway
- test_ratings.py: Combined ratings
- test_preferences.py: Preference profiles
- test_recommendations.py: Recommendation engine
- test_invalidation.py: Cache invalidation fan-out
- test_reviews.py, test_library.py, test_playlists.py: Write paths
- test_api.py: HTTP endpoints

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_recommendations.py

    # Run with verbose output
    pytest -v
"""
