#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample readers and reading history for
development, so that /api/v1/recommendations has something to work with.

USAGE:
    # From the project root, with the package installed (pip install -e .)
    python scripts/seed_data.py

This script:
1. Creates the tables if they don't exist
2. Clears existing data (optional)
3. Creates sample users
4. Saves and reviews a handful of Open Library works for them
"""

import asyncio

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from library_api.config import get_settings
from library_api.database import create_engine_and_factory, create_tables
from library_api.models import Playlist, PlaylistBook, Review, SavedBook, User

# Well-known Open Library work ids
NINETEEN_EIGHTY_FOUR = "OL1168083W"
ANIMAL_FARM = "OL1168007W"
PRIDE_AND_PREJUDICE = "OL66554W"
THE_HOBBIT = "OL262758W"
FOUNDATION = "OL46125W"
DUNE = "OL893415W"


async def clear_data(db: AsyncSession) -> None:
    """Clear all existing data from the database."""
    print("Clearing existing data...")
    for model in (PlaylistBook, Playlist, Review, SavedBook, User):
        await db.execute(delete(model))
    await db.commit()
    print("Data cleared.")


async def create_users(db: AsyncSession) -> dict[str, User]:
    print("Creating users...")
    users = {
        "ada": User(email="ada@example.com", first_name="Ada", last_name="Lovelace"),
        "alan": User(email="alan@example.com", first_name="Alan", last_name="Turing"),
        "grace": User(email="grace@example.com", first_name="Grace", last_name="Hopper"),
    }
    db.add_all(users.values())
    await db.commit()
    print(f"Created {len(users)} users.")
    return users


async def create_history(db: AsyncSession, users: dict[str, User]) -> int:
    """Saved books and reviews; 'grace' is left without history (cold start)."""
    print("Creating reading history...")
    ada, alan = users["ada"], users["alan"]

    entries = [
        SavedBook(user_id=ada.id, book_id=NINETEEN_EIGHTY_FOUR),
        SavedBook(user_id=ada.id, book_id=ANIMAL_FARM),
        SavedBook(user_id=alan.id, book_id=FOUNDATION),
        Review(user_id=ada.id, book_id=PRIDE_AND_PREJUDICE, rating=5, title="Timeless"),
        Review(user_id=alan.id, book_id=DUNE, rating=4, comment="Worldbuilding at its best."),
        Review(user_id=alan.id, book_id=THE_HOBBIT, rating=2),
    ]
    db.add_all(entries)

    playlist = Playlist(user_id=ada.id, name="Dystopias", is_public=True)
    db.add(playlist)
    await db.flush()
    db.add_all([
        PlaylistBook(playlist_id=playlist.id, book_id=NINETEEN_EIGHTY_FOUR, position=0),
        PlaylistBook(playlist_id=playlist.id, book_id=ANIMAL_FARM, position=1),
    ])

    await db.commit()
    print(f"Created {len(entries)} history entries and 1 playlist.")
    return len(entries)


async def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    settings = get_settings()
    engine, session_factory = create_engine_and_factory(settings)

    try:
        await create_tables(engine)

        async with session_factory() as db:
            if clear_existing:
                await clear_data(db)

            users = await create_users(db)
            entries = await create_history(db, users)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Users: {len(users)}")
        print(f"  - Saved books / reviews: {entries}")
        print(f"\nTry: curl -H 'X-User-Id: {users['ada'].id}' "
              f"http://localhost:{settings.port}/api/v1/recommendations")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_database())
