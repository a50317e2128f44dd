"""
Playlist Models

User-curated, ordered lists of Open Library works.

This file also contains PlaylistBook, the association between a playlist
and a work id. It is a full model (not a plain Table) because it carries
its own data: position and added_at.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.database import Base

if TYPE_CHECKING:
    from library_api.models.user import User


class Playlist(Base):
    """Playlist owned by a user; public playlists are readable by anyone."""

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="playlists")
    books: Mapped[list["PlaylistBook"]] = relationship(
        "PlaylistBook",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistBook.position",
    )

    def __repr__(self) -> str:
        return f"<Playlist(id={self.id}, name='{self.name}', user_id={self.user_id})>"


class PlaylistBook(Base):
    """A work id placed in a playlist at a given position."""

    __tablename__ = "playlist_books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    playlist_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    playlist: Mapped[Playlist] = relationship("Playlist", back_populates="books")

    __table_args__ = (
        UniqueConstraint("playlist_id", "book_id", name="uq_playlist_book"),
    )

    def __repr__(self) -> str:
        return f"<PlaylistBook(playlist_id={self.playlist_id}, book_id={self.book_id})>"
