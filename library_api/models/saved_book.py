"""
SavedBook Model

An Open Library work kept in a user's personal library.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.database import Base


class SavedBook(Base):
    """
    Saved book entry.

    The most recently saved entries feed the user's preference profile,
    so saved_at is indexed together with user_id.
    """

    __tablename__ = "saved_books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Open Library work id",
    )
    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    user = relationship("User", back_populates="saved_books")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_saved_book_user_book"),
    )

    def __repr__(self) -> str:
        return f"<SavedBook(user_id={self.user_id}, book_id={self.book_id})>"
