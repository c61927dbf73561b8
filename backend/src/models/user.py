"""User model for storing authenticated users."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark


class User(Base, UUIDv7Mixin, TimestampMixin):
    """User model - stores identity-provider user info for foreign key relationships."""

    __tablename__ = "users"

    auth_subject: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        comment="'sub' claim of the OAuth session token",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
