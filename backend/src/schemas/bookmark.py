"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from core.config import get_settings


class BookmarkSort(StrEnum):
    """Orderings offered by the list views."""

    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"


class ReadFilter(StrEnum):
    """Read-status filter applied before search."""

    ALL = "all"
    READ = "read"
    UNREAD = "unread"


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_description_length(description: str | None) -> str | None:
    """Validate that description doesn't exceed maximum length."""
    settings = get_settings()
    if description is not None and len(description) > settings.max_description_length:
        max_len = settings.max_description_length
        raise ValueError(
            f"Description exceeds maximum length of {max_len:,} characters "
            f"(got {len(description):,} characters).",
        )
    return description


def validate_notes_length(notes: str | None) -> str | None:
    """Validate that notes don't exceed maximum length."""
    settings = get_settings()
    if notes is not None and len(notes) > settings.max_notes_length:
        raise ValueError(
            f"Notes exceed maximum length of {settings.max_notes_length:,} characters "
            f"(got {len(notes):,} characters).",
        )
    return notes


def normalize_notes(notes: str | None) -> str | None:
    """Trim notes; whitespace-only notes are stored as NULL."""
    if notes is None:
        return None
    stripped = notes.strip()
    return stripped or None


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark."""

    # Only http/https URLs are accepted (HttpUrl rejects other schemes).
    # HttpUrl normalizes root domains with trailing slash (example.com -> example.com/)
    url: HttpUrl
    page_title: str = ""
    meta_description: str = ""
    preview_img: str = ""
    notes: str | None = None
    parent_id: UUID | None = None

    @field_validator("page_title")
    @classmethod
    def check_title_length(cls, v: str) -> str:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("meta_description")
    @classmethod
    def check_description_length(cls, v: str) -> str:
        """Validate description length."""
        return validate_description_length(v)

    @field_validator("notes")
    @classmethod
    def check_notes(cls, v: str | None) -> str | None:
        """Normalize and validate notes."""
        return validate_notes_length(normalize_notes(v))


class BookmarkUpdate(BaseModel):
    """Schema for partially updating an existing bookmark. Omitted fields are left unchanged."""

    page_title: str | None = None
    meta_description: str | None = None
    preview_img: str | None = None
    notes: str | None = None
    parent_id: UUID | None = None

    @field_validator("page_title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("meta_description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)

    @field_validator("notes")
    @classmethod
    def check_notes(cls, v: str | None) -> str | None:
        """Normalize and validate notes."""
        return validate_notes_length(normalize_notes(v))


class ReadStatusUpdate(BaseModel):
    """Schema for flipping a bookmark's read status."""

    is_read: bool


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    page_title: str
    meta_description: str
    preview_img: str
    notes: str | None = None
    parent_id: UUID | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    user_id: UUID


class UnreadCountResponse(BaseModel):
    """Number of unread bookmarks for the current user."""

    count: int


class BookmarkMetadataResponse(BaseModel):
    """Metadata scraped from a page, serialized with the camelCase keys the form expects."""

    model_config = ConfigDict(populate_by_name=True)

    page_title: str = Field(alias="pageTitle")
    meta_description: str = Field(default="", alias="metaDescription")
    preview_img: str = Field(default="", alias="previewImg")
