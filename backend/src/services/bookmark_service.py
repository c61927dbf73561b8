"""Service layer for bookmark CRUD operations."""
import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import UnaryExpression

from models.bookmark import UNIQUE_USER_URL_CONSTRAINT, Bookmark
from schemas.bookmark import BookmarkCreate, BookmarkSort, BookmarkUpdate
from services.exceptions import DuplicateUrlError, InvalidParentError

logger = logging.getLogger(__name__)

# SQLite names the columns instead of the constraint in unique-violation messages
_SQLITE_USER_URL_COLUMNS = "bookmarks.user_id, bookmarks.url"

# Text columns that are NOT NULL; an explicit null in an update clears them instead
_EMPTYABLE_FIELDS = ("page_title", "meta_description", "preview_img")


def is_duplicate_url_violation(error: IntegrityError) -> bool:
    """Check whether an IntegrityError came from the (user_id, url) uniqueness constraint."""
    message = str(error.orig) if error.orig is not None else str(error)
    return UNIQUE_USER_URL_CONSTRAINT in message or _SQLITE_USER_URL_COLUMNS in message


def build_order_by(sort_by: BookmarkSort) -> list[UnaryExpression]:
    """
    Build ORDER BY clauses for a sort option.

    Title sorting is case-insensitive and falls back to the URL when the title is
    empty. Every ordering ends with created_at and id tiebreakers (ids are UUIDv7,
    so they are time-ordered) to keep results deterministic.
    """
    title = func.lower(func.coalesce(func.nullif(Bookmark.page_title, ""), Bookmark.url))
    if sort_by == BookmarkSort.OLDEST:
        return [Bookmark.created_at.asc(), Bookmark.id.asc()]
    if sort_by == BookmarkSort.TITLE_ASC:
        return [title.asc(), Bookmark.created_at.desc(), Bookmark.id.desc()]
    if sort_by == BookmarkSort.TITLE_DESC:
        return [title.desc(), Bookmark.created_at.desc(), Bookmark.id.desc()]
    return [Bookmark.created_at.desc(), Bookmark.id.desc()]


async def _check_url_exists(
    db: AsyncSession,
    user_id: UUID,
    url: str,
) -> Bookmark | None:
    """
    Check if a URL exists for this user.

    Returns the existing bookmark if found, None otherwise.
    """
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.user_id == user_id,
            Bookmark.url == url,
        ),
    )
    return result.scalar_one_or_none()


async def _has_children(db: AsyncSession, user_id: UUID, bookmark_id: UUID) -> bool:
    """Check whether any bookmark is nested under the given one."""
    result = await db.execute(
        select(
            exists().where(
                Bookmark.user_id == user_id,
                Bookmark.parent_id == bookmark_id,
            ),
        ),
    )
    return bool(result.scalar())


async def _validate_parent(
    db: AsyncSession,
    user_id: UUID,
    parent_id: UUID,
    bookmark_id: UUID | None = None,
) -> None:
    """
    Ensure parent_id can hold a child bookmark.

    Raises:
        InvalidParentError: If the parent is missing, owned by another user,
            is itself a child, or is the bookmark being nested.
    """
    if bookmark_id is not None and parent_id == bookmark_id:
        raise InvalidParentError("A bookmark cannot be its own parent")

    parent = await get_bookmark(db, user_id, parent_id)
    if parent is None:
        raise InvalidParentError("Parent bookmark not found")
    if parent.parent_id is not None:
        raise InvalidParentError("Bookmarks can only be nested one level deep")


async def get_all_bookmarks(db: AsyncSession, user_id: UUID) -> list[Bookmark]:
    """Get every bookmark for a user, newest-created first."""
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(*build_order_by(BookmarkSort.NEWEST)),
    )
    return list(result.scalars().all())


async def get_top_level_bookmarks(
    db: AsyncSession,
    user_id: UUID,
    sort_by: BookmarkSort = BookmarkSort.NEWEST,
) -> list[Bookmark]:
    """Get bookmarks that are not nested under a parent."""
    result = await db.execute(
        select(Bookmark)
        .where(
            Bookmark.user_id == user_id,
            Bookmark.parent_id.is_(None),
        )
        .order_by(*build_order_by(sort_by)),
    )
    return list(result.scalars().all())


async def get_child_bookmarks(
    db: AsyncSession,
    user_id: UUID,
    parent_id: UUID,
    sort_by: BookmarkSort = BookmarkSort.NEWEST,
) -> list[Bookmark]:
    """Get the bookmarks stacked under a parent. Unknown parents yield an empty list."""
    result = await db.execute(
        select(Bookmark)
        .where(
            Bookmark.user_id == user_id,
            Bookmark.parent_id == parent_id,
        )
        .order_by(*build_order_by(sort_by)),
    )
    return list(result.scalars().all())


async def get_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> Bookmark | None:
    """
    Get a bookmark by ID, scoped to user.

    Returns:
        The bookmark if found, None otherwise.
    """
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def count_unread_bookmarks(db: AsyncSession, user_id: UUID) -> int:
    """Count the user's unread bookmarks (top-level and children alike)."""
    result = await db.execute(
        select(func.count())
        .select_from(Bookmark)
        .where(
            Bookmark.user_id == user_id,
            Bookmark.is_read.is_(False),
        ),
    )
    return result.scalar() or 0


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Saves exactly what is provided - no automatic URL scraping. Callers who want
    page metadata should use the metadata function first.

    The existence check is a fast path only; two concurrent requests can both pass
    it, in which case the unique constraint rejects the loser and it receives the
    same DuplicateUrlError.

    Args:
        db: Database session.
        user_id: User ID to create the bookmark for.
        data: Bookmark creation data.

    Returns:
        The created bookmark.

    Raises:
        DuplicateUrlError: If the URL is already bookmarked by this user.
        InvalidParentError: If parent_id cannot hold a child.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    url_str = str(data.url)

    if await _check_url_exists(db, user_id, url_str) is not None:
        raise DuplicateUrlError(url_str)

    if data.parent_id is not None:
        await _validate_parent(db, user_id, data.parent_id)

    bookmark = Bookmark(
        user_id=user_id,
        url=url_str,
        page_title=data.page_title.strip(),
        meta_description=data.meta_description.strip(),
        preview_img=data.preview_img.strip(),
        notes=data.notes,
        parent_id=data.parent_id,
        is_read=False,
        read_at=None,
    )
    db.add(bookmark)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        # Fallback for race condition: unique constraint on (user_id, url)
        if is_duplicate_url_violation(e):
            logger.info("Duplicate bookmark rejected by unique constraint: %s", url_str)
            raise DuplicateUrlError(url_str) from e
        raise
    await db.refresh(bookmark)
    return bookmark


async def update_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    data: BookmarkUpdate,
) -> Bookmark | None:
    """
    Partially update a bookmark. Returns None if not found or wrong user.

    Raises:
        InvalidParentError: If a new parent_id cannot hold this bookmark.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    update_data = data.model_dump(exclude_unset=True)

    new_parent_id = update_data.get("parent_id")
    if new_parent_id is not None and new_parent_id != bookmark.parent_id:
        await _validate_parent(db, user_id, new_parent_id, bookmark_id=bookmark.id)
        if await _has_children(db, user_id, bookmark.id):
            raise InvalidParentError("A bookmark that has children cannot be nested")

    for field in _EMPTYABLE_FIELDS:
        if field in update_data and update_data[field] is None:
            update_data[field] = ""

    for field, value in update_data.items():
        setattr(bookmark, field, value)

    bookmark.updated_at = func.now()
    await db.flush()
    await db.refresh(bookmark)
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> bool:
    """
    Permanently delete a bookmark.

    Children of the deleted bookmark are detached (they become top-level) rather
    than deleted. Deleting a missing bookmark is not an error.

    Returns:
        True if a row was deleted, False if there was nothing to delete.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    await db.execute(
        update(Bookmark)
        .where(
            Bookmark.user_id == user_id,
            Bookmark.parent_id == bookmark_id,
        )
        .values(parent_id=None),
    )
    result = await db.execute(
        delete(Bookmark).where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.rowcount > 0


async def toggle_read_status(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    is_read: bool,
) -> Bookmark | None:
    """
    Set a bookmark's read status.

    is_read and read_at are written in the same UPDATE: marking read stamps
    read_at with the current time, marking unread clears it.

    Returns:
        The updated bookmark, or None if not found.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    bookmark.is_read = is_read
    bookmark.read_at = datetime.now(UTC) if is_read else None
    bookmark.updated_at = func.now()
    await db.flush()
    await db.refresh(bookmark)
    return bookmark
