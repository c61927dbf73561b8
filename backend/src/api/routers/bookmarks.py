"""Bookmark CRUD endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkResponse,
    BookmarkSort,
    BookmarkUpdate,
    ReadStatusUpdate,
    UnreadCountResponse,
)
from services import bookmark_service
from services.exceptions import DuplicateUrlError, InvalidParentError

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])

DUPLICATE_URL_DETAIL = {
    "error": "duplicate_url",
    "message": "This URL is already bookmarked",
}


@router.get("/", response_model=list[BookmarkResponse])
async def list_bookmarks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """List every bookmark for the current user, newest first."""
    bookmarks = await bookmark_service.get_all_bookmarks(db, current_user.id)
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.get("/top-level", response_model=list[BookmarkResponse])
async def list_top_level_bookmarks(
    sort: BookmarkSort = Query(default=BookmarkSort.NEWEST, description="Sort order"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """
    List bookmarks that are not nested under another bookmark.

    - **sort**: newest (default), oldest, title-asc or title-desc
    """
    bookmarks = await bookmark_service.get_top_level_bookmarks(db, current_user.id, sort)
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> UnreadCountResponse:
    """Count the current user's unread bookmarks."""
    count = await bookmark_service.count_unread_bookmarks(db, current_user.id)
    return UnreadCountResponse(count=count)


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Create a new bookmark."""
    try:
        bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    except DuplicateUrlError:
        raise HTTPException(status_code=409, detail=DUPLICATE_URL_DETAIL)
    except InvalidParentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookmarkResponse.model_validate(bookmark)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.get("/{bookmark_id}/children", response_model=list[BookmarkResponse])
async def list_child_bookmarks(
    bookmark_id: UUID,
    sort: BookmarkSort = Query(default=BookmarkSort.NEWEST, description="Sort order"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """List the bookmarks stacked under a parent bookmark."""
    bookmarks = await bookmark_service.get_child_bookmarks(
        db, current_user.id, bookmark_id, sort,
    )
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: UUID,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Update a bookmark."""
    try:
        bookmark = await bookmark_service.update_bookmark(
            db, current_user.id, bookmark_id, data,
        )
    except InvalidParentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}/read-status", response_model=BookmarkResponse)
async def update_read_status(
    bookmark_id: UUID,
    data: ReadStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Mark a bookmark as read or unread."""
    bookmark = await bookmark_service.toggle_read_status(
        db, current_user.id, bookmark_id, data.is_read,
    )
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a bookmark. Deleting a bookmark that no longer exists is not an error."""
    await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
