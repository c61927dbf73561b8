"""Helpers for building test rows."""
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.user import User

# Constant for non-existent entity ID
FAKE_UUID = "00000000-0000-0000-0000-000000000000"


async def add_bookmark(db_session: AsyncSession, user: User, **fields: object) -> Bookmark:
    """Insert and commit a bookmark directly, bypassing the service layer."""
    fields.setdefault("url", "https://example.com/")
    bookmark = Bookmark(user_id=user.id, **fields)
    db_session.add(bookmark)
    await db_session.commit()
    await db_session.refresh(bookmark)
    return bookmark
