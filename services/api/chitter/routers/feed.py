"""
Feed endpoints:
  GET /api/chits            — global feed (public)
  GET /api/user/{id}/feed   — personal feed: {id} plus everyone {id} follows

Both take `cursor` (the previous page's next_cursor) and `limit`.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitter.database import get_db
from chitter.domain import feed
from chitter.schemas import FeedPage, PersonalFeedResponse
from chitter.security import require_user

router = APIRouter()


@router.get("/chits", response_model=FeedPage)
async def get_global_feed(
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await feed.global_feed(db, cursor=cursor, limit=limit)


@router.get("/user/{user_id}/feed", response_model=PersonalFeedResponse)
async def get_personal_feed(
    user_id: str,
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    _caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    page = await feed.personal_feed(db, user_id, cursor=cursor, limit=limit)
    return PersonalFeedResponse(user_id=user_id, feed=page.chits, next_cursor=page.next_cursor)
