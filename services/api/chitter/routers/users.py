"""
User and social-graph endpoints:
  GET    /api/user/{id}            — fetch a profile (public)
  POST   /api/user/{id}/photo      — set the profile picture (owner only)
  GET    /api/users/search?query=  — directory search
  POST   /api/user/{id}/follow     — follower_id follows {id}
  DELETE /api/user/{id}/follow     — follower_id unfollows {id}
  GET    /api/user/{id}/followers  — list followers
  GET    /api/user/{id}/following  — list followees
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chitter.database import get_db
from chitter.domain import directory, graph, identity
from chitter.errors import NotOwner
from chitter.schemas import (
    FollowersResponse,
    FollowingResponse,
    FollowRequest,
    MessageResponse,
    PhotoRequest,
    PhotoResponse,
    ProfileResponse,
    SearchResponse,
    UserResponse,
)
from chitter.security import require_user

router = APIRouter()


@router.get("/user/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: str, db: AsyncSession = Depends(get_db)):
    return ProfileResponse.from_user(await identity.get_profile(db, user_id))


@router.post(
    "/user/{user_id}/photo",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_photo(
    user_id: str,
    body: PhotoRequest,
    caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    user = await identity.set_profile_image(
        db,
        user_id,
        caller_id,
        image_url=body.image_url,
        image_base64=body.image_base64,
    )
    return PhotoResponse(
        message="Profile picture uploaded successfully",
        user_id=user.user_id,
        image_url=user.profile_image_ref,
    )


@router.get("/users/search", response_model=SearchResponse)
async def search_users(
    query: str = Query("", description="Text to look for in names and email"),
    _caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    users = await directory.search(db, query)
    return SearchResponse(users=[UserResponse.from_user(u) for u in users])


def _acting_follower(body: Optional[FollowRequest], caller_id: str) -> str:
    follower_id = (body.follower_id if body else None) or caller_id
    if follower_id != caller_id:
        raise NotOwner("You can only follow or unfollow on your own behalf.")
    return follower_id


@router.post("/user/{user_id}/follow", response_model=MessageResponse)
async def follow_user(
    user_id: str,
    body: Optional[FollowRequest] = Body(None),
    caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    follower_id = _acting_follower(body, caller_id)
    await graph.follow(db, follower_id, user_id)
    return MessageResponse(message=f"({follower_id}) is now following ({user_id}).")


@router.delete("/user/{user_id}/follow", response_model=MessageResponse)
async def unfollow_user(
    user_id: str,
    body: Optional[FollowRequest] = Body(None),
    caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    follower_id = _acting_follower(body, caller_id)
    await graph.unfollow(db, follower_id, user_id)
    return MessageResponse(message=f"({follower_id}) has unfollowed ({user_id}).")


@router.get("/user/{user_id}/followers", response_model=FollowersResponse)
async def list_followers(
    user_id: str,
    _caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    users = await graph.list_followers(db, user_id)
    return FollowersResponse(followers=[UserResponse.from_user(u) for u in users])


@router.get("/user/{user_id}/following", response_model=FollowingResponse)
async def list_following(
    user_id: str,
    _caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    users = await graph.list_following(db, user_id)
    return FollowingResponse(following=[UserResponse.from_user(u) for u in users])
