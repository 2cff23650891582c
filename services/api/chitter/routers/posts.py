"""
Chit endpoints:
  POST   /api/user/{id}/chits            — post a chit (author only)
  GET    /api/user/{id}/chits            — an author's chits, newest first
  DELETE /api/user/{id}/chits/{chit_id}  — delete a chit (author only)
  GET    /api/geocode                    — place name for a chit's location
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chitter.clients.geocoding_client import geocoding_client
from chitter.database import get_db
from chitter.domain import posts
from chitter.errors import NotOwner
from chitter.schemas import (
    ChitCreate,
    ChitCreated,
    ChitListResponse,
    ChitResponse,
    GeocodeResponse,
    MessageResponse,
)
from chitter.security import require_user

router = APIRouter()


@router.post(
    "/user/{user_id}/chits",
    response_model=ChitCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_chit(
    user_id: str,
    body: ChitCreate,
    caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    if caller_id != user_id:
        raise NotOwner("You can only post chits as yourself.")
    chit = await posts.create_chit(
        db,
        user_id,
        content=body.text,
        latitude=body.latitude,
        longitude=body.longitude,
        image_url=body.image_url,
        image_base64=body.image_base64,
    )
    return ChitCreated(
        message="Chit posted successfully",
        chit_id=chit.chit_id,
        chit=ChitResponse.from_chit(chit),
    )


@router.get("/user/{user_id}/chits", response_model=ChitListResponse)
async def list_chits(
    user_id: str,
    _caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    chits = await posts.list_chits(db, user_id)
    return ChitListResponse(chits=[ChitResponse.from_chit(c) for c in chits])


@router.delete("/user/{user_id}/chits/{chit_id}", response_model=MessageResponse)
async def delete_chit(
    user_id: str,
    chit_id: str,
    caller_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await posts.delete_chit(db, user_id, chit_id, caller_id)
    return MessageResponse(message="Chit deleted successfully.")


@router.get("/geocode", response_model=GeocodeResponse)
async def geocode(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    _caller_id: str = Depends(require_user),
):
    place = await geocoding_client.reverse_geocode(latitude, longitude)
    return GeocodeResponse(latitude=latitude, longitude=longitude, place=place)
