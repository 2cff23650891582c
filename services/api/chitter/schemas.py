"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Wire names follow the mobile client (camelCase for profile fields,
`chit_content` / `imageURL` for chits); Python attributes stay snake_case
and every model accepts either spelling on input.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from chitter.models import Chit, User


class _Schema(BaseModel):
    class Config:
        populate_by_name = True
        from_attributes = True


# ──────────────────────────── Auth ────────────────────────────────────────

class SignupRequest(_Schema):
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str
    password: str


class SignupResponse(_Schema):
    message: str
    uid: str


class LoginRequest(_Schema):
    email: str
    password: str


class LoginResponse(_Schema):
    message: str
    user_id: str
    token: str


# ──────────────────────────── Users ───────────────────────────────────────

class UserResponse(_Schema):
    user_id: str
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str
    profile_picture: Optional[str] = Field(None, alias="profilePicture")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            user_id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            profile_picture=user.profile_image_ref,
            created_at=user.created_at,
        )


class ProfileResponse(UserResponse):
    # the profile route also carries the id as `uid`, which the client reads
    uid: str

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        base = UserResponse.from_user(user)
        return cls(uid=user.user_id, **base.model_dump())


class PhotoRequest(_Schema):
    # Either an already-hosted URI or raw bytes to upload to blob storage
    image_url: Optional[str] = Field(None, alias="imageURL")
    image_base64: Optional[str] = None


class PhotoResponse(_Schema):
    message: str
    user_id: str
    image_url: str = Field(..., alias="imageURL")


class FollowRequest(_Schema):
    # Defaults to the token subject when omitted
    follower_id: Optional[str] = None


class MessageResponse(_Schema):
    message: str


class FollowersResponse(_Schema):
    followers: list[UserResponse]


class FollowingResponse(_Schema):
    following: list[UserResponse]


class SearchResponse(_Schema):
    users: list[UserResponse]


# ──────────────────────────── Chits ───────────────────────────────────────

class ChitCreate(_Schema):
    text: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = Field(None, alias="imageURL")
    image_base64: Optional[str] = None


class Location(_Schema):
    latitude: float
    longitude: float


class ChitResponse(_Schema):
    chit_id: str
    user_id: str
    content: Optional[str] = Field(None, alias="chit_content")
    timestamp: int
    location: Optional[Location] = None
    image_url: Optional[str] = Field(None, alias="imageURL")

    @classmethod
    def from_chit(cls, chit: Chit) -> "ChitResponse":
        location = None
        if chit.has_location:
            location = Location(latitude=chit.latitude, longitude=chit.longitude)
        return cls(
            chit_id=chit.chit_id,
            user_id=chit.author_id,
            content=chit.content,
            timestamp=chit.created_at,
            location=location,
            image_url=chit.image_ref,
        )


class ChitCreated(_Schema):
    message: str
    chit_id: str
    chit: ChitResponse


class ChitListResponse(_Schema):
    chits: list[ChitResponse]


# ──────────────────────────── Feed ────────────────────────────────────────

class FeedPage(_Schema):
    """One page of a feed, newest first; pass next_cursor back for the next."""
    chits: list[ChitResponse]
    next_cursor: Optional[str] = None


class PersonalFeedResponse(_Schema):
    user_id: str
    feed: list[ChitResponse]
    next_cursor: Optional[str] = None


# ──────────────────────────── Geocoding ───────────────────────────────────

class GeocodeResponse(_Schema):
    latitude: float
    longitude: float
    place: str
