"""
SQLAlchemy ORM models.

Tables:
  users   — profile + salted password hash
  follows — social graph edges (follower → followee), one row per edge
  chits   — posts; image bytes live in MinIO, only the URI is stored here
"""
import time
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from chitter.database import Base


# Column widths; the domain validators reject longer values up front
NAME_LENGTH = 100
EMAIL_LENGTH = 255
IMAGE_REF_LENGTH = 1024


def _uuid() -> str:
    return str(uuid.uuid4())


def _epoch_seconds() -> int:
    return int(time.time())


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    first_name: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    last_name: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    # Stored lower-cased; uniqueness is enforced here, not just checked in code
    email: Mapped[str] = mapped_column(String(EMAIL_LENGTH), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_image_ref: Mapped[Optional[str]] = mapped_column(String(IMAGE_REF_LENGTH))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    followee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follows_no_self"),
        # "who follows user X?"
        Index("idx_followee", "followee_id"),
    )


class Chit(Base):
    __tablename__ = "chits"

    chit_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    content: Mapped[Optional[str]] = mapped_column(Text)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    image_ref: Mapped[Optional[str]] = mapped_column(String(IMAGE_REF_LENGTH))
    # Epoch seconds; same-second chits are ordered by chit_id
    created_at: Mapped[int] = mapped_column(
        Integer, default=_epoch_seconds, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "(latitude IS NULL AND longitude IS NULL) OR "
            "(latitude IS NOT NULL AND longitude IS NOT NULL)",
            name="ck_chits_location_pair",
        ),
        Index("idx_chits_order", "created_at", "chit_id"),
        Index("idx_chits_author", "author_id", "created_at"),
    )

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
