"""
Identity Store — user records, credentials and session tokens.
"""
import logging
import re
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chitter import security, store
from chitter.clients import minio_client
from chitter.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidInput,
    NotFound,
    NotOwner,
)
from chitter.models import EMAIL_LENGTH, IMAGE_REF_LENGTH, NAME_LENGTH, User

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NAME_RE = re.compile(r"^[a-z ,.'-]+$", re.IGNORECASE)
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_RE = re.compile(r"^(?=.*\d).{8,}$")


def _normalise_email(email: str) -> str:
    return email.strip().lower()


def validate_signup(first_name: str, last_name: str, email: str, password: str) -> None:
    if not all(v and v.strip() for v in (first_name, last_name, email, password)):
        raise InvalidInput("All fields are required.")
    if max(len(first_name.strip()), len(last_name.strip())) > NAME_LENGTH:
        raise InvalidInput(f"Names are limited to {NAME_LENGTH} characters.")
    if len(email.strip()) > EMAIL_LENGTH:
        raise InvalidInput(f"Email is limited to {EMAIL_LENGTH} characters.")
    if not NAME_RE.match(first_name.strip()) or not NAME_RE.match(last_name.strip()):
        raise InvalidInput("Names may only contain letters, spaces and , . ' -")
    if not EMAIL_RE.match(email.strip()):
        raise InvalidInput("Invalid email address.")
    if not PASSWORD_RE.match(password):
        raise InvalidInput("Password must be at least 8 characters and contain a digit.")


def check_image_ref(image_url: Optional[str]) -> None:
    if image_url and len(image_url) > IMAGE_REF_LENGTH:
        raise InvalidInput(f"Image URLs are limited to {IMAGE_REF_LENGTH} characters.")


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await store.read(db, lambda: db.get(User, user_id), name="user")
    if user is None:
        raise NotFound(f"User not found: {user_id}")
    return user


async def create_identity(
    db: AsyncSession,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
) -> User:
    """Register a user. The email is unique across the store."""
    validate_signup(first_name, last_name, email, password)
    email = _normalise_email(email)

    with tracer.start_as_current_span("create_identity"):
        existing = await store.read(
            db,
            lambda: db.scalar(select(User.user_id).where(User.email == email)),
            name="user by email",
        )
        if existing:
            raise DuplicateEmail(f"Email '{email}' is already registered.")

        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            password_hash=security.hash_password(password),
        )

        async def _insert() -> None:
            db.add(user)
            try:
                await db.commit()
            except IntegrityError as exc:
                # lost a race with a concurrent signup for the same email
                await db.rollback()
                raise DuplicateEmail(f"Email '{email}' is already registered.") from exc
            await db.refresh(user)

        await store.write(db, _insert, name="user")
        logger.info("Created user %s (id=%s)", user.email, user.user_id)
        return user


async def authenticate(db: AsyncSession, email: str, password: str) -> tuple[User, str]:
    """Verify the password and issue a session token."""
    if not email or not password:
        raise InvalidInput("Email and password are required.")
    email = _normalise_email(email)

    with tracer.start_as_current_span("authenticate"):
        user = await store.read(
            db,
            lambda: db.scalar(select(User).where(User.email == email)),
            name="user by email",
        )
        if user is None:
            raise NotFound("User not found.")
        if not security.verify_password(user.password_hash, password):
            logger.info("Rejected login for %s: bad password", email)
            raise InvalidCredentials("Invalid email or password.")

        return user, security.create_token(user.user_id, user.email)


async def get_profile(db: AsyncSession, user_id: str) -> User:
    return await get_user(db, user_id)


async def set_profile_image(
    db: AsyncSession,
    user_id: str,
    caller_id: str,
    image_url: Optional[str] = None,
    image_base64: Optional[str] = None,
) -> User:
    """
    Point the user's profile picture at a new image.

    When raw bytes are supplied they are uploaded to blob storage first; if
    the profile update then fails, the uploaded object is deleted again.
    """
    if caller_id != user_id:
        raise NotOwner("You may only change your own profile picture.")
    if not image_url and not image_base64:
        raise InvalidInput("Image data is required.")
    check_image_ref(image_url)

    with tracer.start_as_current_span("set_profile_image"):
        user = await get_user(db, user_id)

        uploaded_ref = None
        if image_base64:
            uploaded_ref = minio_client.upload_image(image_base64)
            image_url = uploaded_ref

        async def _update() -> None:
            user.profile_image_ref = image_url
            await db.commit()

        try:
            await store.write(db, _update, name="profile image")
        except Exception:
            if uploaded_ref:
                minio_client.delete_image(uploaded_ref)
            raise

        logger.info("Updated profile picture for %s", user_id)
        return user
