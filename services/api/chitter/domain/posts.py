"""
Post Store — chits.

A chit needs at least one of: non-blank text, an image, a location. It is
immutable once written and only its author may delete it. Every listing is
ordered newest first with chit_id breaking same-second ties, so the order
is total and deterministic.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitter import store
from chitter.clients import minio_client, redis_client
from chitter.config import settings
from chitter.domain.identity import check_image_ref, get_user
from chitter.errors import InvalidInput, NotFound, NotOwner
from chitter.models import Chit
from chitter.telemetry import CHITS_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# (created_at desc, chit_id asc) — shared with the feed aggregator
CHIT_ORDER = (Chit.created_at.desc(), Chit.chit_id.asc())


def validate_chit(
    content: Optional[str],
    latitude: Optional[float],
    longitude: Optional[float],
    has_image: bool,
) -> Optional[str]:
    """Return the normalised content, or raise InvalidInput."""
    if (latitude is None) != (longitude is None):
        raise InvalidInput("Latitude and longitude must be given together.")
    has_location = latitude is not None
    if has_location and not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise InvalidInput("Coordinates out of range.")

    content = content.strip() if content else None
    if not content and not has_image and not has_location:
        raise InvalidInput("A chit needs text, an image or a location.")
    if content and len(content) > settings.chit_max_length:
        raise InvalidInput(f"Chit text is limited to {settings.chit_max_length} characters.")
    return content or None


async def create_chit(
    db: AsyncSession,
    author_id: str,
    content: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    image_url: Optional[str] = None,
    image_base64: Optional[str] = None,
) -> Chit:
    """
    Chit ingestion path:

    1. Validate the payload and the author.
    2. Upload image bytes to MinIO (if provided).
    3. Persist the chit; on failure delete the uploaded object again.
    4. Invalidate cached feed pages.
    """
    content = validate_chit(content, latitude, longitude, bool(image_url or image_base64))
    check_image_ref(image_url)

    with tracer.start_as_current_span("create_chit") as span:
        await get_user(db, author_id)

        uploaded_ref = None
        if image_base64:
            uploaded_ref = minio_client.upload_image(image_base64)
            image_url = uploaded_ref

        chit = Chit(
            author_id=author_id,
            content=content,
            latitude=latitude,
            longitude=longitude,
            image_ref=image_url,
        )

        async def _insert() -> None:
            db.add(chit)
            await db.commit()
            await db.refresh(chit)

        try:
            await store.write(db, _insert, name="chit")
        except Exception:
            if uploaded_ref:
                minio_client.delete_image(uploaded_ref)
            raise

        span.set_attribute("chit.id", chit.chit_id)
        await redis_client.invalidate_feeds()
        CHITS_CREATED_TOTAL.inc()
        logger.info("Chit created: %s by user %s", chit.chit_id, author_id)
        return chit


async def list_chits(db: AsyncSession, author_id: str) -> list[Chit]:
    await get_user(db, author_id)
    rows = await store.read(
        db,
        lambda: db.scalars(
            select(Chit).where(Chit.author_id == author_id).order_by(*CHIT_ORDER)
        ),
        name="chits by author",
    )
    return list(rows.all())


async def get_chit(db: AsyncSession, author_id: str, chit_id: str) -> Chit:
    chit = await store.read(db, lambda: db.get(Chit, chit_id), name="chit")
    if chit is None or chit.author_id != author_id:
        raise NotFound("Chit not found.")
    return chit


async def delete_chit(db: AsyncSession, author_id: str, chit_id: str, caller_id: str) -> None:
    with tracer.start_as_current_span("delete_chit"):
        chit = await get_chit(db, author_id, chit_id)
        if caller_id != chit.author_id:
            raise NotOwner("You are not authorized to delete this chit.")

        async def _delete() -> None:
            await db.delete(chit)
            await db.commit()

        await store.write(db, _delete, name="chit")
        await redis_client.invalidate_feeds()
        logger.info("Chit deleted: %s by user %s", chit_id, caller_id)
