"""
Feed Aggregator — global and personal feeds.

  global   │ every chit of every user
  personal │ chits by the viewer and by everyone the viewer follows

Both are ordered (created_at desc, chit_id asc) and paginated by an opaque
cursor holding the last (created_at, chit_id) the client has seen. The
next page is everything strictly after that key, so inserts between page
requests never produce duplicates.

Pages are cached in Redis under a generation counter that every chit write
and follow-graph change bumps (see clients/redis_client.py). A cache that
is down or disabled just means every request reads the store.
"""
import base64
import binascii
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitter import store
from chitter.clients import redis_client
from chitter.config import settings
from chitter.domain.graph import following_ids
from chitter.domain.identity import get_user
from chitter.domain.posts import CHIT_ORDER
from chitter.errors import InvalidInput
from chitter.models import Chit
from chitter.schemas import ChitResponse, FeedPage
from chitter.telemetry import FEED_LATENCY

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_CURSOR_TIMESTAMP = 2**63 - 1


# ─────────────────────────── Cursor ──────────────────────────────────────

def encode_cursor(created_at: int, chit_id: str) -> str:
    raw = f"{created_at}:{chit_id}".encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str) -> tuple[int, str]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        created_at, chit_id = raw.split(":", 1)
        created_at = int(created_at)
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise InvalidInput("Malformed feed cursor.") from exc
    if not 0 <= created_at <= MAX_CURSOR_TIMESTAMP:
        raise InvalidInput("Malformed feed cursor.")
    return created_at, chit_id


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.feed_page_size
    if limit < 1:
        raise InvalidInput("limit must be at least 1.")
    return min(limit, settings.feed_max_page_size)


# ─────────────────────────── Queries ─────────────────────────────────────

async def _page(
    db: AsyncSession,
    authors: Optional[set[str]],
    cursor: Optional[str],
    limit: int,
) -> FeedPage:
    stmt = select(Chit)
    if authors is not None:
        stmt = stmt.where(Chit.author_id.in_(authors))
    if cursor:
        after_ts, after_id = decode_cursor(cursor)
        stmt = stmt.where(
            or_(
                Chit.created_at < after_ts,
                and_(Chit.created_at == after_ts, Chit.chit_id > after_id),
            )
        )
    # one extra row tells us whether another page exists
    stmt = stmt.order_by(*CHIT_ORDER).limit(limit + 1)

    rows = await store.read(db, lambda: db.scalars(stmt), name="feed page")
    chits = list(rows.all())

    next_cursor = None
    if len(chits) > limit:
        chits = chits[:limit]
        last = chits[-1]
        next_cursor = encode_cursor(last.created_at, last.chit_id)

    return FeedPage(
        chits=[ChitResponse.from_chit(c) for c in chits],
        next_cursor=next_cursor,
    )


async def _cached(key: str, build) -> FeedPage:
    generation, cached = await redis_client.lookup_feed_page(key)
    if cached is not None:
        return FeedPage.model_validate_json(cached)
    page = await build()
    await redis_client.store_feed_page(generation, key, page.model_dump_json(by_alias=True))
    return page


async def global_feed(
    db: AsyncSession,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> FeedPage:
    limit = clamp_limit(limit)
    if cursor:
        decode_cursor(cursor)

    with tracer.start_as_current_span("global_feed"), FEED_LATENCY.labels("global").time():
        key = f"global:{cursor or '-'}:{limit}"
        return await _cached(key, lambda: _page(db, None, cursor, limit))


async def personal_feed(
    db: AsyncSession,
    viewer_id: str,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> FeedPage:
    limit = clamp_limit(limit)
    if cursor:
        decode_cursor(cursor)

    with tracer.start_as_current_span("personal_feed") as span, \
            FEED_LATENCY.labels("personal").time():
        span.set_attribute("user.id", viewer_id)
        await get_user(db, viewer_id)

        async def _build() -> FeedPage:
            authors = await following_ids(db, viewer_id)
            authors.add(viewer_id)
            span.set_attribute("feed.authors", len(authors))
            return await _page(db, authors, cursor, limit)

        key = f"personal:{viewer_id}:{cursor or '-'}:{limit}"
        return await _cached(key, _build)
