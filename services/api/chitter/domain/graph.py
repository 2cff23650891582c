"""
Social Graph — follower → followee edges.

Each edge is a single row keyed by (follower_id, followee_id). "A follows B",
"B's followers include A" and "A's following includes B" are all reads of
that one row, so the two views cannot drift apart, and follow / unfollow
are each a single atomic statement.
"""
import logging

from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chitter import store
from chitter.clients import redis_client
from chitter.domain.identity import get_user
from chitter.errors import AlreadyFollowing, NotFollowing, SelfFollow
from chitter.models import Follow, User

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def _edge_exists(db: AsyncSession, follower_id: str, followee_id: str) -> bool:
    found = await store.read(
        db,
        lambda: db.scalar(
            select(Follow.follower_id).where(
                Follow.follower_id == follower_id,
                Follow.followee_id == followee_id,
            )
        ),
        name="follow edge",
    )
    return found is not None


async def follow(db: AsyncSession, follower_id: str, followee_id: str) -> None:
    """
    Create the edge follower → followee.

    A repeated follow is reported as AlreadyFollowing rather than ignored;
    two concurrent follows of the same pair collide on the primary key and
    the loser gets the same error.
    """
    if follower_id == followee_id:
        raise SelfFollow("Cannot follow yourself.")

    with tracer.start_as_current_span("follow") as span:
        span.set_attribute("follow.follower_id", follower_id)
        span.set_attribute("follow.followee_id", followee_id)

        await get_user(db, followee_id)
        await get_user(db, follower_id)

        if await _edge_exists(db, follower_id, followee_id):
            raise AlreadyFollowing(f"({follower_id}) already follows ({followee_id}).")

        async def _insert() -> None:
            db.add(Follow(follower_id=follower_id, followee_id=followee_id))
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise AlreadyFollowing(
                    f"({follower_id}) already follows ({followee_id})."
                ) from exc

        await store.write(db, _insert, name="follow edge")
        await redis_client.invalidate_feeds()
        logger.info("%s followed %s", follower_id, followee_id)


async def unfollow(db: AsyncSession, follower_id: str, followee_id: str) -> None:
    with tracer.start_as_current_span("unfollow"):
        await get_user(db, followee_id)
        await get_user(db, follower_id)

        async def _delete() -> int:
            result = await db.execute(
                delete(Follow).where(
                    Follow.follower_id == follower_id,
                    Follow.followee_id == followee_id,
                )
            )
            await db.commit()
            return result.rowcount

        removed = await store.write(db, _delete, name="follow edge")
        if not removed:
            raise NotFollowing(f"({follower_id}) does not follow ({followee_id}).")

        await redis_client.invalidate_feeds()
        logger.info("%s unfollowed %s", follower_id, followee_id)


async def list_followers(db: AsyncSession, user_id: str) -> list[User]:
    await get_user(db, user_id)
    rows = await store.read(
        db,
        lambda: db.scalars(
            select(User)
            .join(Follow, Follow.follower_id == User.user_id)
            .where(Follow.followee_id == user_id)
        ),
        name="followers",
    )
    return list(rows.all())


async def list_following(db: AsyncSession, user_id: str) -> list[User]:
    await get_user(db, user_id)
    rows = await store.read(
        db,
        lambda: db.scalars(
            select(User)
            .join(Follow, Follow.followee_id == User.user_id)
            .where(Follow.follower_id == user_id)
        ),
        name="following",
    )
    return list(rows.all())


async def following_ids(db: AsyncSession, user_id: str) -> set[str]:
    rows = await store.read(
        db,
        lambda: db.scalars(select(Follow.followee_id).where(Follow.follower_id == user_id)),
        name="following ids",
    )
    return set(rows.all())
