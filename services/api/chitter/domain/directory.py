"""
Directory Search — case-insensitive substring match over user names and email.
"""
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitter import store
from chitter.errors import InvalidInput
from chitter.models import User


async def search(db: AsyncSession, query_text: str) -> list[User]:
    needle = (query_text or "").strip().lower()
    if not needle:
        raise InvalidInput("Search query is required.")

    # autoescape so that % and _ in the query match literally
    stmt = select(User).where(
        or_(
            func.lower(User.first_name).contains(needle, autoescape=True),
            func.lower(User.last_name).contains(needle, autoescape=True),
            func.lower(User.email).contains(needle, autoescape=True),
        )
    )
    rows = await store.read(db, lambda: db.scalars(stmt), name="user search")
    return list(rows.all())
