"""
Store guard: every database round-trip made by the domain layer goes
through `read` or `write`.

  • Each call is bounded by `store_timeout_seconds`.
  • Timeouts and connection-level driver errors become StoreUnavailable,
    so raw SQLAlchemy exceptions never leave the domain layer.
  • Reads are retried once after a short backoff. Writes are never retried:
    a write that timed out may still have been applied.
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from chitter.config import settings
from chitter.errors import StoreUnavailable
from chitter.telemetry import STORE_FAILURES_TOTAL

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT = (asyncio.TimeoutError, OperationalError, InterfaceError, PoolTimeoutError)


async def _attempt(op: Callable[[], Awaitable[T]]) -> T:
    return await asyncio.wait_for(op(), timeout=settings.store_timeout_seconds)


async def read(session: AsyncSession, op: Callable[[], Awaitable[T]], *, name: str) -> T:
    try:
        return await _attempt(op)
    except _TRANSIENT as exc:
        logger.warning("Store read %s failed (%s) — retrying once", name, exc)
        STORE_FAILURES_TOTAL.labels(mode="read").inc()
        await _safe_rollback(session)

    await asyncio.sleep(settings.store_retry_backoff_seconds)
    try:
        return await _attempt(op)
    except _TRANSIENT as exc:
        STORE_FAILURES_TOTAL.labels(mode="read").inc()
        await _safe_rollback(session)
        raise StoreUnavailable(f"Store unavailable while reading {name}") from exc


async def write(session: AsyncSession, op: Callable[[], Awaitable[T]], *, name: str) -> T:
    try:
        return await _attempt(op)
    except _TRANSIENT as exc:
        logger.error("Store write %s failed: %s", name, exc)
        STORE_FAILURES_TOTAL.labels(mode="write").inc()
        await _safe_rollback(session)
        raise StoreUnavailable(f"Store unavailable while writing {name}") from exc


async def _safe_rollback(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except _TRANSIENT as exc:
        logger.warning("Rollback after store failure also failed: %s", exc)
