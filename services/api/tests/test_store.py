import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from chitter import store
from chitter.errors import NotFound, StoreUnavailable


@pytest.fixture
def short_timeout(monkeypatch):
    monkeypatch.setattr(store.settings, "store_timeout_seconds", 0.05)


async def test_read_retries_once_then_succeeds(db):
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))
        return "ok"

    assert await store.read(db, flaky, name="flaky") == "ok"
    assert len(calls) == 2


async def test_read_timeout_becomes_store_unavailable(db, short_timeout):
    calls = []

    async def hang():
        calls.append(1)
        await asyncio.sleep(1)

    with pytest.raises(StoreUnavailable):
        await store.read(db, hang, name="hang")
    assert len(calls) == 2


async def test_write_is_never_retried(db, short_timeout):
    calls = []

    async def hang():
        calls.append(1)
        await asyncio.sleep(1)

    with pytest.raises(StoreUnavailable):
        await store.write(db, hang, name="hang")
    assert len(calls) == 1


async def test_domain_errors_pass_through(db):
    async def missing():
        raise NotFound("nope")

    with pytest.raises(NotFound):
        await store.read(db, missing, name="missing")
