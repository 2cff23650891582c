import pytest

from chitter.clients import redis_client
from chitter.domain import feed, graph, posts
from chitter.errors import InvalidInput, NotFound
from chitter.models import Chit


def _order_key(chit):
    return (-chit.timestamp, chit.chit_id)


async def _seed(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    carol = await make_user("Carol", "Singh")
    rows = [
        Chit(chit_id="a1", author_id=alice.user_id, content="a1", created_at=100),
        Chit(chit_id="a2", author_id=alice.user_id, content="a2", created_at=300),
        Chit(chit_id="b1", author_id=bob.user_id, content="b1", created_at=300),
        Chit(chit_id="b2", author_id=bob.user_id, content="b2", created_at=200),
        Chit(chit_id="c1", author_id=carol.user_id, content="c1", created_at=300),
        Chit(chit_id="c2", author_id=carol.user_id, content="c2", created_at=50),
    ]
    db.add_all(rows)
    await db.commit()
    return alice, bob, carol


async def test_global_feed_is_totally_ordered_and_complete(db, make_user):
    await _seed(db, make_user)

    page = await feed.global_feed(db, limit=100)

    ids = [c.chit_id for c in page.chits]
    assert ids == ["a2", "b1", "c1", "b2", "a1", "c2"]
    assert page.chits == sorted(page.chits, key=_order_key)
    assert page.next_cursor is None


async def test_pagination_walks_whole_feed_without_gaps(db, make_user):
    await _seed(db, make_user)
    everything = [c.chit_id for c in (await feed.global_feed(db, limit=100)).chits]

    seen, cursor = [], None
    while True:
        page = await feed.global_feed(db, cursor=cursor, limit=4)
        seen.extend(c.chit_id for c in page.chits)
        if page.next_cursor is None:
            break
        cursor = page.next_cursor

    assert seen == everything


async def test_personal_feed_follows_the_graph(db, make_user):
    alice, bob, carol = await _seed(db, make_user)
    await graph.follow(db, bob.user_id, alice.user_id)

    page = await feed.personal_feed(db, bob.user_id, limit=100)
    ids = {c.chit_id for c in page.chits}

    assert ids == {"a1", "a2", "b1", "b2"}
    global_ids = {c.chit_id for c in (await feed.global_feed(db, limit=100)).chits}
    assert ids <= global_ids
    assert page.chits == sorted(page.chits, key=_order_key)


async def test_personal_feed_without_follows_is_own_chits(db, make_user):
    _, _, carol = await _seed(db, make_user)

    page = await feed.personal_feed(db, carol.user_id)

    assert [c.chit_id for c in page.chits] == ["c1", "c2"]


async def test_personal_feed_unknown_viewer(db):
    with pytest.raises(NotFound):
        await feed.personal_feed(db, "ghost")


async def test_alice_bob_scenario(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")

    assert (await feed.personal_feed(db, bob.user_id)).chits == []

    await graph.follow(db, bob.user_id, alice.user_id)
    await posts.create_chit(db, alice.user_id, content="hello")

    chits = (await feed.personal_feed(db, bob.user_id)).chits
    assert len(chits) == 1
    assert chits[0].content == "hello"
    assert chits[0].user_id == alice.user_id


def test_cursor_round_trip_and_garbage():
    assert feed.decode_cursor(feed.encode_cursor(123, "abc:def")) == (123, "abc:def")
    for junk in ("%%%", "bm90LWEtY3Vyc29y", "ü"):
        with pytest.raises(InvalidInput):
            feed.decode_cursor(junk)


@pytest.mark.parametrize("created_at", [-1, 2**63, 99999999999999999999999])
def test_cursor_timestamp_out_of_range(created_at):
    with pytest.raises(InvalidInput):
        feed.decode_cursor(feed.encode_cursor(created_at, "x"))


def test_limit_is_clamped():
    assert feed.clamp_limit(None) == feed.settings.feed_page_size
    assert feed.clamp_limit(10_000) == feed.settings.feed_max_page_size
    with pytest.raises(InvalidInput):
        feed.clamp_limit(0)


class _FakeRedis:
    """In-memory stand-in for the handful of commands the feed cache uses."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value

    async def incr(self, key):
        self.data[key] = str(int(self.data.get(key, "0")) + 1)
        return int(self.data[key])


async def test_feed_pages_are_cached_until_a_write(db, make_user, monkeypatch):
    monkeypatch.setattr(redis_client, "_redis", _FakeRedis())
    alice = await make_user("Alice", "Smith")
    await posts.create_chit(db, alice.user_id, content="first")

    first = await feed.global_feed(db)
    # written behind the cache's back: the cached page is still served
    db.add(Chit(chit_id="sneaky", author_id=alice.user_id, content="x", created_at=1))
    await db.commit()
    assert await feed.global_feed(db) == first

    # a write through the Post Store bumps the generation
    await posts.create_chit(db, alice.user_id, content="second")
    ids = {c.chit_id for c in (await feed.global_feed(db)).chits}
    assert "sneaky" in ids
    assert len(ids) == 3


async def test_follow_invalidates_personal_feed_cache(db, make_user, monkeypatch):
    monkeypatch.setattr(redis_client, "_redis", _FakeRedis())
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    await posts.create_chit(db, alice.user_id, content="hello")

    assert (await feed.personal_feed(db, bob.user_id)).chits == []
    await graph.follow(db, bob.user_id, alice.user_id)

    assert len((await feed.personal_feed(db, bob.user_id)).chits) == 1
