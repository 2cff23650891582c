import pytest

from chitter.domain import graph
from chitter.errors import AlreadyFollowing, NotFollowing, NotFound, SelfFollow
from chitter.models import Follow


def _ids(users):
    return {u.user_id for u in users}


async def test_follow_updates_both_projections_together(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")

    await graph.follow(db, alice.user_id, bob.user_id)

    assert bob.user_id in _ids(await graph.list_following(db, alice.user_id))
    assert alice.user_id in _ids(await graph.list_followers(db, bob.user_id))
    # the relation is directional
    assert await graph.list_following(db, bob.user_id) == []
    assert await graph.list_followers(db, alice.user_id) == []


async def test_unfollow_removes_both_projections(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    await graph.follow(db, alice.user_id, bob.user_id)

    await graph.unfollow(db, alice.user_id, bob.user_id)

    assert await graph.list_following(db, alice.user_id) == []
    assert await graph.list_followers(db, bob.user_id) == []


async def test_self_follow_is_rejected(db, make_user):
    alice = await make_user("Alice", "Smith")

    with pytest.raises(SelfFollow):
        await graph.follow(db, alice.user_id, alice.user_id)


async def test_duplicate_follow_conflicts_and_keeps_single_edge(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    await graph.follow(db, alice.user_id, bob.user_id)

    with pytest.raises(AlreadyFollowing):
        await graph.follow(db, alice.user_id, bob.user_id)

    assert len(await graph.list_followers(db, bob.user_id)) == 1


async def test_concurrent_follow_loses_on_primary_key(db, sessionmaker, make_user, monkeypatch):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")

    async def _racing_edge_exists(session, follower_id, followee_id):
        # another request inserts the same edge between the check and our insert
        async with sessionmaker() as other:
            other.add(Follow(follower_id=follower_id, followee_id=followee_id))
            await other.commit()
        return False

    monkeypatch.setattr(graph, "_edge_exists", _racing_edge_exists)

    with pytest.raises(AlreadyFollowing):
        await graph.follow(db, alice.user_id, bob.user_id)

    assert _ids(await graph.list_followers(db, bob.user_id)) == {alice.user_id}
    assert _ids(await graph.list_following(db, alice.user_id)) == {bob.user_id}


async def test_unfollow_without_edge(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")

    with pytest.raises(NotFollowing):
        await graph.unfollow(db, alice.user_id, bob.user_id)


async def test_follow_unknown_user(db, make_user):
    alice = await make_user("Alice", "Smith")

    with pytest.raises(NotFound):
        await graph.follow(db, alice.user_id, "ghost")
    with pytest.raises(NotFound):
        await graph.follow(db, "ghost", alice.user_id)
    with pytest.raises(NotFound):
        await graph.list_followers(db, "ghost")


async def test_following_ids(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    carol = await make_user("Carol", "Singh")
    await graph.follow(db, alice.user_id, bob.user_id)
    await graph.follow(db, alice.user_id, carol.user_id)

    assert await graph.following_ids(db, alice.user_id) == {bob.user_id, carol.user_id}
