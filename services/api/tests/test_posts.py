import pytest

from chitter.clients import minio_client
from chitter.domain import posts
from chitter.errors import InvalidInput, NotFound, NotOwner, StoreUnavailable
from chitter.models import Chit


async def test_create_and_list_newest_first(db, make_user):
    alice = await make_user("Alice", "Smith")
    db.add_all(
        [
            Chit(chit_id="b", author_id=alice.user_id, content="same second", created_at=200),
            Chit(chit_id="a", author_id=alice.user_id, content="same second", created_at=200),
            Chit(chit_id="c", author_id=alice.user_id, content="older", created_at=100),
        ]
    )
    await db.commit()
    fresh = await posts.create_chit(db, alice.user_id, content="hello")

    listed = await posts.list_chits(db, alice.user_id)

    assert [c.chit_id for c in listed] == [fresh.chit_id, "a", "b", "c"]


async def test_chit_may_be_image_or_location_only(db, make_user):
    alice = await make_user("Alice", "Smith")

    with_image = await posts.create_chit(db, alice.user_id, image_url="http://img/1.jpg")
    with_location = await posts.create_chit(db, alice.user_id, latitude=51.5, longitude=-0.1)

    assert with_image.content is None and with_image.image_ref == "http://img/1.jpg"
    assert with_location.has_location


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"content": "   "},
        {"content": "x", "latitude": 10.0},
        {"content": "x", "latitude": 91.0, "longitude": 0.0},
        {"content": "x" * 281},
    ],
)
async def test_invalid_chits(db, make_user, kwargs):
    alice = await make_user("Alice", "Smith")

    with pytest.raises(InvalidInput):
        await posts.create_chit(db, alice.user_id, **kwargs)


async def test_unknown_author(db):
    with pytest.raises(NotFound):
        await posts.create_chit(db, "ghost", content="hi")
    with pytest.raises(NotFound):
        await posts.list_chits(db, "ghost")


async def test_non_author_cannot_delete(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    chit = await posts.create_chit(db, alice.user_id, content="mine")

    with pytest.raises(NotOwner):
        await posts.delete_chit(db, alice.user_id, chit.chit_id, bob.user_id)

    assert [c.chit_id for c in await posts.list_chits(db, alice.user_id)] == [chit.chit_id]


async def test_author_deletes_chit(db, make_user):
    alice = await make_user("Alice", "Smith")
    chit = await posts.create_chit(db, alice.user_id, content="bye")

    await posts.delete_chit(db, alice.user_id, chit.chit_id, alice.user_id)

    assert await posts.list_chits(db, alice.user_id) == []
    with pytest.raises(NotFound):
        await posts.delete_chit(db, alice.user_id, chit.chit_id, alice.user_id)


async def test_chit_under_wrong_author_is_not_found(db, make_user):
    alice = await make_user("Alice", "Smith")
    bob = await make_user("Bob", "Jones")
    chit = await posts.create_chit(db, alice.user_id, content="mine")

    with pytest.raises(NotFound):
        await posts.get_chit(db, bob.user_id, chit.chit_id)


async def test_uploaded_image_is_removed_when_insert_fails(db, make_user, monkeypatch):
    alice = await make_user("Alice", "Smith")
    deleted = []
    monkeypatch.setattr(minio_client, "upload_image", lambda data: "http://minio/c.jpg")
    monkeypatch.setattr(minio_client, "delete_image", deleted.append)

    async def _down(session, op, *, name):
        raise StoreUnavailable("down")

    monkeypatch.setattr(posts.store, "write", _down)

    with pytest.raises(StoreUnavailable):
        await posts.create_chit(db, alice.user_id, content="pic", image_base64="aGVsbG8=")
    assert deleted == ["http://minio/c.jpg"]


async def test_uploaded_image_uri_is_stored(db, make_user, monkeypatch):
    alice = await make_user("Alice", "Smith")
    monkeypatch.setattr(minio_client, "upload_image", lambda data: "http://minio/c.jpg")

    chit = await posts.create_chit(db, alice.user_id, image_base64="aGVsbG8=")

    assert chit.image_ref == "http://minio/c.jpg"


def test_upload_without_blob_storage_is_unavailable():
    with pytest.raises(StoreUnavailable):
        minio_client.upload_image("aGVsbG8=")


def test_upload_rejects_bad_base64():
    with pytest.raises(InvalidInput):
        minio_client.upload_image("not base64!!")


async def test_overlong_image_url_is_rejected_before_insert(db, make_user):
    alice = await make_user("Alice", "Smith")

    with pytest.raises(InvalidInput):
        await posts.create_chit(db, alice.user_id, image_url="http://img/" + "x" * 1024)
    assert await posts.list_chits(db, alice.user_id) == []
