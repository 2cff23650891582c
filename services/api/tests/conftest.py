import os
import tempfile

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'chitter-import.db')}"
)
os.environ["FEED_CACHE_ENABLED"] = "false"
os.environ["BLOB_STORAGE_ENABLED"] = "false"
os.environ["TRACING_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STORE_RETRY_BACKOFF_SECONDS"] = "0"

import httpx
import pytest

from chitter.database import build_engine, build_sessionmaker, get_db, init_db
from chitter.domain import identity
from chitter.main import app


@pytest.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'chitter.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
async def client(sessionmaker):
    async def _get_test_db():
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a user directly through the Identity Store."""
    async def _make(first_name="Alice", last_name="Smith", email=None, password="secret123"):
        email = email or f"{first_name.lower()}.{last_name.lower()}@example.com"
        return await identity.create_identity(db, first_name, last_name, email, password)
    return _make


@pytest.fixture
def register(client):
    """Sign up and log in over HTTP; returns (user_id, auth headers)."""
    async def _register(first_name="Alice", last_name="Smith", email=None, password="secret123"):
        email = email or f"{first_name.lower()}.{last_name.lower()}@example.com"
        resp = await client.post(
            "/api/auth/signup",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
            },
        )
        assert resp.status_code == 201, resp.text
        resp = await client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        return data["user_id"], {"X-Authorization": data["token"]}
    return _register
