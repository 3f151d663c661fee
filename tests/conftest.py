"""
Shared test fixtures.

Each test gets a fresh in-memory database and a fake inference service
(httpx.MockTransport) wired into the app through dependency overrides.
"""

import os

# Must be set before the app (and its settings) are imported
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["DETECTION_API_URL"] = "http://detector.test"

import anyio
import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.crud.user import user as user_crud
from app.database import create_tables, drop_tables, get_db
from app.main import app
from app.schemas.user import UserCreate
from app.services.detection_client import get_detection_client


class ChunkedStream(httpx.AsyncByteStream):
    """Response body that is only produced when iterated, like a live socket."""

    def __init__(self, data: bytes, chunk_size: int = 16):
        self._data = data
        self._chunk_size = chunk_size

    async def __aiter__(self):
        for start in range(0, len(self._data), self._chunk_size):
            yield self._data[start:start + self._chunk_size]


def streamed(response: httpx.Response) -> httpx.Response:
    """Turn a canned response into one whose body still has to be streamed."""
    return httpx.Response(
        response.status_code,
        headers=response.headers,
        stream=ChunkedStream(response.content),
    )


class FakeDetector:
    """Stand-in for the inference service; records what it receives."""

    def __init__(self):
        self.requests = []
        self.bodies = []
        self.handler = self.default_handler
        self.delay = 0.0  # simulated inference time, seconds
        self.completed = 0

    @staticmethod
    def default_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"detections": []})

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(await request.aread())
        self.requests.append(request)
        if self.delay:
            await anyio.sleep(self.delay)
        response = streamed(self.handler(request))
        self.completed += 1
        return response


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(bind=test_engine)
    yield test_engine
    await drop_tables(bind=test_engine)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """Session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def detector():
    return FakeDetector()


@pytest_asyncio.fixture
async def client(session_factory, detector):
    """HTTP client talking to the app in-process."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    detection_client = httpx.AsyncClient(
        base_url="http://detector.test",
        transport=httpx.MockTransport(detector),
    )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_detection_client] = lambda: detection_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
    await detection_client.aclose()


@pytest_asyncio.fixture
async def create_user(session_factory):
    """Factory inserting a user straight through the CRUD layer."""

    async def _create(username="alice", email=None, password="password123", is_admin=False, is_active=True):
        async with session_factory() as session:
            return await user_crud.create(
                session,
                obj_in=UserCreate(
                    username=username,
                    email=email or f"{username}@example.com",
                    password=password,
                    is_admin=is_admin,
                    is_active=is_active,
                ),
            )

    return _create


@pytest_asyncio.fixture
async def admin_user(create_user):
    return await create_user(username="admin", password="adminpass", is_admin=True)


@pytest_asyncio.fixture
async def regular_user(create_user):
    return await create_user(username="alice", password="password123")


@pytest.fixture
def login(client):
    """Sign in and return Authorization headers."""

    async def _login(identifier, password):
        response = await client.post(
            "/api/auth/login",
            json={"identifier": identifier, "password": password},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest_asyncio.fixture
async def admin_headers(admin_user, login):
    return await login("admin", "adminpass")


@pytest_asyncio.fixture
async def user_headers(regular_user, login):
    return await login("alice", "password123")
