"""
Pytest fixtures: a SQLite-backed connection manager per test, an in-memory
media uploader, and an HTTP client wired to both through dependency
overrides.
"""

import os

# Before the app module reads settings
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_ENABLED"] = "false"

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devevent.core.config import Settings
from devevent.core.errors import UploadError
from devevent.db.connection import ConnectionManager
from devevent.db.session import get_connection_manager
from devevent.infrastructure.media import MediaUploader, get_media_uploader
from devevent.main import app
from devevent.services.cache_service import EventListCache, get_event_cache
from tests.helpers import post_event


class InMemoryUploader(MediaUploader):
    """Records uploads instead of talking to S3."""

    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, payload: bytes, *, filename: str, content_type: str, folder: Optional[str] = None) -> str:
        if self.fail:
            raise UploadError("Image upload failed")
        self.uploads.append({"filename": filename, "content_type": content_type, "size": len(payload)})
        return f"https://media.test/DevEvent/{len(self.uploads)}-{filename}"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'devevent.db'}",
        REDIS_ENABLED=False,
    )


@pytest_asyncio.fixture
async def connection_manager(settings: Settings) -> AsyncGenerator[ConnectionManager, None]:
    manager = ConnectionManager(settings)
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def db_session(connection_manager: ConnectionManager) -> AsyncGenerator[AsyncSession, None]:
    engine = await connection_manager.acquire()
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def uploader() -> InMemoryUploader:
    return InMemoryUploader()


@pytest_asyncio.fixture
async def client(
    connection_manager: ConnectionManager,
    uploader: InMemoryUploader,
    settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the database, uploader and cache swapped for test doubles."""
    cache = EventListCache(settings)
    app.dependency_overrides[get_connection_manager] = lambda: connection_manager
    app.dependency_overrides[get_media_uploader] = lambda: uploader
    app.dependency_overrides[get_event_cache] = lambda: cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def event_form() -> dict:
    return {
        "title": "  React Summit 2026  ",
        "description": "The biggest React conference in the world",
        "overview": "Two days of talks, workshops and networking",
        "venue": "Taets Art and Event Park",
        "location": "Amsterdam, Netherlands",
        "date": "June 12, 2026",
        "time": " 09:00 AM ",
        "mode": "Hybrid",
        "audience": "Frontend developers",
        "agenda": ["Keynote", "Server components deep dive", "Panel"],
        "organizer": "GitNation",
        "tags": ["react", "frontend"],
    }


@pytest.fixture
def image_file() -> dict:
    return {"image": ("cover.png", b"\x89PNG\r\n\x1a\nfake-image", "image/png")}


@pytest_asyncio.fixture
async def created_event(client: AsyncClient, event_form: dict, image_file: dict) -> dict:
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 201, response.text
    return response.json()["event"]
