"""
Shared pytest fixtures for all tests.

Provides a throwaway SQLite database per test, request contexts for calling
handlers directly, and an HTTP client bound to the ASGI app.
"""

import os
import tempfile
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

from teamchat.api.main import create_app
from teamchat.config import Settings
from teamchat.database import operations as ops
from teamchat.database.base import Base
from teamchat.database.session import SessionManager, build_engine
from teamchat.handlers.context import HandlerContext
from teamchat.storage.files import FileStorage


env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    try:
        load_dotenv(env_path)
    except (OSError, IOError):
        pass

BASE_URL = "http://testserver"


@pytest.fixture
def sqlite_db():
    """SessionManager over a temporary SQLite database with all tables."""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    engine = build_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)

    yield SessionManager(engine)

    engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def session(sqlite_db):
    session = sqlite_db.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path / "files", public_url=BASE_URL)


@pytest.fixture
def make_user(session):
    """Factory creating users with unique emails."""

    def _make_user(name: str = "Ada"):
        email = f"{name.lower()}-{uuid4().hex[:8]}@example.com"
        return ops.create_user(session, email=email, name=name)

    return _make_user


@pytest.fixture
def make_ctx(session, storage):
    """Factory building a HandlerContext for a user (or anonymous)."""

    def _make_ctx(user=None):
        return HandlerContext(
            session=session,
            user_id=user.id if user is not None else None,
            storage=storage,
        )

    return _make_ctx


@pytest.fixture
def app(sqlite_db, tmp_path):
    settings = Settings(
        database_url="sqlite://",
        storage_dir=str(tmp_path / "files"),
        public_url=BASE_URL,
    )
    return create_app(settings=settings, session_manager=sqlite_db)


@pytest_asyncio.fixture
async def api_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def sign_up(api_client):
    """Sign a new user up over HTTP; returns (auth headers, user_id)."""

    async def _sign_up(name: str = "Ada"):
        response = await api_client.post(
            "/api/auth/signUp",
            json={
                "name": name,
                "email": f"{name.lower()}-{uuid4().hex[:8]}@example.com",
                "password": "correct horse battery",
            },
        )
        assert response.status_code == 200, response.text
        data = response.json()
        return {"Authorization": f"Bearer {data['token']}"}, data["user_id"]

    return _sign_up
