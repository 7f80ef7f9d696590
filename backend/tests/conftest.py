"""
Pytest configuration and fixtures for Taskhive tests.

The API runs against a throwaway SQLite database and a fake identity
provider: the bearer token is taken to be the Firebase uid.
"""

import os

import pytest
import pytest_asyncio
from fastapi import Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from taskhive.auth import AuthenticatedUser, get_current_user
from taskhive.database import get_session, init_db
from taskhive.exceptions import UnauthenticatedError
from taskhive.main import app
from taskhive.models import User, UserRole


OWNER = "owner-uid"
MEMBER = "member-uid"
EDITOR = "editor-uid"
OUTSIDER = "outsider-uid"
ADMIN = "admin-uid"

SEED_USERS = [
    (OWNER, "Olive Owner", UserRole.MEMBER),
    (MEMBER, "Max Member", UserRole.MEMBER),
    (EDITOR, "Eddie Editor", UserRole.MEMBER),
    (OUTSIDER, "Oscar Outsider", UserRole.MEMBER),
    (ADMIN, "Ada Admin", UserRole.ADMIN),
]


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine with all tables."""
    url = os.environ.get(
        "TASKHIVE_TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'taskhive_test.db'}",
    )
    engine = create_async_engine(url, echo=False)
    await init_db(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_maker):
    """A session for arranging and inspecting data directly."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def seeded_users(session_maker):
    """Register the standard cast of users."""
    async with session_maker() as session:
        for uid, name, role in SEED_USERS:
            session.add(User(id=uid, name=name, email=f"{uid}@example.com", role=role))
        await session.commit()
    return {uid: role for uid, _, role in SEED_USERS}


async def fake_current_user(request: Request) -> AuthenticatedUser:
    """Stand-in for Firebase verification: 'Bearer <uid>'."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer ") or not header[len("Bearer "):].strip():
        raise UnauthenticatedError()
    uid = header[len("Bearer "):].strip()
    return AuthenticatedUser(uid=uid, email=f"{uid}@example.com")


@pytest_asyncio.fixture(scope="function")
async def client(session_maker, seeded_users):
    """Create an async test client with test database and fake identity."""

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_current_user] = fake_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Build request headers for a uid."""
    def _headers(uid: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {uid}"}
    return _headers


@pytest_asyncio.fixture(scope="function")
async def project(client, auth):
    """A project owned by OWNER with MEMBER as viewer and EDITOR as editor."""
    response = await client.post(
        "/projects",
        json={"name": "Apollo", "description": "Moon landing", "priority": "high"},
        headers=auth(OWNER),
    )
    assert response.status_code == 201
    project_id = response.json()["data"]["id"]

    for uid, role in ((MEMBER, "viewer"), (EDITOR, "editor")):
        response = await client.post(
            f"/projects/{project_id}/team",
            json={"user_id": uid, "role": role},
            headers=auth(OWNER),
        )
        assert response.status_code == 200
    return response.json()["data"]
