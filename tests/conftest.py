# tests/conftest.py
from pathlib import Path
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from taskify.config import Settings
from taskify.database import create_db_and_tables, create_engine_and_sessionmaker
from taskify.main import create_app
from taskify.models import Role
from taskify.services.user_service import find_user_by_email

from .fakes import FakeNotifier

PASSWORD = "secret123"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'taskify.sqlite3'}",
        jwt_secret="test-jwt-secret",
        session_secret="test-session-secret",
        client_url="http://client.test",
        bcrypt_rounds=4,
    )


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def client(settings: Settings, notifier: FakeNotifier):
    app = create_app(settings, notifier=notifier)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Register and log in a user; returns the Authorization header."""

    def _make(email: str, password: str = PASSWORD, name: str = "Test User") -> Dict[str, str]:
        r = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert r.status_code == 201, r.text
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _make


def set_role(client: TestClient, email: str, role: Role) -> None:
    async def _set_role():
        async with client.app.state.sessionmaker() as session:
            user = await find_user_by_email(session, email)
            user.role = role
            session.add(user)
            await session.commit()

    client.portal.call(_set_role)


@pytest.fixture
async def db(anyio_backend, tmp_path: Path):
    """A session on a fresh database, for service-level tests."""
    engine, sessionmaker = create_engine_and_sessionmaker(f"sqlite+aiosqlite:///{tmp_path / 'service.sqlite3'}")
    await create_db_and_tables(engine)
    async with sessionmaker() as session:
        yield session
    await engine.dispose()
