"""
This file contains shared fixtures and configuration for the test suite.

Pytest will automatically discover and use the fixtures defined in this file.

Every test runs against a throwaway SQLite database that is dropped and
recreated before use. The environment is configured here, before anything
under ``app`` is imported, because settings and the engine are built at
import time.
"""

import asyncio
import os
import tempfile
from collections.abc import AsyncGenerator, Callable

_TEST_DB_DIR = tempfile.mkdtemp(prefix="kanban-tests-")
os.environ["KANBAN_DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'kanban.db')}"
)
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["LOG_TO_FILE"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from app.db import AppAsyncSessionLocal, reset_db  # noqa: E402


@pytest.fixture
def app() -> FastAPI:
    """
    Create a new application instance on a freshly reset database.
    """
    asyncio.run(reset_db())
    # Import the factory function here to ensure it's fresh for each test.
    from main import create_app

    return create_app()


@pytest.fixture
def client(app: FastAPI):
    """
    Fixture to get a test client for making API requests.
    The TestClient handles the application's lifespan events (startup/shutdown).
    """
    with TestClient(app) as c:
        yield c


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """A session on a freshly reset database, for service-level tests."""
    await reset_db()
    async with AppAsyncSessionLocal() as session:
        yield session


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict]:
    """Register a user and return the auth response plus ready-made headers."""

    def _register(username: str, email: str | None = None, password: str = "pw123456"):
        response = client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": email or f"{username}@x.com",
                "password": password,
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        body["headers"] = auth_headers(body["token"])
        return body

    return _register


@pytest.fixture
def alice(register) -> dict:
    return register("alice", "alice@x.com")


@pytest.fixture
def bob(register) -> dict:
    return register("bob", "bob@x.com")


@pytest.fixture
def carol(register) -> dict:
    return register("carol", "carol@x.com")


@pytest.fixture
def make_project(client: TestClient) -> Callable[..., dict]:
    def _make_project(owner: dict, title: str = "Sprint 1", **extra) -> dict:
        response = client.post(
            "/api/projects",
            json={"title": title, **extra},
            headers=owner["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_project


@pytest.fixture
def make_task(client: TestClient) -> Callable[..., dict]:
    def _make_task(owner: dict, project: dict, title: str = "Draft release notes", **extra):
        response = client.post(
            "/api/tasks",
            json={"title": title, "projectId": project["id"], **extra},
            headers=owner["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_task


def column_lists(project: dict) -> dict[str, list[str]]:
    """Column title -> task ids, for populated or summary project bodies."""
    return {
        column["title"]: [
            task["id"] if isinstance(task, dict) else task for task in column["tasks"]
        ]
        for column in project["columns"]
    }


@pytest.fixture
def board(client: TestClient) -> Callable[[dict, str], dict[str, list[str]]]:
    """Fetch a project as ``user`` and return its column title -> task ids."""

    def _board(user: dict, project_id: str) -> dict[str, list[str]]:
        response = client.get(f"/api/projects/{project_id}", headers=user["headers"])
        assert response.status_code == 200, response.text
        return column_lists(response.json())

    return _board
