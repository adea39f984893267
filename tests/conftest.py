# tests/conftest.py

from __future__ import annotations

from typing import AsyncIterator

import httpx
import pytest

from config import Settings
from main import create_app

from .fakes import FakeDatabase, FakeMailer


@pytest.fixture()
def settings() -> Settings:
    # Built directly so a developer's .env never leaks into tests.
    return Settings(database_name="LifeTrackTest", email_user="alerts@lifetrack.test", email_password="secret")


@pytest.fixture()
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def app(settings: Settings, db: FakeDatabase, mailer: FakeMailer):
    return create_app(settings, db=db, mailer=mailer)


@pytest.fixture()
async def client(app) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c


@pytest.fixture()
async def user(client: httpx.AsyncClient) -> dict:
    """A registered user: {"userId", "name", "email", "password", "emergencyContact"}."""
    data = {
        "name": "Nimal",
        "email": "nimal@example.com",
        "password": "secret1",
        "emergencyContact": "daughter@example.com",
    }
    resp = await client.post("/api/register", json=data)
    assert resp.status_code == 201
    return {**data, "userId": resp.json()["userId"]}
