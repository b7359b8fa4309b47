# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# MongoDB is replaced by mongomock-motor; requests go through httpx's ASGI
# transport against a FastAPI app carrying the generated router
# ==============================================================================

import os
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("MONGOREST_LOG_LEVEL", "DEBUG")

from mongorest import Database, MongoRest, install_exception_handlers  # noqa: E402

import models  # noqa: E402,F401  registers the test documents by name

MakeClient = Callable[..., Awaitable[AsyncClient]]


@pytest.fixture
def database() -> Database:
    """Fresh in-memory database context per test."""
    return Database(client=AsyncMongoMockClient(), default_db="mongorest-test")


@pytest.fixture
def rest(database: Database) -> MongoRest:
    return MongoRest(database)


def build_app(rest: MongoRest, default_status: int | None = None) -> FastAPI:
    app = FastAPI()
    app.include_router(rest.router(), prefix="/api")
    install_exception_handlers(app, default_status)
    return app


@pytest_asyncio.fixture
async def make_client() -> AsyncGenerator[MakeClient, None]:
    """Build an HTTP client for a configured registry; routes are built on call."""
    clients: list[AsyncClient] = []

    async def _make(rest: MongoRest, default_status: int | None = None) -> AsyncClient:
        transport = ASGITransport(app=build_app(rest, default_status))
        client = AsyncClient(transport=transport, base_url="http://test")
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
