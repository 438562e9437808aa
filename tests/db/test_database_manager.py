"""
Database handle and application wiring tests.
"""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import text

from app.db.session import DatabaseManager


SQLITE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.mark.asyncio
class TestDatabaseManager:
    async def test_concurrent_connect_builds_one_engine(self):
        manager = DatabaseManager(SQLITE_URL)

        engines = await asyncio.gather(*(manager.connect() for _ in range(10)))

        assert all(engine is engines[0] for engine in engines)
        await manager.dispose()

    async def test_engine_before_connect_raises(self):
        manager = DatabaseManager(SQLITE_URL)

        assert manager.is_connected is False
        with pytest.raises(RuntimeError):
            manager.engine

    async def test_session_connects_on_demand(self):
        manager = DatabaseManager(SQLITE_URL)

        async with manager.session() as session:
            result = await session.execute(text("SELECT 1"))
            assert result.scalar() == 1

        assert manager.is_connected is True
        await manager.dispose()
        assert manager.is_connected is False

    async def test_dispose_is_idempotent(self):
        manager = DatabaseManager(SQLITE_URL)
        await manager.connect()

        await manager.dispose()
        await manager.dispose()

        assert manager.is_connected is False


@pytest.mark.asyncio
class TestAppEndpoints:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "MamaCare Incentives API"
