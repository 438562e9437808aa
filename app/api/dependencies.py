from typing import AsyncIterator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import DatabaseManager


def get_database_manager(request: Request) -> DatabaseManager:
    return request.app.state.db


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a session from the application's database manager."""
    async with get_database_manager(request).session() as session:
        yield session
