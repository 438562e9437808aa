import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from app.core.utils import LoggerMixin


class DatabaseManager(LoggerMixin):
    """
    Owns the async engine and session factory for one application instance.

    The engine is created lazily by ``connect()``. Concurrent first callers
    are serialized by an ``asyncio.Lock`` so exactly one engine is built;
    later calls reuse it.
    """

    def __init__(self, database_url: str, echo: bool = False, **engine_kwargs):
        super().__init__()
        self.database_url = database_url
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager.connect() has not been called")
        return self._engine

    async def connect(self) -> AsyncEngine:
        """Create the engine once and return it."""
        if self._engine is not None:
            return self._engine

        async with self._lock:
            if self._engine is None:
                engine = create_async_engine(
                    self.database_url, echo=self.echo, **self.engine_kwargs
                )
                self._session_factory = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                self._engine = engine
                self.log_info({"event": "database_engine_created"})

        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session, connecting first if needed."""
        await self.connect()
        async with self._session_factory() as session:
            yield session

    async def dispose(self) -> None:
        async with self._lock:
            if self._engine is not None:
                await self._engine.dispose()
                self._engine = None
                self._session_factory = None
                self.log_info({"event": "database_engine_disposed"})
