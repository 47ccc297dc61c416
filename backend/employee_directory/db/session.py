from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from employee_directory.core.config import settings


class Database:
    """
    Owns the async engine and session factory for one application instance.

    Built in the application lifespan and stored on `app.state.database`;
    request handlers receive sessions through the `get_db` dependency.
    """

    def __init__(self, url: str, engine: Optional[AsyncEngine] = None, **engine_kwargs):
        self.url = url
        self.engine = engine or create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls) -> "Database":
        url = settings.DATABASE_URL
        engine_kwargs = {"echo": settings.SQLALCHEMY_ECHO}
        if make_url(url).get_backend_name() != "sqlite":
            # Production-ready connection pooling configuration
            # - pool_pre_ping: verify connections are alive before use
            # - pool_recycle: recycle connections after 1 hour to avoid DB-side timeouts
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=30,
            )
        return cls(url, **engine_kwargs)

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def check_connection(self) -> bool:
        """
        Verify database connectivity. Used by health checks.
        Returns True if connection is successful, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    async def create_all(self) -> None:
        from employee_directory.db.base import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
