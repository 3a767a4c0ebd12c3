"""Database management - engine, session factory, initialization."""

from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filehub.errors import StorageError


class Database:
    """Async database manager with connection pooling."""

    def __init__(self, url: str, pool_size: int = 10, echo: bool = False):
        engine_kwargs: dict = {"echo": echo}
        if not url.startswith("sqlite"):
            engine_kwargs["pool_size"] = pool_size
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self):
        """Context manager that yields a session with auto-commit/rollback.

        Driver and ORM failures leave the block as StorageError.
        """
        async with self.session_factory() as s:
            try:
                yield s
                await s.commit()
            except SQLAlchemyError as e:
                await s.rollback()
                raise StorageError(str(e)) from e
            except Exception:
                await s.rollback()
                raise

    async def init(self) -> None:
        """Create pgvector extension (PostgreSQL) and all tables."""
        from filehub.models.base import Base
        # Import all models to register them with Base.metadata
        import filehub.models.file  # noqa: F401
        import filehub.models.file_index  # noqa: F401
        import filehub.models.job  # noqa: F401

        async with self.engine.begin() as conn:
            if self.dialect == "postgresql":
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose engine and release all connections."""
        await self.engine.dispose()
