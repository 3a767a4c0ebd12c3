"""Test configuration and fixtures for FileHub tests."""

import hashlib
import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from filehub import FileHub
from filehub.db import Database
from filehub.models.base import Base
from filehub.models.file_index import configure_dims
from filehub.providers.embedding import EmbeddingProvider

TEST_DIMS = 32


class MockEmbeddingProvider(EmbeddingProvider):
    """Mock embedding provider for testing (no external API calls).

    Records every text it was asked to embed.
    """

    def __init__(self, dims: int = TEST_DIMS):
        self._dims = dims
        self.calls: list[str] = []

    @property
    def dims(self) -> int:
        return self._dims

    async def embed(self, text: str) -> list[float]:
        """Return a deterministic fake vector based on a stable text digest."""
        self.calls.append(text)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i % len(digest)] / 255.0 for i in range(self._dims)]


class FailingEmbeddingProvider(EmbeddingProvider):
    """Embedding provider whose every call fails, like an unreachable API."""

    def __init__(self, dims: int = TEST_DIMS):
        self._dims = dims

    @property
    def dims(self) -> int:
        return self._dims

    async def embed(self, text: str) -> list[float]:
        raise RuntimeError("embedding service unavailable")


class ShortVectorEmbeddingProvider(MockEmbeddingProvider):
    """Declares ``dims`` but returns vectors half that length."""

    async def embed(self, text: str) -> list[float]:
        vector = await super().embed(text)
        return vector[: self._dims // 2]


class NullVectorEmbeddingProvider(MockEmbeddingProvider):
    """Returns the declared number of entries, all of them null."""

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return [None] * self._dims


@pytest.fixture
def database_url(tmp_path) -> str:
    """Per-test SQLite file, or FILEHUB_TEST_DATABASE_URL when set."""
    return os.environ.get(
        "FILEHUB_TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'filehub.db'}",
    )


async def _reset_schema(db: Database) -> None:
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await db.init()


@pytest_asyncio.fixture
async def db(database_url) -> AsyncGenerator[Database]:
    """Initialized database with empty tables."""
    configure_dims(TEST_DIMS)
    database = Database(database_url)
    await _reset_schema(database)
    yield database
    await database.close()


@pytest.fixture
def mock_embedding() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def failing_embedding() -> FailingEmbeddingProvider:
    return FailingEmbeddingProvider()


async def _make_hub(database_url: str, embedding: EmbeddingProvider, **kwargs) -> FileHub:
    instance = FileHub(database_url=database_url, embedding=embedding, **kwargs)
    await _reset_schema(instance._db)
    return instance


@pytest_asyncio.fixture
async def hub(database_url, mock_embedding) -> AsyncGenerator[FileHub]:
    """A fully-wired FileHub on the mock embedding provider."""
    instance = await _make_hub(database_url, mock_embedding)
    yield instance
    await instance.close()


@pytest_asyncio.fixture
async def failing_hub(database_url, failing_embedding) -> AsyncGenerator[FileHub]:
    """A FileHub whose embedding capability always fails."""
    instance = await _make_hub(database_url, failing_embedding)
    yield instance
    await instance.close()


@pytest_asyncio.fixture
async def make_hub(database_url):
    """Factory for hubs with custom collaborators; closes them afterwards."""
    created: list[FileHub] = []

    async def _factory(embedding: EmbeddingProvider | None = None, **kwargs) -> FileHub:
        instance = await _make_hub(database_url, embedding or MockEmbeddingProvider(), **kwargs)
        created.append(instance)
        return instance

    yield _factory

    for instance in created:
        await instance.close()
