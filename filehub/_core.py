"""FileHub main class (facade pattern)."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from filehub.config import FileHubConfig
from filehub.db import Database
from filehub.models.file import FileRecord
from filehub.models.file_index import configure_dims
from filehub.models.job import FileJob, JobStatus
from filehub.providers.embedding import EmbeddingProvider
from filehub.providers.llm import LLMProvider
from filehub.result import Result
from filehub.services.catalog import DEFAULT_LIMIT, FileFilters
from filehub.services.extraction import DEFAULT_MAX_CHARS, ContentExtractor
from filehub.services.indexing import EmbeddingIndexer
from filehub.services.ingestion import (
    DEFAULT_BULK_CONCURRENCY,
    BulkOutcome,
    FileDraft,
    IngestionOrchestrator,
)
from filehub.services.search import SearchEngine, SearchHit
from filehub.services.tagging import LLMTagger, LocalTagger, Tagger
from filehub.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


class FileHub:
    """Main FileHub facade - entry point for all operations.

    Every collaborator is passed in. The one piece of shared state is the
    vector column width: constructing a hub calls ``configure_dims``, which
    resizes ``FileIndexEntry.embedding`` for the whole process. Hubs living in
    one process must therefore share an embedding dimensionality.
    Every operation returns a ``Result``.

    Args:
        database_url: SQLAlchemy async URL (PostgreSQL + asyncpg in production)
        embedding: Embedding provider, its ``dims`` sizes the vector column
        tagger: Tagging capability (default: local heuristics)
        vision: Optional LLM provider used to describe images during extraction
        storage: Optional object storage for uploaded bytes
        bulk_concurrency: Max files enriched at once by bulk operations
        max_extract_chars: Cap on stored extracted text
        pool_size: Database connection pool size
        echo: Enable SQLAlchemy SQL logging

    Usage:
        async with FileHub(
            database_url="postgresql+asyncpg://...",
            embedding=LocalHashEmbedding(),
        ) as hub:
            added = await hub.add_file("ws1", FileDraft(name="notes.txt", content=b"hello"))
            await hub.tag_file(added.value.id)
            await hub.index_file(added.value.id)
            hits = await hub.search("ws1", "notes")
    """

    def __init__(
        self,
        database_url: str,
        embedding: EmbeddingProvider,
        tagger: Optional[Tagger] = None,
        vision: Optional[LLMProvider] = None,
        storage: Optional[ObjectStorage] = None,
        bulk_concurrency: int = DEFAULT_BULK_CONCURRENCY,
        max_extract_chars: int = DEFAULT_MAX_CHARS,
        pool_size: int = 10,
        echo: bool = False,
    ):
        # Set embedding dimensions before any table is created
        configure_dims(embedding.dims)

        self._db = Database(database_url, pool_size=pool_size, echo=echo)
        self._embedding = embedding
        self._storage = storage

        self.indexer = EmbeddingIndexer(self._db, embedding)
        self.search_engine = SearchEngine(self._db, embedding)
        self.ingestion = IngestionOrchestrator(
            self._db,
            extractor=ContentExtractor(vision=vision, max_chars=max_extract_chars),
            tagger=tagger or LocalTagger(),
            indexer=self.indexer,
            storage=storage,
            bulk_concurrency=bulk_concurrency,
        )

    @classmethod
    def from_config(cls, cfg: FileHubConfig | None = None, echo: bool = False) -> "FileHub":
        """Build a FileHub with the providers named in the configuration."""
        cfg = cfg or FileHubConfig()

        if cfg.embedding_provider == "openai":
            from filehub.providers.openai_embedding import OpenAIEmbedding
            embedding: EmbeddingProvider = OpenAIEmbedding(
                api_key=cfg.embedding_api_key,
                model=cfg.embedding_model,
                base_url=cfg.embedding_base_url,
                dimensions=cfg.embedding_dims,
            )
        elif cfg.embedding_provider == "local":
            from filehub.providers.local_embedding import LocalHashEmbedding
            embedding = LocalHashEmbedding(dimensions=cfg.embedding_dims)
        else:
            raise ValueError(f"Unknown embedding provider: {cfg.embedding_provider}")

        llm = None
        if cfg.tagger == "llm" or cfg.vision:
            from filehub.providers.openai_llm import OpenAILLM
            llm = OpenAILLM(
                api_key=cfg.llm_api_key,
                model=cfg.llm_model,
                base_url=cfg.llm_base_url,
            )

        storage = None
        if cfg.storage_enabled:
            from filehub.storage.s3 import S3Storage
            storage = S3Storage(
                endpoint=cfg.s3_endpoint or None,
                access_key=cfg.s3_access_key or None,
                secret_key=cfg.s3_secret_key or None,
                bucket=cfg.s3_bucket,
                region=cfg.s3_region,
            )

        return cls(
            database_url=cfg.database_url,
            embedding=embedding,
            tagger=LLMTagger(llm) if cfg.tagger == "llm" else LocalTagger(),
            vision=llm if cfg.vision else None,
            storage=storage,
            bulk_concurrency=cfg.bulk_concurrency,
            max_extract_chars=cfg.max_extract_chars,
            pool_size=cfg.pool_size,
            echo=echo,
        )

    async def init(self) -> None:
        """Initialize database tables and optional storage."""
        await self._db.init()
        if self._storage:
            await self._storage.init()

    async def close(self) -> None:
        """Close database connections."""
        await self._db.close()

    async def __aenter__(self) -> "FileHub":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # -- files --

    async def add_file(
        self, workspace_id: str, draft: FileDraft, source_id: str | None = None
    ) -> Result[FileRecord]:
        return await self.ingestion.add_file(workspace_id, draft, source_id)

    async def tag_file(
        self, file_id: uuid.UUID, channel_name: str | None = None
    ) -> Result[FileRecord]:
        return await self.ingestion.tag_file(file_id, channel_name)

    async def index_file(self, file_id: uuid.UUID) -> Result[FileRecord]:
        return await self.ingestion.index_file(file_id)

    async def bulk_tag_and_index(self, workspace_id: str) -> Result[BulkOutcome]:
        return await self.ingestion.bulk_tag_and_index(workspace_id)

    async def list_files(
        self,
        workspace_id: str,
        filters: FileFilters | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> Result[list[FileRecord]]:
        return await self.ingestion.list_files(workspace_id, filters, limit)

    async def get_file(self, file_id: uuid.UUID) -> Result[FileRecord]:
        return await self.ingestion.get_file(file_id)

    async def search(
        self,
        workspace_id: str,
        query: str = "",
        filters: FileFilters | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> Result[list[SearchHit]]:
        return await self.search_engine.search(workspace_id, query, filters, limit)

    # -- jobs --

    async def create_job(self, workspace_id: str, created_by: str) -> Result[FileJob]:
        return await self.ingestion.create_job(workspace_id, created_by)

    async def get_job(self, job_id: uuid.UUID) -> Result[FileJob]:
        return await self.ingestion.get_job(job_id)

    async def advance_job(
        self, job_id: uuid.UUID, status: JobStatus, stats: dict | None = None
    ) -> Result[FileJob]:
        return await self.ingestion.advance_job(job_id, status, stats)

    async def sync_files(
        self,
        workspace_id: str,
        drafts: list[FileDraft],
        created_by: str,
        source_id: str | None = None,
    ) -> Result[FileJob]:
        return await self.ingestion.sync_files(workspace_id, drafts, created_by, source_id)
