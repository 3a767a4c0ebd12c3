"""Embedding indexer - turns a file record into a vector index entry."""

from __future__ import annotations

import logging
import uuid

from filehub.db import Database
from filehub.errors import FileHubError, IndexingFailed
from filehub.models.file import FileRecord
from filehub.providers.embedding import EmbeddingProvider
from filehub.result import Err, Ok, Result
from filehub.services.catalog import CatalogStore

logger = logging.getLogger(__name__)

EMBED_CONTENT_CHARS = 2000


def compose_embedding_text(
    name: str,
    tags: list[str] | None = None,
    content: str | None = None,
) -> str:
    """Name first, then space-joined tags, then content capped at 2000 chars.

    The name always contributes, even when extraction produced nothing.
    """
    parts = [name]
    if tags:
        parts.append(" ".join(tags))
    if content:
        parts.append(content[:EMBED_CONTENT_CHARS])
    return " ".join(parts)


def build_facets(record: FileRecord) -> dict:
    return {
        "tags": list(record.tags or []),
        "mime_type": record.mime_type,
        "extraction_method": record.extraction_method,
        "is_duplicate": record.is_duplicate,
    }


class EmbeddingIndexer:
    def __init__(self, db: Database, embedding: EmbeddingProvider):
        self._db = db
        self._embedding = embedding

    async def embed(self, text: str) -> list[float]:
        """Embed one text through the batch interface. Raises IndexingFailed."""
        try:
            vectors = await self._embedding.embed_batch([text])
        except Exception as e:
            raise IndexingFailed(f"Embedding provider failed: {e}") from e
        if len(vectors) != 1:
            raise IndexingFailed(f"Expected 1 vector, got {len(vectors)}")
        try:
            vector = [float(v) for v in vectors[0]]
        except (TypeError, ValueError) as e:
            raise IndexingFailed(f"Embedding has non-numeric values: {e}") from e
        if len(vector) != self._embedding.dims:
            raise IndexingFailed(
                f"Embedding has {len(vector)} dims, provider declares {self._embedding.dims}"
            )
        return vector

    async def index_file(self, file_id: uuid.UUID) -> Result[FileRecord]:
        """Embed a file and upsert its index entry, then mark it indexed.

        The record is read in one session and written in another so no
        transaction stays open across the embedding call. The upsert and the
        flag flip share a transaction; ``mark_indexed`` additionally refuses
        to run without an index entry.
        """
        try:
            async with self._db.session() as session:
                record = await CatalogStore(session).get(file_id)

            text = compose_embedding_text(record.name, record.tags, record.extracted_content)
            vector = await self.embed(text)

            async with self._db.session() as session:
                store = CatalogStore(session)
                await store.upsert_index_entry(record.id, vector, build_facets(record))
                record = await store.mark_indexed(record.id)
        except FileHubError as e:
            logger.warning("Indexing failed for %s: %s", file_id, e.message)
            return Err([e.issue])

        logger.info("File indexed: %s (%s)", record.id, record.name)
        return Ok(record)
