"""Catalog store - system of record for files, index entries and jobs."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass

import numpy as np
from sqlalchemy import String, cast, exists, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from filehub.errors import InvalidTransition, NotFound, StorageError
from filehub.models.file import FileRecord
from filehub.models.file_index import FileIndexEntry
from filehub.models.job import FileJob, JobStatus, can_transition
from filehub.services.tagging import normalize_tag

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


@dataclass
class FileFilters:
    """Conjunctive filters: any-overlap on tags, exact MIME type, exact channel."""

    tags: list[str] | None = None
    mime_type: str | None = None
    channel_id: str | None = None


def clamp_similarity(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, float(value)))


def cosine_similarity(a, b) -> float:
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        return 0.0
    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


def _has_tag(tag: str):
    """Exact membership of a normalized tag in the JSON-encoded tag list."""
    return cast(FileRecord.tags, String).contains(json.dumps(tag), autoescape=True)


class CatalogStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    @property
    def _dialect(self) -> str:
        return self.db.get_bind().dialect.name

    # -- files --------------------------------------------------------------

    async def get(self, file_id: uuid.UUID) -> FileRecord:
        record = await self.db.get(FileRecord, file_id)
        if record is None:
            raise NotFound("File", file_id)
        return record

    async def find_by_hash(self, workspace_id: str, content_hash: str) -> FileRecord | None:
        """First record in the workspace with these bytes. Classification only."""
        result = await self.db.execute(
            select(FileRecord)
            .where(
                FileRecord.workspace_id == workspace_id,
                FileRecord.content_hash == content_hash,
            )
            .order_by(FileRecord.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def insert(self, record: FileRecord) -> FileRecord:
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise StorageError(f"Constraint violation inserting {record.name}: {e.orig}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert {record.name}: {e}") from e
        return record

    async def update_tags(self, file_id: uuid.UUID, tags: list[str]) -> FileRecord:
        record = await self.get(file_id)
        record.tags = list(tags)
        await self.db.flush()
        return record

    async def update_extraction(
        self, file_id: uuid.UUID, text: str | None, method: str | None
    ) -> FileRecord:
        record = await self.get(file_id)
        record.extracted_content = text
        record.extraction_method = method
        await self.db.flush()
        return record

    async def upsert_index_entry(
        self, file_id: uuid.UUID, embedding: list[float], facets: dict | None
    ) -> None:
        dialect_insert = postgresql.insert if self._dialect == "postgresql" else sqlite.insert
        stmt = dialect_insert(FileIndexEntry).values(
            file_id=file_id, embedding=embedding, facets=facets
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[FileIndexEntry.file_id],
            set_={
                "embedding": stmt.excluded.embedding,
                "facets": stmt.excluded.facets,
                "indexed_at": stmt.excluded.indexed_at,
            },
        )
        await self.db.execute(stmt)

    async def get_index_entry(self, file_id: uuid.UUID) -> FileIndexEntry | None:
        return await self.db.get(FileIndexEntry, file_id)

    async def mark_indexed(self, file_id: uuid.UUID) -> FileRecord:
        """Flip ``indexed`` on, but only for a file that has an index entry."""
        result = await self.db.execute(
            update(FileRecord)
            .where(
                FileRecord.id == file_id,
                exists().where(FileIndexEntry.file_id == file_id),
            )
            .values(indexed=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            record = await self.get(file_id)
            raise StorageError(f"File {record.id} has no index entry; refusing to mark indexed")
        return await self.db.get(FileRecord, file_id, populate_existing=True)

    # -- queries ------------------------------------------------------------

    def _filtered(self, stmt, workspace_id: str, filters: FileFilters | None):
        stmt = stmt.where(FileRecord.workspace_id == workspace_id)
        if filters is None:
            return stmt
        if filters.tags:
            wanted = [t for t in (normalize_tag(t) for t in filters.tags) if t]
            if wanted:
                stmt = stmt.where(or_(*[_has_tag(t) for t in wanted]))
        if filters.mime_type:
            stmt = stmt.where(FileRecord.mime_type == filters.mime_type)
        if filters.channel_id:
            stmt = stmt.where(FileRecord.channel_id == filters.channel_id)
        return stmt

    async def query(
        self,
        workspace_id: str,
        filters: FileFilters | None = None,
        limit: int = DEFAULT_LIMIT,
        text: str | None = None,
    ) -> list[FileRecord]:
        """Filtered listing, newest first.

        ``text`` adds a case-insensitive substring match on the name OR an
        exact match against the tag list.
        """
        stmt = self._filtered(select(FileRecord), workspace_id, filters)
        if text:
            clauses = [FileRecord.name.icontains(text, autoescape=True)]
            tag = normalize_tag(text)
            if tag:
                clauses.append(_has_tag(tag))
            stmt = stmt.where(or_(*clauses))
        stmt = stmt.order_by(FileRecord.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def semantic_query(
        self,
        workspace_id: str,
        query_embedding: list[float],
        filters: FileFilters | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[tuple[FileRecord, float]]:
        """Indexed files ordered by cosine similarity, similarity clamped to [0, 1]."""
        if self._dialect == "postgresql":
            distance = FileIndexEntry.embedding.cosine_distance(query_embedding)
            stmt = (
                select(FileRecord, (1 - distance).label("similarity"))
                .join(FileIndexEntry, FileIndexEntry.file_id == FileRecord.id)
            )
            stmt = self._filtered(stmt, workspace_id, filters).order_by(distance).limit(limit)
            rows = (await self.db.execute(stmt)).all()
            return [(row[0], clamp_similarity(row[1])) for row in rows]

        # Other dialects have no vector operators: score candidates in process
        stmt = (
            select(FileRecord, FileIndexEntry.embedding)
            .join(FileIndexEntry, FileIndexEntry.file_id == FileRecord.id)
        )
        stmt = self._filtered(stmt, workspace_id, filters)
        rows = (await self.db.execute(stmt)).all()
        scored = [(row[0], cosine_similarity(row[1], query_embedding)) for row in rows]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [(record, clamp_similarity(sim)) for record, sim in scored[:limit]]

    async def list_untagged(self, workspace_id: str) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(FileRecord.id)
            .where(
                FileRecord.workspace_id == workspace_id,
                cast(FileRecord.tags, String) == "[]",
            )
            .order_by(FileRecord.created_at)
        )
        return list(result.scalars().all())

    async def list_unindexed(self, workspace_id: str) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(FileRecord.id)
            .where(
                FileRecord.workspace_id == workspace_id,
                FileRecord.indexed.is_(False),
            )
            .order_by(FileRecord.created_at)
        )
        return list(result.scalars().all())

    # -- jobs ---------------------------------------------------------------

    async def create_job(self, workspace_id: str, created_by: str) -> FileJob:
        job = FileJob(
            workspace_id=workspace_id,
            status=JobStatus.CREATED.value,
            created_by=created_by,
        )
        self.db.add(job)
        await self.db.flush()
        return job

    async def get_job(self, job_id: uuid.UUID) -> FileJob:
        job = await self.db.get(FileJob, job_id)
        if job is None:
            raise NotFound("File job", job_id)
        return job

    async def advance_job(
        self,
        job_id: uuid.UUID,
        status: JobStatus,
        stats: dict | None = None,
    ) -> FileJob:
        job = await self.get_job(job_id)
        current = JobStatus(job.status)
        if not can_transition(current, status):
            raise InvalidTransition(current.value, status.value)
        job.status = status.value
        if stats:
            job.stats = {**(job.stats or {}), **stats}
        await self.db.flush()
        return job
