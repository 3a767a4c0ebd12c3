"""Ingestion orchestrator - add, tag, index, bulk enrich and sync files."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

from filehub.db import Database
from filehub.errors import FileHubError, StorageError
from filehub.models.file import FileRecord
from filehub.models.job import FileJob, JobStatus
from filehub.result import Err, Issues, Ok, Result
from filehub.services.catalog import DEFAULT_LIMIT, CatalogStore, FileFilters
from filehub.services.extraction import ContentExtractor, guess_mime_type
from filehub.services.fingerprint import fingerprint
from filehub.services.indexing import EmbeddingIndexer
from filehub.services.tagging import FileContext, Tagger
from filehub.storage.base import ObjectStorage

logger = logging.getLogger(__name__)

DEFAULT_BULK_CONCURRENCY = 4


@dataclass
class FileDraft:
    """A file as handed in by an upload or an external source."""

    name: str
    content: bytes | None = None
    external_id: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    url: str | None = None
    channel_id: str | None = None
    uploaded_by: str | None = None


@dataclass
class BulkOutcome:
    tagged: int = 0
    indexed: int = 0

    def to_dict(self) -> dict:
        return {"tagged": self.tagged, "indexed": self.indexed}


class IngestionOrchestrator:
    def __init__(
        self,
        db: Database,
        extractor: ContentExtractor,
        tagger: Tagger,
        indexer: EmbeddingIndexer,
        storage: ObjectStorage | None = None,
        bulk_concurrency: int = DEFAULT_BULK_CONCURRENCY,
    ):
        self._db = db
        self._extractor = extractor
        self._tagger = tagger
        self._indexer = indexer
        self._storage = storage
        self._bulk_concurrency = max(1, bulk_concurrency)

    # -- single files -------------------------------------------------------

    async def add_file(
        self,
        workspace_id: str,
        draft: FileDraft,
        source_id: str | None = None,
    ) -> Result[FileRecord]:
        """Fingerprint, extract and insert one file.

        A content hash already present in the workspace only flags the new
        record as a duplicate; the insert always happens. Extraction
        failures leave the content fields null.
        """
        data = draft.content
        mime_type = draft.mime_type or guess_mime_type(draft.name)
        content_hash = fingerprint(data) if data is not None else None

        extracted_content = None
        extraction_method = None
        if data is not None:
            extracted = await self._extractor.extract(data, mime_type, draft.name)
            if extracted.ok:
                extracted_content = extracted.value.text
                extraction_method = extracted.value.method

        try:
            url = draft.url
            if url is None and data is not None and self._storage is not None:
                url = await self._upload(workspace_id, draft.name, data, mime_type)

            async with self._db.session() as session:
                store = CatalogStore(session)
                existing = None
                if content_hash is not None:
                    existing = await store.find_by_hash(workspace_id, content_hash)
                record = FileRecord(
                    workspace_id=workspace_id,
                    source_id=source_id,
                    external_id=draft.external_id or uuid.uuid4().hex,
                    name=draft.name,
                    mime_type=mime_type,
                    size_bytes=draft.size_bytes if draft.size_bytes is not None
                    else (len(data) if data is not None else None),
                    url=url,
                    channel_id=draft.channel_id,
                    content_hash=content_hash,
                    tags=[],
                    extracted_content=extracted_content,
                    extraction_method=extraction_method,
                    is_duplicate=existing is not None,
                    indexed=False,
                    uploaded_by=draft.uploaded_by,
                )
                await store.insert(record)
        except FileHubError as e:
            logger.error("Failed to add %s to workspace %s: %s", draft.name, workspace_id, e.message)
            return Err([e.issue])

        if record.is_duplicate:
            logger.info(
                "Duplicate content detected: %s matches %s in workspace %s",
                record.name, existing.id, workspace_id,
            )
        logger.info("File added: %s (%s)", record.id, record.name)
        return Ok(record)

    async def _upload(
        self, workspace_id: str, filename: str, data: bytes, mime_type: str | None
    ) -> str:
        try:
            return await self._storage.put(
                f"workspaces/{workspace_id}/files",
                filename,
                data,
                mime_type or "application/octet-stream",
            )
        except Exception as e:
            raise StorageError(f"Blob upload failed for {filename}: {e}") from e

    async def tag_file(
        self, file_id: uuid.UUID, channel_name: str | None = None
    ) -> Result[FileRecord]:
        try:
            async with self._db.session() as session:
                record = await CatalogStore(session).get(file_id)
        except FileHubError as e:
            return Err([e.issue])

        context = FileContext(
            name=record.name,
            mime_type=record.mime_type,
            size_bytes=record.size_bytes,
            channel_name=channel_name,
            existing_tags=list(record.tags or []),
            content=record.extracted_content,
        )
        proposal = await self._tagger.tag(context)
        if not proposal.ok:
            return proposal

        try:
            async with self._db.session() as session:
                record = await CatalogStore(session).update_tags(file_id, proposal.value.tags)
        except FileHubError as e:
            return Err([e.issue])

        logger.info("File tagged: %s %s", record.id, record.tags)
        return Ok(record)

    async def index_file(self, file_id: uuid.UUID) -> Result[FileRecord]:
        return await self._indexer.index_file(file_id)

    # -- bulk ---------------------------------------------------------------

    async def _run_bounded(self, file_ids: list[uuid.UUID], operation, label: str) -> int:
        """Apply ``operation`` to every id with bounded concurrency; count successes."""
        sem = asyncio.Semaphore(self._bulk_concurrency)

        async def _one(file_id: uuid.UUID) -> bool:
            async with sem:
                result = await operation(file_id)
            if not result.ok:
                logger.warning("Bulk %s skipped %s: %s", label, file_id, result.codes)
            return result.ok

        outcomes = await asyncio.gather(*(_one(fid) for fid in file_ids))
        return sum(1 for ok in outcomes if ok)

    async def bulk_tag_and_index(self, workspace_id: str) -> Result[BulkOutcome]:
        """Tag every untagged file, then index every unindexed one.

        Per-file failures are logged and left out of the counts.
        """
        try:
            async with self._db.session() as session:
                untagged = await CatalogStore(session).list_untagged(workspace_id)
            tagged = await self._run_bounded(untagged, self.tag_file, "tag")

            async with self._db.session() as session:
                unindexed = await CatalogStore(session).list_unindexed(workspace_id)
            indexed = await self._run_bounded(unindexed, self.index_file, "index")
        except FileHubError as e:
            return Err([e.issue])

        outcome = BulkOutcome(tagged=tagged, indexed=indexed)
        logger.info(
            "Bulk enrich for workspace %s: %d/%d tagged, %d/%d indexed",
            workspace_id, tagged, len(untagged), indexed, len(unindexed),
        )
        return Ok(outcome)

    # -- jobs ---------------------------------------------------------------

    async def create_job(self, workspace_id: str, created_by: str) -> Result[FileJob]:
        try:
            async with self._db.session() as session:
                job = await CatalogStore(session).create_job(workspace_id, created_by)
        except FileHubError as e:
            return Err([e.issue])
        logger.info("File job created: %s (workspace %s)", job.id, workspace_id)
        return Ok(job)

    async def get_job(self, job_id: uuid.UUID) -> Result[FileJob]:
        try:
            async with self._db.session() as session:
                job = await CatalogStore(session).get_job(job_id)
        except FileHubError as e:
            return Err([e.issue])
        return Ok(job)

    async def advance_job(
        self, job_id: uuid.UUID, status: JobStatus | str, stats: dict | None = None
    ) -> Result[FileJob]:
        try:
            status = JobStatus(status)
        except ValueError:
            return Err([Issues.validation(f"Unknown job status: {status}", field="status")])
        try:
            async with self._db.session() as session:
                job = await CatalogStore(session).advance_job(job_id, status, stats)
        except FileHubError as e:
            return Err([e.issue])
        logger.info("File job %s -> %s", job.id, job.status)
        return Ok(job)

    async def sync_files(
        self,
        workspace_id: str,
        drafts: list[FileDraft],
        created_by: str,
        source_id: str | None = None,
    ) -> Result[FileJob]:
        """Run a whole sync through a job: harvest, deduplicate, enrich."""
        created = await self.create_job(workspace_id, created_by)
        if not created.ok:
            return created
        job_id = created.value.id

        added: list[FileRecord] = []
        failed_items = 0
        for draft in drafts:
            result = await self.add_file(workspace_id, draft, source_id)
            if result.ok:
                added.append(result.value)
            else:
                failed_items += 1

        steps = [
            (JobStatus.HARVESTED, lambda: {"harvested": len(added), "failed_items": failed_items}),
            (JobStatus.DEDUPLICATED, lambda: {"duplicates": sum(1 for r in added if r.is_duplicate)}),
        ]
        for status, stats in steps:
            advanced = await self.advance_job(job_id, status, stats())
            if not advanced.ok:
                return await self._fail_job(job_id, advanced)

        bulk = await self.bulk_tag_and_index(workspace_id)
        if not bulk.ok:
            return await self._fail_job(job_id, bulk)

        advanced = await self.advance_job(job_id, JobStatus.INDEXED, bulk.value.to_dict())
        if not advanced.ok:
            return await self._fail_job(job_id, advanced)
        return advanced

    async def _fail_job(self, job_id: uuid.UUID, cause: Result) -> Result[FileJob]:
        message = "; ".join(i.message for i in cause.issues)
        logger.warning("File job %s failed: %s", job_id, message)
        await self.advance_job(job_id, JobStatus.FAILED, {"error": message})
        return Err(cause.issues)

    # -- reads --------------------------------------------------------------

    async def list_files(
        self,
        workspace_id: str,
        filters: FileFilters | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> Result[list[FileRecord]]:
        try:
            async with self._db.session() as session:
                records = await CatalogStore(session).query(workspace_id, filters, limit)
        except FileHubError as e:
            return Err([e.issue])
        return Ok(records)

    async def get_file(self, file_id: uuid.UUID) -> Result[FileRecord]:
        try:
            async with self._db.session() as session:
                record = await CatalogStore(session).get(file_id)
        except FileHubError as e:
            return Err([e.issue])
        return Ok(record)
