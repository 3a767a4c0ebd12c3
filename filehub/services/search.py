"""Search engine - semantic, then text, then plain filter.

A search is planned as an ordered list of tiers. Each tier either returns
hits or fails; a failing tier marked ``fallible`` hands over to the next
one, and only the last tier's failure reaches the caller. Tiers are never
retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from filehub.db import Database
from filehub.errors import FileHubError, SearchDegraded
from filehub.models.file import FileRecord
from filehub.providers.embedding import EmbeddingProvider
from filehub.result import Err, Ok, Result
from filehub.services.catalog import DEFAULT_LIMIT, CatalogStore, FileFilters

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 150
REASON_SEPARATOR = " | "
MAX_REASON_ITEMS = 3


@dataclass
class SearchHit:
    """A file plus the per-query annotations; none of these are persisted."""

    file: FileRecord
    similarity: float | None = None
    content_preview: str | None = None
    match_reason: str | None = None

    def to_dict(self) -> dict:
        data = self.file.to_dict()
        data["similarity"] = None if self.similarity is None else round(self.similarity, 4)
        data["content_preview"] = self.content_preview
        data["match_reason"] = self.match_reason
        return data


@dataclass(frozen=True)
class SearchTier:
    name: str
    run: Callable[[], Awaitable[list[SearchHit]]]
    fallible: bool


def content_preview(content: str | None) -> str | None:
    if not content:
        return None
    if len(content) > PREVIEW_CHARS:
        return content[:PREVIEW_CHARS] + "..."
    return content


def explain_match(
    name: str,
    tags: list[str] | None,
    content: str | None,
    query: str,
    similarity: float | None = None,
) -> str:
    """Human-readable reasons, lexical signals ahead of semantic ones."""
    q = query.strip().lower()
    tokens = q.split()
    reasons: list[str] = []

    lowered_name = name.lower()
    if q in lowered_name or any(tok in lowered_name for tok in tokens):
        reasons.append("Filename matches")

    matching_tags = [
        tag for tag in (tags or [])
        if q in tag.lower() or any(tok in tag.lower() for tok in tokens)
    ]
    if matching_tags:
        reasons.append(f"Tags: {', '.join(matching_tags[:MAX_REASON_ITEMS])}")

    lowered_content = (content or "").lower()
    matched_words = list(dict.fromkeys(
        tok for tok in tokens if len(tok) > 2 and tok in lowered_content
    ))
    if matched_words:
        reasons.append(f'Content contains: "{", ".join(matched_words[:MAX_REASON_ITEMS])}"')
    elif similarity is not None and similarity > 0.3:
        reasons.append("Semantically similar content")

    if not reasons:
        score = similarity or 0.0
        if score > 0.5:
            reasons.append("Strong semantic match")
        elif score > 0.3:
            reasons.append("Related content")
        else:
            reasons.append("Partial match")

    return REASON_SEPARATOR.join(reasons)


class SearchEngine:
    def __init__(self, db: Database, embedding: EmbeddingProvider):
        self._db = db
        self._embedding = embedding

    def plan(
        self,
        workspace_id: str,
        query: str,
        filters: FileFilters | None,
        limit: int,
    ) -> list[SearchTier]:
        if not query:
            return [
                SearchTier(
                    "filter",
                    lambda: self._filter_tier(workspace_id, filters, limit),
                    fallible=False,
                ),
            ]
        return [
            SearchTier(
                "semantic",
                lambda: self._semantic_tier(workspace_id, query, filters, limit),
                fallible=True,
            ),
            SearchTier(
                "text",
                lambda: self._text_tier(workspace_id, query, filters, limit),
                fallible=False,
            ),
        ]

    async def search(
        self,
        workspace_id: str,
        query: str = "",
        filters: FileFilters | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> Result[list[SearchHit]]:
        """Run the planned tiers in order and annotate the winning tier's hits."""
        query = (query or "").strip()
        for tier in self.plan(workspace_id, query, filters, limit):
            try:
                hits = await tier.run()
            except FileHubError as e:
                if tier.fallible:
                    logger.warning("Search tier '%s' degraded: %s", tier.name, e.message)
                    continue
                logger.error("Search tier '%s' failed: %s", tier.name, e.message)
                return Err([e.issue])

            if query:
                for hit in hits:
                    hit.content_preview = content_preview(hit.file.extracted_content)
                    hit.match_reason = explain_match(
                        hit.file.name,
                        hit.file.tags,
                        hit.file.extracted_content,
                        query,
                        hit.similarity,
                    )
            logger.debug("Search '%s' answered by %s tier: %d hits", query, tier.name, len(hits))
            return Ok(hits)

        return Ok([])

    async def _embed_query(self, query: str) -> list[float]:
        try:
            vectors = await self._embedding.embed_batch([query])
        except Exception as e:
            raise SearchDegraded(f"Query embedding failed: {e}") from e
        try:
            vector = [float(v) for v in vectors[0]] if vectors else []
        except (TypeError, ValueError) as e:
            raise SearchDegraded(f"Query embedding has non-numeric values: {e}") from e
        if len(vector) != self._embedding.dims:
            raise SearchDegraded(
                f"Query embedding has {len(vector)} dims, expected {self._embedding.dims}"
            )
        return vector

    async def _semantic_tier(
        self, workspace_id: str, query: str, filters: FileFilters | None, limit: int
    ) -> list[SearchHit]:
        vector = await self._embed_query(query)
        async with self._db.session() as session:
            rows = await CatalogStore(session).semantic_query(
                workspace_id, vector, filters, limit
            )
        return [SearchHit(file=record, similarity=similarity) for record, similarity in rows]

    async def _text_tier(
        self, workspace_id: str, query: str, filters: FileFilters | None, limit: int
    ) -> list[SearchHit]:
        async with self._db.session() as session:
            records = await CatalogStore(session).query(
                workspace_id, filters, limit, text=query
            )
        return [SearchHit(file=record) for record in records]

    async def _filter_tier(
        self, workspace_id: str, filters: FileFilters | None, limit: int
    ) -> list[SearchHit]:
        async with self._db.session() as session:
            records = await CatalogStore(session).query(workspace_id, filters, limit)
        return [SearchHit(file=record) for record in records]
