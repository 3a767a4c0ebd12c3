"""Tests for the catalog store (files, index entries, queries)."""

import uuid

import pytest

from filehub.errors import NotFound, StorageError
from filehub.models.file import FileRecord
from filehub.services.catalog import (
    CatalogStore,
    FileFilters,
    clamp_similarity,
    cosine_similarity,
)
from tests.conftest import TEST_DIMS


def make_record(workspace_id: str = "ws1", name: str = "notes.txt", **kwargs) -> FileRecord:
    kwargs.setdefault("external_id", uuid.uuid4().hex)
    kwargs.setdefault("tags", [])
    kwargs.setdefault("is_duplicate", False)
    kwargs.setdefault("indexed", False)
    return FileRecord(workspace_id=workspace_id, name=name, **kwargs)


def axis(i: int, sign: float = 1.0) -> list[float]:
    vec = [0.0] * TEST_DIMS
    vec[i] = sign
    return vec


async def insert(db, record: FileRecord) -> FileRecord:
    async with db.session() as session:
        return await CatalogStore(session).insert(record)


def test_clamp_similarity():
    assert clamp_similarity(-0.4) == 0.0
    assert clamp_similarity(1.0000001) == 1.0
    assert clamp_similarity(0.25) == 0.25
    assert clamp_similarity(float("nan")) == 0.0


def test_cosine_similarity():
    assert cosine_similarity(axis(0), axis(0)) == pytest.approx(1.0)
    assert cosine_similarity(axis(0), axis(1)) == pytest.approx(0.0)
    assert cosine_similarity(axis(0), axis(0, -1.0)) == pytest.approx(-1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


@pytest.mark.asyncio
async def test_insert_and_get(db):
    record = await insert(db, make_record(content_hash="abc", mime_type="text/plain"))

    async with db.session() as session:
        loaded = await CatalogStore(session).get(record.id)
    assert loaded.name == "notes.txt"
    assert loaded.tags == []
    assert loaded.indexed is False
    assert loaded.to_dict()["extracted_content"] is None


@pytest.mark.asyncio
async def test_get_unknown_raises_not_found(db):
    with pytest.raises(NotFound):
        async with db.session() as session:
            await CatalogStore(session).get(uuid.uuid4())


@pytest.mark.asyncio
async def test_find_by_hash_is_workspace_scoped(db):
    first = await insert(db, make_record("ws1", content_hash="h1"))
    await insert(db, make_record("ws1", name="copy.txt", content_hash="h1"))

    async with db.session() as session:
        store = CatalogStore(session)
        assert (await store.find_by_hash("ws1", "h1")).id == first.id
        assert await store.find_by_hash("ws2", "h1") is None
        assert await store.find_by_hash("ws1", "other") is None


@pytest.mark.asyncio
async def test_same_hash_inserts_are_not_blocked(db):
    await insert(db, make_record(content_hash="h1"))
    await insert(db, make_record(content_hash="h1", is_duplicate=True))

    async with db.session() as session:
        records = await CatalogStore(session).query("ws1")
    assert len(records) == 2


@pytest.mark.asyncio
async def test_source_external_id_unique(db):
    await insert(db, make_record(source_id="drive", external_id="x1"))
    with pytest.raises(StorageError):
        await insert(db, make_record(name="other.txt", source_id="drive", external_id="x1"))


@pytest.mark.asyncio
async def test_update_tags(db):
    record = await insert(db, make_record())
    async with db.session() as session:
        updated = await CatalogStore(session).update_tags(record.id, ["notes", "text"])
    assert updated.tags == ["notes", "text"]


@pytest.mark.asyncio
async def test_update_extraction(db):
    record = await insert(db, make_record())
    async with db.session() as session:
        updated = await CatalogStore(session).update_extraction(record.id, "hello", "plain-text")
    assert updated.extracted_content == "hello"
    assert updated.extraction_method == "plain-text"


@pytest.mark.asyncio
async def test_mark_indexed_requires_index_entry(db):
    record = await insert(db, make_record())

    with pytest.raises(StorageError):
        async with db.session() as session:
            await CatalogStore(session).mark_indexed(record.id)

    async with db.session() as session:
        assert (await CatalogStore(session).get(record.id)).indexed is False


@pytest.mark.asyncio
async def test_mark_indexed_unknown_file(db):
    with pytest.raises(NotFound):
        async with db.session() as session:
            await CatalogStore(session).mark_indexed(uuid.uuid4())


@pytest.mark.asyncio
async def test_upsert_then_mark_indexed(db):
    record = await insert(db, make_record())

    async with db.session() as session:
        store = CatalogStore(session)
        await store.upsert_index_entry(record.id, axis(0), {"tags": []})
        marked = await store.mark_indexed(record.id)
    assert marked.indexed is True

    async with db.session() as session:
        entry = await CatalogStore(session).get_index_entry(record.id)
    assert entry is not None
    assert list(entry.embedding) == pytest.approx(axis(0))


@pytest.mark.asyncio
async def test_upsert_overwrites_entry(db):
    record = await insert(db, make_record())

    async with db.session() as session:
        await CatalogStore(session).upsert_index_entry(record.id, axis(0), {"v": 1})
    async with db.session() as session:
        await CatalogStore(session).upsert_index_entry(record.id, axis(1), {"v": 2})

    async with db.session() as session:
        entry = await CatalogStore(session).get_index_entry(record.id)
    assert list(entry.embedding) == pytest.approx(axis(1))
    assert entry.facets == {"v": 2}


@pytest.mark.asyncio
async def test_query_text_matches_name_or_tag(db):
    await insert(db, make_record(name="Meeting-Notes.txt"))
    await insert(db, make_record(name="plan.pdf", tags=["notes"]))
    await insert(db, make_record(name="budget.xlsx", tags=["finance"]))

    async with db.session() as session:
        records = await CatalogStore(session).query("ws1", text="notes")
    assert {r.name for r in records} == {"Meeting-Notes.txt", "plan.pdf"}


@pytest.mark.asyncio
async def test_query_text_escapes_wildcards(db):
    await insert(db, make_record(name="report_final.pdf"))
    await insert(db, make_record(name="reportXfinal.pdf"))

    async with db.session() as session:
        records = await CatalogStore(session).query("ws1", text="report_final")
    assert [r.name for r in records] == ["report_final.pdf"]


@pytest.mark.asyncio
async def test_tag_filter_is_exact_membership(db):
    await insert(db, make_record(name="a.txt", tags=["auth"]))
    await insert(db, make_record(name="b.txt", tags=["oauth-flow"]))
    await insert(db, make_record(name="c.txt", tags=["design"]))

    async with db.session() as session:
        records = await CatalogStore(session).query("ws1", FileFilters(tags=["auth", "design"]))
    assert {r.name for r in records} == {"a.txt", "c.txt"}


@pytest.mark.asyncio
async def test_mime_and_channel_filters(db):
    await insert(db, make_record(name="a.txt", mime_type="text/plain", channel_id="c1"))
    await insert(db, make_record(name="b.txt", mime_type="text/plain", channel_id="c2"))
    await insert(db, make_record(name="c.pdf", mime_type="application/pdf", channel_id="c1"))

    async with db.session() as session:
        store = CatalogStore(session)
        by_mime = await store.query("ws1", FileFilters(mime_type="text/plain"))
        both = await store.query("ws1", FileFilters(mime_type="text/plain", channel_id="c1"))
    assert {r.name for r in by_mime} == {"a.txt", "b.txt"}
    assert [r.name for r in both] == ["a.txt"]


@pytest.mark.asyncio
async def test_query_is_workspace_scoped_and_limited(db):
    for i in range(5):
        await insert(db, make_record("ws1", name=f"f{i}.txt"))
    await insert(db, make_record("ws2", name="other.txt"))

    async with db.session() as session:
        store = CatalogStore(session)
        assert len(await store.query("ws1")) == 5
        assert len(await store.query("ws1", limit=2)) == 2
        assert [r.name for r in await store.query("ws2")] == ["other.txt"]


@pytest.mark.asyncio
async def test_semantic_query_orders_and_clamps(db):
    same = await insert(db, make_record(name="same.txt"))
    orthogonal = await insert(db, make_record(name="orthogonal.txt"))
    opposite = await insert(db, make_record(name="opposite.txt"))
    await insert(db, make_record(name="unindexed.txt"))

    async with db.session() as session:
        store = CatalogStore(session)
        await store.upsert_index_entry(same.id, axis(0), None)
        await store.upsert_index_entry(orthogonal.id, axis(1), None)
        await store.upsert_index_entry(opposite.id, axis(0, -1.0), None)

    async with db.session() as session:
        rows = await CatalogStore(session).semantic_query("ws1", axis(0))

    assert [r.name for r, _ in rows] == ["same.txt", "orthogonal.txt", "opposite.txt"]
    similarities = [s for _, s in rows]
    assert similarities[0] == pytest.approx(1.0)
    assert all(0.0 <= s <= 1.0 for s in similarities)
    assert similarities[2] == 0.0


@pytest.mark.asyncio
async def test_semantic_query_applies_filters(db):
    a = await insert(db, make_record(name="a.txt", tags=["roadmap"]))
    b = await insert(db, make_record(name="b.txt", tags=["budget"]))
    async with db.session() as session:
        store = CatalogStore(session)
        await store.upsert_index_entry(a.id, axis(0), None)
        await store.upsert_index_entry(b.id, axis(0), None)

    async with db.session() as session:
        rows = await CatalogStore(session).semantic_query(
            "ws1", axis(0), FileFilters(tags=["budget"])
        )
    assert [r.name for r, _ in rows] == ["b.txt"]


@pytest.mark.asyncio
async def test_list_untagged_and_unindexed(db):
    untagged = await insert(db, make_record(name="u.txt"))
    tagged = await insert(db, make_record(name="t.txt", tags=["text"]))
    async with db.session() as session:
        store = CatalogStore(session)
        await store.upsert_index_entry(tagged.id, axis(0), None)
        await store.mark_indexed(tagged.id)

    async with db.session() as session:
        store = CatalogStore(session)
        assert await store.list_untagged("ws1") == [untagged.id]
        assert await store.list_unindexed("ws1") == [untagged.id]
        assert await store.list_untagged("ws2") == []
