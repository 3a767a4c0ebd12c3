"""Tests for the embedding and LLM providers."""

import json

import httpx
import numpy as np
import pytest

from filehub.providers.local_embedding import LocalHashEmbedding
from filehub.providers.openai_embedding import MAX_BATCH, OpenAIEmbedding
from filehub.providers.openai_llm import OpenAILLM


def fake_endpoint(requests: list[dict], dims: int = 4, drop: int = 0):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        data = [
            {"index": i, "embedding": [float(i)] * dims}
            for i in range(len(body["input"]) - drop)
        ]
        # Out of order on purpose
        return httpx.Response(200, json={"data": list(reversed(data))})

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_openai_embedding_orders_by_index():
    requests: list[dict] = []
    provider = OpenAIEmbedding("key", dimensions=4, transport=fake_endpoint(requests))

    vectors = await provider.embed_batch(["a", "b", "c"])

    assert vectors == [[0.0] * 4, [1.0] * 4, [2.0] * 4]
    assert requests[0]["model"] == "text-embedding-3-small"
    assert requests[0]["dimensions"] == 4


@pytest.mark.asyncio
async def test_openai_embedding_replaces_blank_input():
    requests: list[dict] = []
    provider = OpenAIEmbedding("key", dimensions=4, transport=fake_endpoint(requests))

    await provider.embed("   ")

    assert requests[0]["input"] == [" "]


@pytest.mark.asyncio
async def test_openai_embedding_chunks_large_batches():
    requests: list[dict] = []
    provider = OpenAIEmbedding("key", dimensions=4, transport=fake_endpoint(requests))

    vectors = await provider.embed_batch([f"file {i}" for i in range(MAX_BATCH + 6)])

    assert len(vectors) == MAX_BATCH + 6
    assert [len(r["input"]) for r in requests] == [MAX_BATCH, 6]


@pytest.mark.asyncio
async def test_openai_embedding_count_mismatch():
    provider = OpenAIEmbedding("key", dimensions=4, transport=fake_endpoint([], drop=1))

    with pytest.raises(ValueError):
        await provider.embed_batch(["a", "b"])


@pytest.mark.asyncio
async def test_openai_embedding_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    provider = OpenAIEmbedding("key", transport=transport)

    with pytest.raises(httpx.HTTPStatusError):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_local_embedding_is_deterministic_unit_vector():
    provider = LocalHashEmbedding(dimensions=64)

    a = await provider.embed("Quarterly budget report")
    b = await provider.embed("Quarterly budget report")

    assert a == b
    assert len(a) == 64
    assert np.linalg.norm(a) == pytest.approx(1.0, abs=1e-5)


@pytest.mark.asyncio
async def test_local_embedding_empty_text_is_zero_vector():
    vec = await LocalHashEmbedding(dimensions=16).embed("")
    assert vec == [0.0] * 16


@pytest.mark.asyncio
async def test_local_embedding_shared_vocabulary_is_closer():
    provider = LocalHashEmbedding(dimensions=768)

    query = np.array(await provider.embed("budget report"))
    related = np.array(await provider.embed("quarterly budget report"))
    unrelated = np.array(await provider.embed("kitten photos beach"))

    assert float(query @ related) > float(query @ unrelated)


def fake_chat(requests: list[dict], reply: str):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": reply}}]})

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_openai_llm_json_mode():
    requests: list[dict] = []
    llm = OpenAILLM("key", transport=fake_chat(requests, '{"tags": ["docs"]}'))

    reply = await llm.chat([{"role": "user", "content": "tag this"}], json_mode=True)

    assert reply == '{"tags": ["docs"]}'
    assert requests[0]["response_format"] == {"type": "json_object"}
    assert requests[0]["model"] == "gpt-4o-mini"


@pytest.mark.asyncio
async def test_openai_llm_plain_chat_has_no_response_format():
    requests: list[dict] = []
    llm = OpenAILLM("key", transport=fake_chat(requests, "hi"))

    await llm.chat([{"role": "user", "content": "hello"}])

    assert "response_format" not in requests[0]


@pytest.mark.asyncio
async def test_openai_llm_describe_image_sends_data_url():
    requests: list[dict] = []
    llm = OpenAILLM("key", transport=fake_chat(requests, "A bar chart of revenue"))

    text = await llm.describe_image(b"\x89PNG", "image/png")

    assert text == "A bar chart of revenue"
    parts = requests[0]["messages"][0]["content"]
    assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")
