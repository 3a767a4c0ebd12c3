"""OpenAI-compatible embedding provider."""

import logging

import httpx

from filehub.providers.embedding import EmbeddingProvider

logger = logging.getLogger(__name__)

# Embedding endpoints reject empty strings and overlong inputs
MAX_INPUT_CHARS = 8000
MAX_BATCH = 64


class OpenAIEmbedding(EmbeddingProvider):
    """Embeddings from any ``/embeddings`` endpoint speaking the OpenAI wire format.

    File names, tags and extracted content are sent as-is. Blank texts are
    replaced by a single space and long ones are cut at ``MAX_INPUT_CHARS``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        dimensions: int = 768,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._endpoint = base_url.rstrip("/") + "/embeddings"
        self._dims = dimensions
        self._timeout = timeout
        self._transport = transport

    @property
    def dims(self) -> int:
        return self._dims

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        inputs = [(t or "").strip()[:MAX_INPUT_CHARS] or " " for t in texts]
        vectors: list[list[float]] = []
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for start in range(0, len(inputs), MAX_BATCH):
                chunk = inputs[start:start + MAX_BATCH]
                vectors.extend(await self._request(client, chunk))
        return vectors

    async def _request(self, client: httpx.AsyncClient, chunk: list[str]) -> list[list[float]]:
        resp = await client.post(
            self._endpoint,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={"model": self._model, "input": chunk, "dimensions": self._dims},
        )
        resp.raise_for_status()
        items = sorted(resp.json()["data"], key=lambda item: item["index"])
        if len(items) != len(chunk):
            logger.warning(
                "Embedding endpoint returned %d vectors for %d inputs", len(items), len(chunk)
            )
            raise ValueError(f"expected {len(chunk)} embeddings, got {len(items)}")
        return [item["embedding"] for item in items]
