"""Offline feature-hashing embedding provider.

Tokens and character trigrams are hashed into a fixed number of buckets
with a signed hash, then the vector is L2-normalized. Deterministic across
processes (blake2b, not Python's salted ``hash``), no network, no model
download. Texts sharing vocabulary land close together, which is enough
for a local default and for tests.
"""

import hashlib
import re

import numpy as np

from filehub.providers.embedding import EmbeddingProvider

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _bucket(feature: str, dims: int) -> tuple[int, float]:
    digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "little")
    sign = 1.0 if value & 1 else -1.0
    return (value >> 1) % dims, sign


class LocalHashEmbedding(EmbeddingProvider):
    def __init__(self, dimensions: int = 768, max_chars: int = 8000):
        self._dims = dimensions
        self._max_chars = max_chars

    @property
    def dims(self) -> int:
        return self._dims

    def _features(self, text: str) -> list[str]:
        tokens = _TOKEN_RE.findall(text[: self._max_chars].lower())
        features = list(tokens)
        for tok in tokens:
            padded = f"#{tok}#"
            features.extend(padded[i:i + 3] for i in range(len(padded) - 2))
        return features

    async def embed(self, text: str) -> list[float]:
        vec = np.zeros(self._dims, dtype=np.float32)
        for feature in self._features(text):
            idx, sign = _bucket(feature, self._dims)
            vec[idx] += sign
        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec /= norm
        return vec.tolist()
