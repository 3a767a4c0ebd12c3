"""Provider abstractions for embedding and LLM capabilities."""

from filehub.providers.embedding import EmbeddingProvider
from filehub.providers.llm import LLMProvider

__all__ = ["EmbeddingProvider", "LLMProvider"]
