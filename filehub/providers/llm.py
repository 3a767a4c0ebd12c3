"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Abstract LLM provider interface (for file tagging and image description)."""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        temperature: float = 0.1,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> str:
        """Send chat messages and return the response text."""
        ...

    async def describe_image(self, data: bytes, mime_type: str) -> str:
        """Describe an image for search. Providers without vision support raise."""
        raise NotImplementedError(f"{type(self).__name__} cannot describe images")
