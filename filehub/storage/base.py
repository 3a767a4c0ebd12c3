"""Abstract base class for object storage."""

from abc import ABC, abstractmethod


class ObjectStorage(ABC):
    """Blob store for uploaded file bytes.

    Records only keep the URL returned by ``put``; the bytes are never read
    back through this interface.
    """

    async def init(self) -> None:
        """Initialize storage (e.g., create bucket). Override if needed."""

    @abstractmethod
    async def upload(
        self,
        prefix: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload file. Returns the object key."""
        ...

    @abstractmethod
    def url_for(self, object_key: str) -> str:
        """Return the stable URL a file record points at."""
        ...

    async def put(
        self,
        prefix: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload bytes and return their URL."""
        object_key = await self.upload(prefix, filename, data, content_type)
        return self.url_for(object_key)
