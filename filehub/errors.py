"""Failure taxonomy for the file hub pipeline.

Services raise these; the facade and orchestrator turn them into
``Result`` issues so callers never see an exception.
"""

from __future__ import annotations

from filehub.result import Issue, Issues


class FileHubError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def issue(self) -> Issue:
        return Issues.storage(self.message)


class NotFound(FileHubError):
    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        suffix = f" with id {resource_id}" if resource_id is not None else ""
        super().__init__(f"{resource}{suffix} not found")

    @property
    def issue(self) -> Issue:
        return Issues.not_found(self.resource, self.resource_id)


class StorageError(FileHubError):
    """Persistence layer unavailable or a constraint was violated."""


class ExtractionFailed(FileHubError):
    @property
    def issue(self) -> Issue:
        return Issues.extraction_failed(self.message)


class TaggingFailed(FileHubError):
    @property
    def issue(self) -> Issue:
        return Issues.tagging_failed(self.message)


class IndexingFailed(FileHubError):
    @property
    def issue(self) -> Issue:
        return Issues.indexing_failed(self.message)


class SearchDegraded(FileHubError):
    """A search tier failed and the next tier should be attempted."""

    @property
    def issue(self) -> Issue:
        return Issues.search_degraded(self.message)


class InvalidTransition(FileHubError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move job from '{current}' to '{target}'")

    @property
    def issue(self) -> Issue:
        return Issues.invalid_transition(self.current, self.target)
