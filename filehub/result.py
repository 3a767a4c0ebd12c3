"""Result type returned by every public pipeline operation.

A ``Result`` is either ok with a ``value`` or failed with a non-empty list
of ``Issue`` descriptors, never both. Callers branch on ``result.ok``
instead of catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")

Severity = Literal["info", "warn", "error", "block"]


@dataclass(frozen=True)
class Issue:
    code: str
    message: str
    severity: Severity = "error"
    field: str | None = None
    meta: dict[str, Any] | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
        }
        if self.field is not None:
            data["field"] = self.field
        if self.meta:
            data["meta"] = self.meta
        return data


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: T | None = None
    issues: list[Issue] = field(default_factory=list)

    @property
    def codes(self) -> list[str]:
        return [i.code for i in self.issues]


def Ok(value: T = None) -> Result[T]:
    return Result(ok=True, value=value)


def Err(issues: list[Issue]) -> Result[Any]:
    if not issues:
        raise ValueError("Err() requires a non-empty list of issues")
    return Result(ok=False, issues=list(issues))


def unwrap(result: Result[T]) -> T:
    """Return the value or raise ValueError carrying the issue messages."""
    if result.ok:
        return result.value
    raise ValueError("; ".join(i.message for i in result.issues))


def unwrap_or(result: Result[T], default: T) -> T:
    return result.value if result.ok else default


class Issues:
    """Factories for the standard issue codes."""

    @staticmethod
    def validation(message: str, field: str | None = None) -> Issue:
        return Issue("VALIDATION_ERROR", message, field=field)

    @staticmethod
    def not_found(resource: str, resource_id=None) -> Issue:
        suffix = f" with id {resource_id}" if resource_id is not None else ""
        return Issue("NOT_FOUND", f"{resource}{suffix} not found")

    @staticmethod
    def storage(message: str = "Storage unavailable") -> Issue:
        return Issue("STORAGE_ERROR", message)

    @staticmethod
    def extraction_failed(message: str) -> Issue:
        return Issue("EXTRACTION_FAILED", message, severity="warn")

    @staticmethod
    def tagging_failed(message: str) -> Issue:
        return Issue("TAGGING_FAILED", message)

    @staticmethod
    def indexing_failed(message: str) -> Issue:
        return Issue("INDEXING_FAILED", message)

    @staticmethod
    def search_degraded(message: str) -> Issue:
        return Issue("SEARCH_DEGRADED", message, severity="info")

    @staticmethod
    def invalid_transition(current: str, target: str) -> Issue:
        return Issue(
            "INVALID_TRANSITION",
            f"Cannot move job from '{current}' to '{target}'",
            meta={"from": current, "to": target},
        )
