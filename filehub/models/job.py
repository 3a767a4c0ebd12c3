"""Bulk-sync job model and its forward-only status machine."""

import enum
import uuid

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filehub.models.base import Base, JSONType, TimestampMixin


class JobStatus(str, enum.Enum):
    CREATED = "created"
    HARVESTED = "harvested"
    DEDUPLICATED = "deduplicated"
    INDEXED = "indexed"
    FAILED = "failed"


_PIPELINE = [
    JobStatus.CREATED,
    JobStatus.HARVESTED,
    JobStatus.DEDUPLICATED,
    JobStatus.INDEXED,
]

TERMINAL_STATUSES = frozenset({JobStatus.INDEXED, JobStatus.FAILED})


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """Forward-only: any later pipeline stage, or failed from a non-terminal state."""
    if current in TERMINAL_STATUSES:
        return False
    if target is JobStatus.FAILED:
        return True
    return _PIPELINE.index(target) > _PIPELINE.index(current)


class FileJob(Base, TimestampMixin):
    __tablename__ = "file_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        "job_id", Uuid, primary_key=True, default=uuid.uuid4
    )
    workspace_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=JobStatus.CREATED.value, nullable=False
    )
    stats: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("ix_jobs_ws", "workspace_id"),
    )

    def to_dict(self) -> dict:
        return {
            "job_id": str(self.id),
            "workspace_id": self.workspace_id,
            "status": self.status,
            "stats": self.stats,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
