"""File record model - one row per uploaded or synced file occurrence."""

import uuid

from sqlalchemy import BigInteger, Boolean, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filehub.models.base import Base, JSONType, TimestampMixin


class FileRecord(Base, TimestampMixin):
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(
        "file_id", Uuid, primary_key=True, default=uuid.uuid4
    )
    workspace_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_id: Mapped[str] = mapped_column(String(512), nullable=False)
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    channel_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tags: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    extracted_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    extraction_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_duplicate: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    indexed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uploaded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        # Not unique: duplicates are inserted and only flagged
        Index("ix_files_ws_hash", "workspace_id", "content_hash"),
        Index("ix_files_ws_created", "workspace_id", "created_at"),
        Index("ix_files_source_external", "source_id", "external_id", unique=True),
    )

    def to_dict(self) -> dict:
        return {
            "file_id": str(self.id),
            "workspace_id": self.workspace_id,
            "source_id": self.source_id,
            "external_id": self.external_id,
            "name": self.name,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "url": self.url,
            "channel_id": self.channel_id,
            "content_hash": self.content_hash,
            "tags": list(self.tags or []),
            "extracted_content": self.extracted_content,
            "extraction_method": self.extraction_method,
            "is_duplicate": self.is_duplicate,
            "indexed": self.indexed,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
