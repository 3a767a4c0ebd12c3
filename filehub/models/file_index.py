"""Vector index entry - derived, rebuildable projection of a file."""

from __future__ import annotations

import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

import filehub.models as _models
from filehub.models.base import Base, JSONType, utcnow


def _vector_type(dims: int):
    return Vector(dims).with_variant(JSON(), "sqlite")


class FileIndexEntry(Base):
    __tablename__ = "file_index"

    file_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("files.file_id", ondelete="CASCADE"), primary_key=True
    )
    embedding: Mapped[list] = mapped_column(
        _vector_type(_models._embedding_dims), nullable=False
    )
    facets: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    indexed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    @classmethod
    def __declare_last__(cls):
        """Set vector dimension from runtime config after all models declared."""
        cls.__table__.c.embedding.type = _vector_type(_models._embedding_dims)


def configure_dims(dims: int) -> None:
    """Point the vector column at a new dimensionality (call before init)."""
    _models._embedding_dims = dims
    FileIndexEntry.__table__.c.embedding.type = _vector_type(dims)
