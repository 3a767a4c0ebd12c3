"""Blob storage backends."""

from filehub.storage.base import ObjectStorage

__all__ = ["ObjectStorage"]
